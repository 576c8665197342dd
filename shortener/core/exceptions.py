"""
Custom Exceptions

This module defines custom exceptions for better error handling
and more specific error messages.

Mapping to HTTP responses (see shortener.api.endpoints):
- InvalidURLError -> 400
- ShortCodeNotFoundError -> 404
- ServiceUnavailableError -> 503
- StoreError and subclasses -> 500

ShortCodeCollisionError is raised by the store when the unique index on
short_code rejects an insert. The allocator consumes it as a signal to
retry with a fresh code; it never reaches a client.
"""

from typing import Optional


class URLShortenerException(Exception):
    """Base exception for URL shortener service."""
    pass


class InvalidURLError(URLShortenerException):
    """Raised when URL validation fails."""

    def __init__(self, url, reason: str = "Invalid URL format"):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url}")


class ShortCodeNotFoundError(URLShortenerException):
    """Raised when a short code is not found in the database."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' not found")


class ServiceUnavailableError(URLShortenerException):
    """Raised when a required service is unavailable."""

    def __init__(self, service_name: str):
        self.service_name = service_name
        super().__init__(f"Service '{service_name}' is unavailable")


class StoreError(URLShortenerException):
    """Raised when persistent store operations fail."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Store error: {message}")


class StoreTimeoutError(StoreError):
    """Raised when a store call exceeds its deadline."""

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} timed out after {timeout:.2f}s")


class StoreInitializationError(StoreError):
    """Raised when schema initialization fails at worker startup."""


class ShortCodeCollisionError(StoreError):
    """Raised when the unique index rejects an already used short code."""

    def __init__(self, short_code: str, original_error: Optional[Exception] = None):
        self.short_code = short_code
        super().__init__(f"short code '{short_code}' already exists", original_error)


class ShortCodeAllocationError(StoreError):
    """Raised when no unused short code was found within the attempt limit."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"no unused short code found after {attempts} attempts")


class CrashLoopDetectedError(URLShortenerException):
    """Raised by the supervisor when workers crash faster than allowed."""

    def __init__(self, crashes: int, window: float):
        self.crashes = crashes
        self.window = window
        super().__init__(f"{crashes} worker crashes within {window:.0f}s")
