"""
Input Validators and Sanitizers

This module provides validation and sanitization functions for user inputs.
These functions help prevent security issues and ensure data integrity.

Security Considerations:
- Input validation prevents injection attacks
- Only absolute http(s) URLs are accepted as redirect targets
- Length limits prevent DoS attacks and match the storage column
"""

import re
from typing import Any, Optional
from urllib.parse import urlparse

MAX_URL_LENGTH = 2048
MAX_SHORT_CODE_LENGTH = 20
ALLOWED_SCHEMES = frozenset({"http", "https"})

_SHORT_CODE_RE = re.compile(r"^[0-9a-zA-Z]+$")


def sanitize_short_code(short_code: str) -> Optional[str]:
    """
    Sanitize and validate short code format.

    Short codes should only contain base62 characters: [0-9a-zA-Z]
    This prevents injection attacks and ensures consistency.

    Args:
        short_code: The short code to sanitize

    Returns:
        Sanitized short code if valid, None otherwise
    """
    if not short_code or not isinstance(short_code, str):
        return None

    short_code = short_code.strip()

    if len(short_code) > MAX_SHORT_CODE_LENGTH:
        return None

    if not _SHORT_CODE_RE.match(short_code):
        return None

    return short_code


def validate_url_length(url: str, max_length: int = MAX_URL_LENGTH) -> bool:
    """
    Validate URL length to prevent DoS attacks.

    Args:
        url: The URL to validate
        max_length: Maximum allowed length (default: 2048, the column size)

    Returns:
        True if URL length is valid, False otherwise
    """
    return bool(url) and len(url) <= max_length


def is_valid_url(url: Any) -> bool:
    """
    Check that ``url`` is a well-formed absolute http(s) URL with a host.

    Stricter than "any absolute URL": only http and https targets are
    redirected to, so schemes such as ftp:, mailto:, urn:, javascript:,
    data: and file: are rejected even when well formed. Also rejects
    relative references, URLs without a hostname, malformed ports and
    anything longer than the storage column.
    """
    if not isinstance(url, str):
        return False

    if not validate_url_length(url):
        return False

    try:
        result = urlparse(url)
        # Accessing .port raises ValueError for out-of-range or non-numeric ports
        result.port
    except ValueError:
        return False

    if result.scheme.lower() not in ALLOWED_SCHEMES:
        return False

    if not result.netloc or not result.hostname:
        return False

    if any(ch.isspace() for ch in url):
        return False

    return True
