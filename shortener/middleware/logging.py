"""
Request logging middleware.

Writes one access line per request to the "shortener.access" logger:

    GET /abc1234 302 0.84ms IP:203.0.113.7

Server errors are logged at WARNING so they stand out from redirect
traffic; requests that blow up before producing a response are logged
with their traceback and re-raised. Every response carries the
processing time in seconds as X-Process-Time.

Format and destination come from shortener.core.logging_config, which
every worker applies at startup.
"""

import logging
import time

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("shortener.access")


def get_client_ip(request: Request) -> str:
    """
    Client address, preferring the first X-Forwarded-For hop.

    Rate limiting keys on the socket peer address instead; this is only
    for the access log.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    return request.client.host if request.client else "unknown"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Times each request and writes the access log line."""

    async def dispatch(self, request: Request, call_next):
        client_ip = get_client_ip(request)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.exception(
                f"{request.method} {request.url.path} failed after {elapsed_ms:.2f}ms IP:{client_ip}"
            )
            raise

        process_time = time.perf_counter() - start_time
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            f"{request.method} {request.url.path} "
            f"{response.status_code} {process_time * 1000:.2f}ms "
            f"IP:{client_ip}"
        )

        response.headers["X-Process-Time"] = f"{process_time:.6f}"
        return response


def add_logging_middleware(app: FastAPI) -> None:
    app.add_middleware(LoggingMiddleware)
