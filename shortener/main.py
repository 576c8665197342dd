"""
FastAPI Application Entry Point

This module initializes the FastAPI application and configures:
- API routes
- Middleware (logging, CORS)
- Exception handlers
- Worker startup/shutdown (per-process store, cache, click accounting)

Each worker process imports this module and runs its own copy of the
application; see shortener.core.supervisor for how workers are started.
"""

import logging
import os

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shortener import __version__
from shortener.api import endpoints
from shortener.core.exceptions import ServiceUnavailableError
from shortener.core.rate_limit import limiter
from shortener.core.worker_context import get_worker_context, initialize_worker, shutdown_worker
from shortener.middleware.logging import add_logging_middleware

logger = logging.getLogger(__name__)

# Title and description are used in auto-generated API documentation
app = FastAPI(
    title="URL Shortener Service",
    description="High-performance URL shortener API",
    version=__version__,
    docs_url="/docs",  # Swagger UI documentation
    redoc_url="/redoc",  # ReDoc documentation
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

add_logging_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are client errors (400), like invalid URLs."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(ServiceUnavailableError)
async def service_unavailable_handler(request: Request, exc: ServiceUnavailableError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )


# Health endpoints defined before router to match before catch-all route
@app.get("/", tags=["Health"])
async def root():
    """
    Root endpoint with service information.
    """
    return {
        "message": "URL Shortener Service",
        "version": __version__,
        "docs": "/docs"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint for monitoring.

    Reports this worker's cache and click accounting state. Returns 503
    until the worker finished startup.
    """
    context = get_worker_context()
    if context is None:
        raise ServiceUnavailableError("worker")

    return {
        "status": "healthy",
        "worker_pid": os.getpid(),
        "cache": context.cache.stats(),
        "pending_clicks": context.clicks.pending,
    }


app.include_router(endpoints.router, tags=["URL Shortener"])


@app.on_event("startup")
async def startup_event():
    """Build this worker's store, cache and click accumulator."""
    await initialize_worker()
    logger.info(f"Worker {os.getpid()} started")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    await shutdown_worker()
