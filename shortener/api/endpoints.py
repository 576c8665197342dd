"""
HTTP routes of the shortener.

Routes parse the request, apply the per-worker rate limits, hand off to
this worker's URLShorteningService and translate its exceptions into
status codes. They hold no business logic of their own.

Routes:
- POST /api/shorten            create a short URL (201)
- GET  /api/stats/{short_code} statistics for a short URL (200)
- GET  /{short_code}           redirect to the original URL (302)

The catch-all redirect route is declared last so it never shadows the
/api routes.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from shortener.api.schemas import ShortenRequest, ShortenResponse, StatsResponse
from shortener.core.exceptions import InvalidURLError, ShortCodeNotFoundError, StoreError
from shortener.core.rate_limit import RATE_LIMITS, limiter
from shortener.core.setting import settings
from shortener.core.worker_context import get_url_service
from shortener.services.url_service import URLShorteningService

logger = logging.getLogger(__name__)

router = APIRouter()


def build_short_url(request: Request, short_code: str) -> str:
    """
    Build the public short URL for ``short_code``.

    Uses BASE_URL when configured, otherwise the scheme and host the
    client used to reach this service.
    """
    base_url = settings.BASE_URL or str(request.base_url).rstrip("/")
    return f"{base_url}/{short_code}"


@router.post(
    "/api/shorten",
    response_model=ShortenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a short URL",
    description="Takes a long URL and returns a shortened version with a unique code"
)
@limiter.limit(RATE_LIMITS["shorten"])
async def create_short_url(
    request: Request,  # Required for rate limiting (slowapi expects parameter named 'request')
    body: ShortenRequest,
    url_service: URLShorteningService = Depends(get_url_service)
) -> ShortenResponse:
    """
    Create a new short URL from a long URL.

    Raises:
        HTTPException 400: If the URL is missing or malformed
        HTTPException 500: If the store fails
    """
    try:
        record = await url_service.create_short_url(body.url)
    except InvalidURLError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.reason
        )
    except StoreError as e:
        logger.error(f"Error shortening URL: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to shorten URL"
        )

    return ShortenResponse(
        original_url=record.original_url,
        short_url=build_short_url(request, record.short_code),
        short_code=record.short_code
    )


@router.get(
    "/api/stats/{short_code}",
    response_model=StatsResponse,
    summary="Get URL statistics",
    description="Returns statistics for a short URL including click count and creation date"
)
@limiter.limit(RATE_LIMITS["stats"])
async def get_url_stats(
    short_code: str,
    request: Request,  # Required for rate limiting
    url_service: URLShorteningService = Depends(get_url_service)
) -> StatsResponse:
    """
    Get statistics for a short URL.

    Raises:
        HTTPException 404: If short code not found
        HTTPException 500: If the store fails
    """
    try:
        stats = await url_service.get_stats(short_code)
    except StoreError as e:
        logger.error(f"Error getting stats for {short_code}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get stats"
        )

    if not stats:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="URL not found"
        )

    return StatsResponse(**stats)


@router.get(
    "/{short_code}",
    status_code=status.HTTP_302_FOUND,
    response_class=RedirectResponse,
    summary="Redirect to original URL",
    description="Takes a short code and redirects to the original long URL"
)
@limiter.limit(RATE_LIMITS["redirect"])
async def redirect_to_url(
    short_code: str,
    request: Request,
    url_service: URLShorteningService = Depends(get_url_service)
) -> RedirectResponse:
    """
    Redirect to the original URL for a given short code.

    The click is counted in the background after the lookup succeeds;
    the response never waits for it.

    Raises:
        HTTPException 404: If short code not found
        HTTPException 500: If the store fails
    """
    try:
        original_url = await url_service.redirect(short_code)
    except ShortCodeNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="URL not found"
        )
    except StoreError as e:
        logger.error(f"Error redirecting {short_code}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to redirect"
        )

    return RedirectResponse(
        url=original_url,
        status_code=status.HTTP_302_FOUND
    )
