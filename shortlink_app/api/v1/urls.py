from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from shortlink_app.config import settings
from shortlink_app.dependencies import (
    get_analytics_service,
    get_api_key_hash,
    get_url_service,
    require_api_key_hash,
)
from shortlink_app.schemas.url import ShortenRequest, ShortenResponse, URLResponse, URLStats
from shortlink_app.services.analytics_service import AnalyticsService
from shortlink_app.services.url_service import URLService

router = APIRouter(tags=["urls"])


@router.post(
    "/shorten",
    response_model=ShortenResponse,
    status_code=status.HTTP_201_CREATED,
    responses={200: {"model": ShortenResponse, "description": "Existing code returned"}},
)
def shorten_url(
    request: ShortenRequest,
    response: Response,
    url_service: URLService = Depends(get_url_service),
    api_key_hash: Optional[str] = Depends(get_api_key_hash)
):
    """Shorten a URL. Re-submitting the same destinations returns the same code (200)."""
    url, is_new = url_service.create_or_get_short_url(request, created_by_key=api_key_hash)

    if not is_new:
        response.status_code = status.HTTP_200_OK

    return ShortenResponse(
        code=url.code,
        short_url=f"{settings.base_url}/{url.code}",
        original_url=url.original_url,
        is_new=is_new,
    )


@router.get("/urls/{code}", response_model=URLResponse)
def get_url_info(
    code: str,
    url_service: URLService = Depends(get_url_service)
):
    """Get information about a live short URL"""
    return url_service.get_by_code(code, include_deleted=False)


@router.get("/urls/{code}/stats", response_model=URLStats)
def get_url_stats(
    code: str,
    analytics_service: AnalyticsService = Depends(get_analytics_service)
):
    """Click totals for today, this week and this month"""
    return analytics_service.url_stats(code)


@router.get("/my-urls", response_model=List[URLResponse])
def get_my_urls(
    api_key_hash: str = Depends(require_api_key_hash),
    url_service: URLService = Depends(get_url_service)
):
    """URLs created with the caller's X-API-Key"""
    return url_service.list_by_creator(api_key_hash)
