from typing import Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status

from shortlink_app.dependencies import get_analytics_service, get_url_service, require_admin
from shortlink_app.schemas.analytics import ClickTrendPoint, RecentActivity, SystemStats, TopURL, URLAnalyticsPage
from shortlink_app.schemas.url import BulkCodesRequest, BulkResult, URLList, URLResponse
from shortlink_app.services.analytics_service import AnalyticsService
from shortlink_app.services.url_service import URLService

router = APIRouter(tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/system/stats", response_model=SystemStats)
def get_system_stats(
    analytics_service: AnalyticsService = Depends(get_analytics_service)
):
    return analytics_service.system_summary()


@router.get("/urls/deleted", response_model=URLList)
def list_deleted_urls(
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    url_service: URLService = Depends(get_url_service)
):
    items, total = url_service.list_deleted(offset=offset, limit=limit)
    return URLList(
        items=[URLResponse.model_validate(url) for url in items],
        total=total,
        offset=offset,
        limit=limit,
    )


@router.get("/urls/analytics", response_model=URLAnalyticsPage)
def get_urls_analytics(
    page: int = Query(1, ge=1),
    limit: int = Query(25, ge=1, le=100),
    source: Optional[Literal["api", "web"]] = None,
    platform: Optional[str] = None,
    min_clicks: Optional[int] = Query(None, ge=0),
    search: Optional[str] = None,
    analytics_service: AnalyticsService = Depends(get_analytics_service)
):
    """Every live URL with its platform counts and latest clicks, most clicked first"""
    return analytics_service.all_urls_analytics(
        page=page,
        limit=limit,
        source=source,
        platform=platform,
        min_clicks=min_clicks,
        search=search,
    )


@router.get("/urls/top", response_model=List[TopURL])
def get_top_urls(
    limit: int = Query(10, ge=1, le=100),
    analytics_service: AnalyticsService = Depends(get_analytics_service)
):
    return analytics_service.top_urls(limit)


@router.delete("/urls/{code}", status_code=status.HTTP_204_NO_CONTENT)
def delete_url(
    code: str,
    url_service: URLService = Depends(get_url_service)
):
    """Soft delete: the code stops redirecting but keeps its analytics"""
    url_service.soft_delete(code)


@router.post("/urls/{code}/restore", response_model=URLResponse)
def restore_url(
    code: str,
    url_service: URLService = Depends(get_url_service)
):
    return url_service.restore(code)


@router.post("/urls/bulk-delete", response_model=BulkResult)
def bulk_delete_urls(
    payload: BulkCodesRequest,
    url_service: URLService = Depends(get_url_service)
):
    return BulkResult(affected=url_service.bulk_soft_delete(payload.codes))


@router.post("/urls/bulk-restore", response_model=BulkResult)
def bulk_restore_urls(
    payload: BulkCodesRequest,
    url_service: URLService = Depends(get_url_service)
):
    return BulkResult(affected=url_service.bulk_restore(payload.codes))


@router.get("/activity", response_model=RecentActivity)
def get_recent_activity(
    limit: int = Query(10, ge=1, le=100),
    analytics_service: AnalyticsService = Depends(get_analytics_service)
):
    return analytics_service.recent_activity(limit)


@router.get("/analytics/geo", response_model=Dict[str, int])
def get_geo_stats(
    code: Optional[str] = None,
    analytics_service: AnalyticsService = Depends(get_analytics_service)
):
    return analytics_service.geo_breakdown(code)


@router.get("/analytics/referrers", response_model=Dict[str, int])
def get_referrer_stats(
    code: Optional[str] = None,
    limit: int = Query(10, ge=1, le=100),
    analytics_service: AnalyticsService = Depends(get_analytics_service)
):
    return analytics_service.referrer_breakdown(code, limit=limit)


@router.get("/analytics/trends", response_model=List[ClickTrendPoint])
def get_click_trends(
    code: Optional[str] = None,
    days: int = Query(7, ge=1, le=365),
    analytics_service: AnalyticsService = Depends(get_analytics_service)
):
    return analytics_service.trend(code, days=days)
