from fastapi import APIRouter, Depends, Query

from shortlink_app.dependencies import get_analytics_service
from shortlink_app.schemas.analytics import CodeAnalytics, DetailedCodeAnalytics
from shortlink_app.services.analytics_service import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/{code}", response_model=CodeAnalytics)
def get_code_analytics(
    code: str,
    analytics_service: AnalyticsService = Depends(get_analytics_service)
):
    """Platform, browser and OS breakdown plus the latest clicks"""
    return analytics_service.per_code_breakdown(code)


@router.get("/{code}/detailed", response_model=DetailedCodeAnalytics)
def get_detailed_code_analytics(
    code: str,
    days: int = Query(7, ge=1, le=365),
    analytics_service: AnalyticsService = Depends(get_analytics_service)
):
    return analytics_service.detailed_breakdown(code, days=days)
