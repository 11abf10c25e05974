from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from shortlink_app.schemas.url import URLResponse


class ClickEventResponse(BaseModel):
    id: int
    url_code: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    platform: Optional[str] = None
    browser: Optional[str] = None
    os: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    referrer: Optional[str] = None
    clicked_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DailyTrend(BaseModel):
    date: date
    urls: int = 0
    clicks: int = 0


class HourlyTrend(BaseModel):
    hour: int
    count: int


class ClickTrendPoint(BaseModel):
    date: date
    clicks: int


class CodeAnalytics(BaseModel):
    """Per-code breakdown. Mappings are ordered by count, highest first."""
    code: str
    original_url: str
    click_count: int
    created_at: datetime
    platform_stats: Dict[str, int]
    browser_stats: Dict[str, int]
    os_stats: Dict[str, int]
    recent_clicks: List[ClickEventResponse]


class DetailedCodeAnalytics(CodeAnalytics):
    geo_stats: Dict[str, int]
    referrer_stats: Dict[str, int]
    daily_trends: List[ClickTrendPoint]


class SystemStats(BaseModel):
    total_urls: int
    total_clicks: int
    urls_today: int
    clicks_today: int
    urls_this_week: int
    clicks_this_week: int
    urls_this_month: int
    clicks_this_month: int
    urls_with_api_key: int
    urls_without_api_key: int
    top_platforms: Dict[str, int]
    top_browsers: Dict[str, int]
    avg_clicks_per_url: float
    top_url_today: Optional[str] = None
    daily_trends: List[DailyTrend]
    hourly_trends: List[HourlyTrend]


class TopURL(BaseModel):
    code: str
    original_url: str
    click_count: int
    created_at: datetime
    platform_stats: Dict[str, int]


class RecentActivity(BaseModel):
    recent_urls: List[URLResponse]
    recent_clicks: List[ClickEventResponse]


class URLAnalyticsSummary(BaseModel):
    code: str
    original_url: str
    click_count: int
    created_at: datetime
    created_by_api: bool
    platform_stats: Dict[str, int]
    recent_clicks: List[ClickEventResponse]


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class URLAnalyticsFilters(BaseModel):
    source: Optional[str] = None
    platform: Optional[str] = None
    min_clicks: Optional[int] = None
    search: Optional[str] = None


class URLAnalyticsPage(BaseModel):
    """One page of per-URL analytics, with the filters that produced it"""
    data: List[URLAnalyticsSummary]
    pagination: Pagination
    filters: URLAnalyticsFilters
