"""
Analytics over stored click events.

Everything is computed from the store at query time: no rollup tables, no
caching. All queries are read-only and return empty mappings on empty data.

Ranked mappings ("top N", breakdowns) are ordered by count descending,
ties broken by label ascending, so results are reproducible.
"""

import math
from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from shortlink_app.database.connection import translate_store_errors
from shortlink_app.exceptions import InvalidInputError, NotFoundError
from shortlink_app.models.click import ClickEvent
from shortlink_app.models.url import ShortURL
from shortlink_app.schemas.analytics import (
    ClickEventResponse,
    ClickTrendPoint,
    CodeAnalytics,
    DailyTrend,
    DetailedCodeAnalytics,
    HourlyTrend,
    Pagination,
    RecentActivity,
    SystemStats,
    TopURL,
    URLAnalyticsFilters,
    URLAnalyticsPage,
    URLAnalyticsSummary,
)
from shortlink_app.schemas.url import URLResponse, URLStats
from shortlink_app.services.url_service import URLService
from shortlink_app.utils.clock import local_midnight, period_starts, to_local, to_utc_naive, utc_now


UNKNOWN_LABEL = "unknown"
DIRECT_REFERRER_LABEL = "Direct"
URL_SUMMARY_RECENT_CLICKS = 5


def rank_counts(counts: Dict[str, int], limit: Optional[int] = None) -> Dict[str, int]:
    """Order a label -> count mapping by count desc, then label asc"""
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    if limit is not None:
        ranked = ranked[:limit]
    return dict(ranked)


class AnalyticsService:
    """
    Read-only aggregation over short_urls and click_events.

    Calendar periods (today, this week, this month, daily buckets, hour of
    day) are evaluated in ``timezone_name`` against the clock at query time.
    """

    def __init__(
        self,
        db: Session,
        timezone_name: str = "UTC",
        week_start_day: int = 6,
        recent_limit: int = 10
    ):
        """
        Args:
            db: Database session
            timezone_name: IANA zone defining local midnight and hour buckets
            week_start_day: First day of the week, 0 = Monday ... 6 = Sunday
            recent_limit: Default number of recent clicks in a breakdown
        """
        self.db = db
        self.tz = ZoneInfo(timezone_name)
        self.week_start_day = week_start_day
        self.recent_limit = recent_limit

    # Per-code

    @translate_store_errors
    def per_code_breakdown(self, code: str, recent_limit: Optional[int] = None) -> CodeAnalytics:
        """Platform/browser/OS counts and the most recent clicks of one code"""
        url = self._get_url(code)
        return self._breakdown(url, recent_limit)

    @translate_store_errors
    def detailed_breakdown(self, code: str, days: int = 7) -> DetailedCodeAnalytics:
        """Breakdown plus geo, referrers and a daily click series"""
        url = self._get_url(code)
        base = self._breakdown(url, None)
        return DetailedCodeAnalytics(
            **base.model_dump(),
            geo_stats=self.geo_breakdown(code),
            referrer_stats=self.referrer_breakdown(code),
            daily_trends=self.trend(code, days),
        )

    @translate_store_errors
    def url_stats(self, code: str, now: Optional[datetime] = None) -> URLStats:
        url = self._get_url(code)
        now = to_utc_naive(now) if now else utc_now()
        starts = period_starts(now, self.tz, self.week_start_day)

        total_clicks = self._count_clicks(code=code)
        unique_visitors = self.db.query(func.count(distinct(ClickEvent.ip_address))) \
            .filter(ClickEvent.url_code == code).scalar() or 0
        last_click_at = self.db.query(func.max(ClickEvent.clicked_at)) \
            .filter(ClickEvent.url_code == code).scalar()

        days_since_creation = (now - url.created_at).total_seconds() / 86400
        avg_clicks_per_day = total_clicks / days_since_creation if days_since_creation > 0 else 0.0

        return URLStats(
            code=url.code,
            original_url=url.original_url,
            created_at=url.created_at,
            click_count=url.click_count,
            total_clicks=total_clicks,
            clicks_today=self._count_clicks(since=starts.today, code=code),
            clicks_this_week=self._count_clicks(since=starts.week, code=code),
            clicks_this_month=self._count_clicks(since=starts.month, code=code),
            unique_visitors=unique_visitors,
            last_click_at=last_click_at,
            avg_clicks_per_day=avg_clicks_per_day,
        )

    # System-wide (optionally filtered by code)

    @translate_store_errors
    def system_summary(self, now: Optional[datetime] = None) -> SystemStats:
        """
        System-wide rollup.

        URL counts cover live (non-tombstoned) URLs; click counts cover every
        recorded event, including clicks on URLs deleted since.
        """
        now = to_utc_naive(now) if now else utc_now()
        starts = period_starts(now, self.tz, self.week_start_day)

        total_urls = self._count_urls()
        total_clicks = self._count_clicks()

        urls_with_api_key = self.db.query(func.count(ShortURL.id)).filter(
            ShortURL.deleted_at.is_(None),
            ShortURL.created_by_key.is_not(None),
            ShortURL.created_by_key != ""
        ).scalar() or 0

        top_today = self.db.query(ClickEvent.url_code, func.count(ClickEvent.id)) \
            .filter(ClickEvent.clicked_at >= starts.today) \
            .group_by(ClickEvent.url_code) \
            .order_by(func.count(ClickEvent.id).desc(), ClickEvent.url_code) \
            .first()

        return SystemStats(
            total_urls=total_urls,
            total_clicks=total_clicks,
            urls_today=self._count_urls(since=starts.today),
            clicks_today=self._count_clicks(since=starts.today),
            urls_this_week=self._count_urls(since=starts.week),
            clicks_this_week=self._count_clicks(since=starts.week),
            urls_this_month=self._count_urls(since=starts.month),
            clicks_this_month=self._count_clicks(since=starts.month),
            urls_with_api_key=urls_with_api_key,
            urls_without_api_key=total_urls - urls_with_api_key,
            top_platforms=self._group_counts(ClickEvent.platform, limit=10),
            top_browsers=self._group_counts(ClickEvent.browser, limit=5),
            avg_clicks_per_url=total_clicks / total_urls if total_urls else 0.0,
            top_url_today=top_today[0] if top_today else None,
            daily_trends=self._daily_trends(now, days=7),
            hourly_trends=self._hourly_trends(now),
        )

    @translate_store_errors
    def geo_breakdown(self, code: Optional[str] = None) -> Dict[str, int]:
        """Clicks per country. Clicks without a country are left out."""
        return self._group_counts(ClickEvent.country, code=code, drop_blank=True)

    @translate_store_errors
    def referrer_breakdown(self, code: Optional[str] = None, limit: int = 10) -> Dict[str, int]:
        """Top referrers. No referrer counts as "Direct"."""
        return self._group_counts(
            ClickEvent.referrer,
            code=code,
            limit=limit,
            blank_label=DIRECT_REFERRER_LABEL
        )

    @translate_store_errors
    def trend(self, code: Optional[str] = None, days: int = 7, now: Optional[datetime] = None) -> List[ClickTrendPoint]:
        """
        Clicks per local day for the last ``days`` days, today included.

        Dense series, oldest first: days without clicks are present with 0.
        """
        if days < 1:
            raise InvalidInputError("days must be at least 1")

        now = to_utc_naive(now) if now else utc_now()
        day_starts = self._day_starts(now, days)
        clicks = self._bucket_by_local_date(
            self._click_times_since(to_utc_naive(day_starts[0]), code)
        )

        return [
            ClickTrendPoint(date=day.date(), clicks=clicks.get(day.date(), 0))
            for day in day_starts
        ]

    @translate_store_errors
    def top_urls(self, limit: int = 10) -> List[TopURL]:
        """Most clicked live URLs"""
        urls = self.db.query(ShortURL).filter(
            ShortURL.deleted_at.is_(None),
            ShortURL.click_count > 0
        ).order_by(ShortURL.click_count.desc(), ShortURL.code).limit(limit).all()

        return [
            TopURL(
                code=url.code,
                original_url=url.original_url,
                click_count=url.click_count,
                created_at=url.created_at,
                platform_stats=self._group_counts(ClickEvent.platform, code=url.code),
            )
            for url in urls
        ]

    @translate_store_errors
    def all_urls_analytics(
        self,
        page: int = 1,
        limit: int = 25,
        source: Optional[str] = None,
        platform: Optional[str] = None,
        min_clicks: Optional[int] = None,
        search: Optional[str] = None,
    ) -> URLAnalyticsPage:
        """Paginated live URLs with their platform counts and latest clicks"""
        if page < 1 or limit < 1:
            raise InvalidInputError("page and limit must be positive")

        filters = URLAnalyticsFilters(source=source, platform=platform, min_clicks=min_clicks, search=search)
        urls, total = URLService(self.db).list_urls(
            offset=(page - 1) * limit, limit=limit, **filters.model_dump()
        )

        return URLAnalyticsPage(
            data=[
                URLAnalyticsSummary(
                    code=url.code,
                    original_url=url.original_url,
                    click_count=url.click_count,
                    created_at=url.created_at,
                    created_by_api=url.created_by_key is not None,
                    platform_stats=self._group_counts(ClickEvent.platform, code=url.code),
                    recent_clicks=[
                        ClickEventResponse.model_validate(click)
                        for click in self._recent_clicks(url.code, URL_SUMMARY_RECENT_CLICKS)
                    ],
                )
                for url in urls
            ],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit),
            ),
            filters=filters,
        )

    @translate_store_errors
    def recent_activity(self, limit: int = 10) -> RecentActivity:
        recent_urls = self.db.query(ShortURL) \
            .filter(ShortURL.deleted_at.is_(None)) \
            .order_by(ShortURL.created_at.desc(), ShortURL.id.desc()) \
            .limit(limit).all()
        recent_clicks = self.db.query(ClickEvent) \
            .order_by(ClickEvent.clicked_at.desc(), ClickEvent.id.desc()) \
            .limit(limit).all()

        return RecentActivity(
            recent_urls=[URLResponse.model_validate(url) for url in recent_urls],
            recent_clicks=[ClickEventResponse.model_validate(click) for click in recent_clicks],
        )

    # Helpers

    def _get_url(self, code: str) -> ShortURL:
        # Tombstoned URLs keep their analytics
        url = self.db.query(ShortURL).filter(ShortURL.code == code).first()
        if not url:
            raise NotFoundError(f"Short URL '{code}' not found")
        return url

    def _breakdown(self, url: ShortURL, recent_limit: Optional[int]) -> CodeAnalytics:
        limit = self.recent_limit if recent_limit is None else recent_limit
        recent = self._recent_clicks(url.code, limit)

        return CodeAnalytics(
            code=url.code,
            original_url=url.original_url,
            click_count=url.click_count,
            created_at=url.created_at,
            platform_stats=self._group_counts(ClickEvent.platform, code=url.code),
            browser_stats=self._group_counts(ClickEvent.browser, code=url.code),
            os_stats=self._group_counts(ClickEvent.os, code=url.code),
            recent_clicks=[ClickEventResponse.model_validate(click) for click in recent],
        )

    def _recent_clicks(self, code: str, limit: int) -> List[ClickEvent]:
        return self.db.query(ClickEvent) \
            .filter(ClickEvent.url_code == code) \
            .order_by(ClickEvent.clicked_at.desc(), ClickEvent.id.desc()) \
            .limit(limit).all()

    def _group_counts(
        self,
        column,
        code: Optional[str] = None,
        limit: Optional[int] = None,
        blank_label: str = UNKNOWN_LABEL,
        drop_blank: bool = False
    ) -> Dict[str, int]:
        """GROUP BY one click_events column. NULL and '' share one bucket."""
        query = self.db.query(column, func.count(ClickEvent.id))
        if code is not None:
            query = query.filter(ClickEvent.url_code == code)

        counts: Dict[str, int] = {}
        for value, count in query.group_by(column).all():
            label = (value or "").strip()
            if not label:
                if drop_blank:
                    continue
                label = blank_label
            counts[label] = counts.get(label, 0) + count

        return rank_counts(counts, limit)

    def _count_urls(self, since: Optional[datetime] = None) -> int:
        query = self.db.query(func.count(ShortURL.id)).filter(ShortURL.deleted_at.is_(None))
        if since is not None:
            query = query.filter(ShortURL.created_at >= since)
        return query.scalar() or 0

    def _count_clicks(self, since: Optional[datetime] = None, code: Optional[str] = None) -> int:
        query = self.db.query(func.count(ClickEvent.id))
        if since is not None:
            query = query.filter(ClickEvent.clicked_at >= since)
        if code is not None:
            query = query.filter(ClickEvent.url_code == code)
        return query.scalar() or 0

    def _click_times_since(self, since: datetime, code: Optional[str] = None) -> List[datetime]:
        query = self.db.query(ClickEvent.clicked_at).filter(ClickEvent.clicked_at >= since)
        if code is not None:
            query = query.filter(ClickEvent.url_code == code)
        return [row[0] for row in query.all()]

    def _day_starts(self, now: datetime, days: int) -> List[datetime]:
        """Local midnights of the last ``days`` days, oldest first (aware, local tz)"""
        today = local_midnight(now, self.tz)
        return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]

    def _bucket_by_local_date(self, timestamps: List[datetime]) -> Counter:
        return Counter(to_local(ts, self.tz).date() for ts in timestamps)

    def _daily_trends(self, now: datetime, days: int) -> List[DailyTrend]:
        day_starts = self._day_starts(now, days)
        window_start = to_utc_naive(day_starts[0])

        url_times = [
            row[0] for row in self.db.query(ShortURL.created_at).filter(
                ShortURL.deleted_at.is_(None),
                ShortURL.created_at >= window_start
            ).all()
        ]
        urls = self._bucket_by_local_date(url_times)
        clicks = self._bucket_by_local_date(self._click_times_since(window_start))

        return [
            DailyTrend(date=day.date(), urls=urls.get(day.date(), 0), clicks=clicks.get(day.date(), 0))
            for day in day_starts
        ]

    def _hourly_trends(self, now: datetime) -> List[HourlyTrend]:
        """Clicks of the last 24 hours by local hour of day, hours 0-23"""
        hours = Counter(
            to_local(ts, self.tz).hour
            for ts in self._click_times_since(now - timedelta(hours=24))
        )
        return [HourlyTrend(hour=hour, count=hours.get(hour, 0)) for hour in range(24)]
