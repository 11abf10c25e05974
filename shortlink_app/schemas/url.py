from pydantic import BaseModel, HttpUrl, Field, TypeAdapter, ValidationError, computed_field, ConfigDict, field_validator
from typing import List, Optional
from datetime import datetime
from shortlink_app.config import settings


_http_url = TypeAdapter(HttpUrl)

DESTINATION_FIELDS = (
    "url",
    "ios_redirect_url",
    "android_redirect_url",
    "desktop_redirect_url",
    "mac_redirect_url",
)


class ShortenRequest(BaseModel):
    """
    Destination set to shorten. Blank overrides are treated as absent.

    Each URL must parse as an http(s) ``HttpUrl`` but is kept exactly as
    sent (surrounding whitespace aside), so ``https://example.com`` is
    stored and redirected to without a trailing slash.
    """
    url: str = Field(..., description="The original URL to be shortened")
    ios_redirect_url: Optional[str] = Field(None, description="Override for iPhone/iPad clients")
    android_redirect_url: Optional[str] = Field(None, description="Override for Android clients")
    desktop_redirect_url: Optional[str] = Field(None, description="Override for Windows/Linux clients")
    mac_redirect_url: Optional[str] = Field(None, description="Override for macOS clients")

    @field_validator(*DESTINATION_FIELDS[1:], mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator(*DESTINATION_FIELDS)
    @classmethod
    def check_http_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        try:
            _http_url.validate_python(value)
        except ValidationError as e:
            raise ValueError(e.errors()[0]["msg"]) from e
        return value

    def destination_strings(self) -> List[str]:
        """original, ios, android, desktop, mac as plain strings ('' when absent)"""
        return [getattr(self, name) or "" for name in DESTINATION_FIELDS]


class ShortenResponse(BaseModel):
    code: str
    short_url: str
    original_url: str
    is_new: bool


class URLResponse(BaseModel):
    """Serializes a ShortURL row (ORM mode)"""
    code: str
    original_url: str
    ios_redirect_url: Optional[str] = None
    android_redirect_url: Optional[str] = None
    desktop_redirect_url: Optional[str] = None
    mac_redirect_url: Optional[str] = None
    click_count: int
    created_at: datetime
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @computed_field
    @property
    def short_url(self) -> str:
        return f"{settings.base_url}/{self.code}"

    model_config = ConfigDict(from_attributes=True)


class URLStats(BaseModel):
    code: str
    original_url: str
    created_at: datetime
    click_count: int
    total_clicks: int
    clicks_today: int
    clicks_this_week: int
    clicks_this_month: int
    unique_visitors: int
    last_click_at: Optional[datetime] = None
    avg_clicks_per_day: float


class BulkCodesRequest(BaseModel):
    codes: List[str] = Field(..., min_length=1, max_length=1000)


class BulkResult(BaseModel):
    affected: int


class URLList(BaseModel):
    items: List[URLResponse]
    total: int
    offset: int
    limit: int
