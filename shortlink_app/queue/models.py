"""
Data models for queue messages.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ClickMessage(BaseModel):
    """
    One redirect, as handed from the redirect route to the click worker.

    Platform, OS and browser are already sniffed from the user agent by the
    time the message is published.
    """

    code: str = Field(..., description="The short code that was accessed")
    clicked_at: datetime = Field(default_factory=_now, description="When the click happened")

    # Request metadata
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="User agent string")
    referrer: Optional[str] = Field(None, description="HTTP referer")

    # Derived from the user agent
    platform: Optional[str] = Field(None, description="ios, android, mac or desktop")
    os: Optional[str] = Field(None, description="Operating system label")
    browser: Optional[str] = Field(None, description="Browser label")

    # Geo (filled by an upstream proxy or enrichment step, if any)
    country: Optional[str] = Field(None, description="Country code (e.g., US, UK)")
    city: Optional[str] = Field(None, description="City name")

    # Set by the queue on consume, used for acknowledgment
    message_id: Optional[str] = Field(None, exclude=True)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "code": "aB3xY9",
                "clicked_at": "2025-10-29T10:30:00Z",
                "ip_address": "192.168.1.1",
                "user_agent": "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Safari/604.1",
                "referrer": "https://twitter.com",
                "platform": "ios",
                "os": "iOS",
                "browser": "Safari",
            }
        }
    )
