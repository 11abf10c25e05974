from sqlalchemy import Column, DateTime, Integer, String, Text
from shortlink_app.database.connection import Base
from shortlink_app.models.url import SHORT_CODE_MAX_LENGTH
from shortlink_app.utils.clock import utc_now


class ClickEvent(Base):
    """
    One redirect of one short code. Append-only.

    url_code is a plain back-reference (no foreign key), so events outlive
    tombstoned URLs. Chronological order comes from clicked_at, never id.
    """
    __tablename__ = "click_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url_code = Column(String(SHORT_CODE_MAX_LENGTH), nullable=False, index=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    platform = Column(String(32), nullable=True)
    browser = Column(String(32), nullable=True)
    os = Column(String(32), nullable=True)
    country = Column(String(64), nullable=True)
    city = Column(String(128), nullable=True)
    referrer = Column(Text, nullable=True)
    clicked_at = Column(DateTime, nullable=False, default=utc_now, index=True)
