from sqlalchemy import BigInteger, Column, DateTime, Integer, String, Text
from shortlink_app.database.connection import Base
from shortlink_app.utils.clock import utc_now


SHORT_CODE_MAX_LENGTH = 16


class ShortURL(Base):
    """
    A short code and the destinations it redirects to.

    The unique constraints on code and content_fingerprint are the authority
    for concurrent writers; the service recovers from IntegrityError on them.
    Rows are tombstoned (deleted_at), never physically deleted.
    """
    __tablename__ = "short_urls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # unique=True + index=True creates a unique index
    code = Column(String(SHORT_CODE_MAX_LENGTH), unique=True, nullable=False, index=True)
    original_url = Column(Text, nullable=False)
    ios_redirect_url = Column(Text, nullable=True)
    android_redirect_url = Column(Text, nullable=True)
    desktop_redirect_url = Column(Text, nullable=True)
    mac_redirect_url = Column(Text, nullable=True)
    content_fingerprint = Column(String(64), unique=True, nullable=False, index=True)
    click_count = Column(BigInteger, nullable=False, default=0)  # Only ever incremented
    created_by_key = Column(String(64), nullable=True, index=True)  # Hashed API key
    created_at = Column(DateTime, nullable=False, default=utc_now, index=True)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)
    deleted_at = Column(DateTime, nullable=True, index=True)

    def redirect_overrides(self) -> dict:
        """Platform label -> override URL (may be None)"""
        return {
            "ios": self.ios_redirect_url,
            "android": self.android_redirect_url,
            "desktop": self.desktop_redirect_url,
            "mac": self.mac_redirect_url,
        }
