"""
FastAPI dependencies for dependency injection.

This is the only place (besides main.py and the worker entry point) where
settings are turned into service arguments. Services never read settings.
"""

import secrets
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.orm import Session

from shortlink_app.config import settings
from shortlink_app.database.connection import get_db
from shortlink_app.queue.factory import QueueFactory, QueueBackend
from shortlink_app.queue.strategies import QueueStrategy
from shortlink_app.services.analytics_service import AnalyticsService
from shortlink_app.services.short_code_strategies import RandomShortCodeStrategy, ShortCodeStrategy
from shortlink_app.services.url_service import URLService
from shortlink_app.utils.hashing import hash_secret


admin_security = HTTPBasic()


@lru_cache()
def get_queue() -> QueueStrategy:
    """
    Get queue instance (singleton).

    Factory gets config from settings internally.
    @lru_cache ensures this is called only once.
    """
    backend = QueueBackend(settings.queue_backend)
    return QueueFactory.create(backend)


@lru_cache()
def get_code_strategy() -> ShortCodeStrategy:
    return RandomShortCodeStrategy(
        length=settings.short_code_length,
        retry_budget=settings.short_code_retry_budget
    )


def get_url_service(db: Session = Depends(get_db)) -> URLService:
    return URLService(db=db, code_strategy=get_code_strategy())


def get_analytics_service(db: Session = Depends(get_db)) -> AnalyticsService:
    return AnalyticsService(
        db=db,
        timezone_name=settings.analytics_timezone,
        week_start_day=settings.week_start_day,
        recent_limit=settings.recent_clicks_limit
    )


def get_api_key_hash(x_api_key: Optional[str] = Header(None)) -> Optional[str]:
    """Hashed X-API-Key header, used to attribute created URLs. None when absent."""
    if not x_api_key or not x_api_key.strip():
        return None
    return hash_secret(x_api_key.strip())


def require_api_key_hash(api_key_hash: Optional[str] = Depends(get_api_key_hash)) -> str:
    if api_key_hash is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required"
        )
    return api_key_hash


def require_admin(credentials: HTTPBasicCredentials = Depends(admin_security)) -> str:
    """HTTP Basic check against the configured admin credentials"""
    username_ok = secrets.compare_digest(
        credentials.username.encode("utf-8"), settings.admin_username.encode("utf-8")
    )
    password_ok = secrets.compare_digest(
        credentials.password.encode("utf-8"), settings.admin_password.encode("utf-8")
    )
    if not (username_ok and password_ok):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return credentials.username
