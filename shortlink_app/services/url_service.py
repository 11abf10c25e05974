from typing import List, Optional, Tuple

import structlog
from sqlalchemy import exists, func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shortlink_app.database.connection import translate_store_errors
from shortlink_app.exceptions import ConflictError, InvalidInputError, NotFoundError
from shortlink_app.models.click import ClickEvent
from shortlink_app.models.url import ShortURL
from shortlink_app.schemas.url import ShortenRequest
from shortlink_app.services.short_code_strategies import RandomShortCodeStrategy, ShortCodeStrategy
from shortlink_app.utils.clock import utc_now
from shortlink_app.utils.hashing import fingerprint


logger = structlog.get_logger()

URL_SOURCE_API = "api"
URL_SOURCE_WEB = "web"


class URLService:
    """
    Registry of short URLs.

    Owns code assignment, fingerprint deduplication, the click counter and
    the soft-delete lifecycle. Every read goes to the store; nothing is
    cached between requests.

    The code strategy is injected (defaults to random codes of
    ``code_length``), so the service itself needs no settings.
    """

    def __init__(
        self,
        db: Session,
        code_strategy: Optional[ShortCodeStrategy] = None,
        code_length: int = 6,
        max_insert_attempts: int = 5
    ):
        """
        Initialize URL service with dependencies.

        Args:
            db: Database session
            code_strategy: Short code generator (optional)
            code_length: Length of generated codes when no strategy is given
            max_insert_attempts: Inserts to try when other writers keep taking our code
        """
        self.db = db
        self.code_strategy = code_strategy or RandomShortCodeStrategy(length=code_length)
        self.max_insert_attempts = max_insert_attempts

    @translate_store_errors
    def create_or_get_short_url(
        self,
        request: ShortenRequest,
        created_by_key: Optional[str] = None
    ) -> Tuple[ShortURL, bool]:
        """
        Shorten a destination set, idempotently.

        Process:
        1. Fingerprint the URL + overrides
        2. Return the existing row for that fingerprint (live or tombstoned)
        3. Otherwise mint a unique code and insert
        4. On IntegrityError another writer won: return its row if it has our
           fingerprint, else our code was taken, so mint a new one

        Returns:
            (ShortURL, is_new)
        """
        original, ios, android, desktop, mac = request.destination_strings()
        content_fingerprint = fingerprint(original, ios, android, desktop, mac)

        existing = self._find_by_fingerprint(content_fingerprint)
        if existing:
            return existing, False

        for attempt in range(1, self.max_insert_attempts + 1):
            code = self.code_strategy.generate_unique(self._code_exists)
            url = ShortURL(
                code=code,
                original_url=original,
                ios_redirect_url=ios or None,
                android_redirect_url=android or None,
                desktop_redirect_url=desktop or None,
                mac_redirect_url=mac or None,
                content_fingerprint=content_fingerprint,
                created_by_key=created_by_key,
            )
            self.db.add(url)

            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()

                winner = self._find_by_fingerprint(content_fingerprint)
                if winner:
                    logger.info("Concurrent shorten resolved to existing code", code=winner.code)
                    return winner, False

                logger.info("Short code taken on insert, retrying", code=code, attempt=attempt)
                continue

            self.db.refresh(url)
            logger.info("Short URL created", code=url.code)
            return url, True

        raise ConflictError(
            f"Could not insert short URL after {self.max_insert_attempts} attempts"
        )

    @translate_store_errors
    def resolve(self, code: str) -> ShortURL:
        """Live URL for redirecting. Tombstoned codes count as missing."""
        url = self.db.query(ShortURL).filter(
            ShortURL.code == code,
            ShortURL.deleted_at.is_(None)
        ).first()

        if not url:
            raise NotFoundError(f"Short URL '{code}' not found")
        return url

    @translate_store_errors
    def get_by_code(self, code: str, include_deleted: bool = True) -> ShortURL:
        query = self.db.query(ShortURL).filter(ShortURL.code == code)
        if not include_deleted:
            query = query.filter(ShortURL.deleted_at.is_(None))

        url = query.first()
        if not url:
            raise NotFoundError(f"Short URL '{code}' not found")
        return url

    @translate_store_errors
    def increment_clicks(self, code: str) -> None:
        """
        Add one click in a single UPDATE statement.

        The store evaluates click_count + 1, so concurrent increments
        never overwrite each other.
        """
        result = self.db.execute(
            update(ShortURL)
            .where(ShortURL.code == code)
            .values(click_count=ShortURL.click_count + 1)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

        if result.rowcount == 0:
            raise NotFoundError(f"Short URL '{code}' not found")

    @translate_store_errors
    def soft_delete(self, code: str) -> ShortURL:
        """Tombstone a URL. Already tombstoned URLs are left as they are."""
        url = self.get_by_code(code)

        if url.deleted_at is None:
            url.deleted_at = utc_now()
            self.db.commit()
            self.db.refresh(url)
            logger.info("Short URL deleted", code=code)

        return url

    @translate_store_errors
    def restore(self, code: str) -> ShortURL:
        """Clear the tombstone. Code and click count are unchanged."""
        url = self.get_by_code(code)

        if url.deleted_at is not None:
            url.deleted_at = None
            self.db.commit()
            self.db.refresh(url)
            logger.info("Short URL restored", code=code)

        return url

    @translate_store_errors
    def bulk_soft_delete(self, codes: List[str]) -> int:
        result = self.db.execute(
            update(ShortURL)
            .where(ShortURL.code.in_(codes), ShortURL.deleted_at.is_(None))
            .values(deleted_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount

    @translate_store_errors
    def bulk_restore(self, codes: List[str]) -> int:
        result = self.db.execute(
            update(ShortURL)
            .where(ShortURL.code.in_(codes), ShortURL.deleted_at.is_not(None))
            .values(deleted_at=None)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount

    @translate_store_errors
    def list_by_creator(self, created_by_key: str) -> List[ShortURL]:
        """Live URLs created with one API key, newest first"""
        return self.db.query(ShortURL).filter(
            ShortURL.created_by_key == created_by_key,
            ShortURL.deleted_at.is_(None)
        ).order_by(ShortURL.created_at.desc(), ShortURL.id.desc()).all()

    @translate_store_errors
    def list_deleted(self, offset: int = 0, limit: int = 50) -> Tuple[List[ShortURL], int]:
        query = self.db.query(ShortURL).filter(ShortURL.deleted_at.is_not(None))
        total = query.count()
        items = query.order_by(ShortURL.deleted_at.desc(), ShortURL.id.desc()) \
            .offset(offset).limit(limit).all()
        return items, total

    @translate_store_errors
    def list_urls(
        self,
        offset: int = 0,
        limit: int = 25,
        source: Optional[str] = None,
        platform: Optional[str] = None,
        min_clicks: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[ShortURL], int]:
        """
        Live URLs, most clicked first (newest first among equals), with the
        total matching count.

        Filters, all optional and combined with AND:
            source: "api" (created with an API key) or "web" (without one)
            platform: at least one recorded click from this platform
            min_clicks: click_count of at least this value
            search: case-insensitive substring of the code or original URL
        """
        query = self.db.query(ShortURL).filter(ShortURL.deleted_at.is_(None))

        if source == URL_SOURCE_API:
            query = query.filter(ShortURL.created_by_key.is_not(None))
        elif source == URL_SOURCE_WEB:
            query = query.filter(ShortURL.created_by_key.is_(None))
        elif source is not None:
            raise InvalidInputError(f"source must be '{URL_SOURCE_API}' or '{URL_SOURCE_WEB}'")

        if platform:
            query = query.filter(exists().where(
                ClickEvent.url_code == ShortURL.code,
                ClickEvent.platform == platform
            ))

        if min_clicks is not None:
            query = query.filter(ShortURL.click_count >= min_clicks)

        if search and search.strip():
            term = search.strip().lower()
            query = query.filter(or_(
                func.lower(ShortURL.code).contains(term, autoescape=True),
                func.lower(ShortURL.original_url).contains(term, autoescape=True)
            ))

        total = query.count()
        items = query.order_by(
            ShortURL.click_count.desc(), ShortURL.created_at.desc(), ShortURL.id.desc()
        ).offset(offset).limit(limit).all()
        return items, total

    @staticmethod
    def resolve_redirect_target(url: ShortURL, platform: str) -> str:
        """Platform override when set and non-blank, otherwise the original URL"""
        override = url.redirect_overrides().get(platform)
        if override and override.strip():
            return override
        return url.original_url

    def _find_by_fingerprint(self, content_fingerprint: str) -> Optional[ShortURL]:
        # Tombstoned rows included: a restore must never leave two codes for one fingerprint
        return self.db.query(ShortURL).filter(
            ShortURL.content_fingerprint == content_fingerprint
        ).first()

    def _code_exists(self, code: str) -> bool:
        return self.db.query(ShortURL.id).filter(ShortURL.code == code).first() is not None
