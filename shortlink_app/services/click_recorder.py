import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shortlink_app.database.connection import translate_store_errors
from shortlink_app.models.click import ClickEvent
from shortlink_app.queue.models import ClickMessage
from shortlink_app.utils.clock import to_utc_naive


logger = structlog.get_logger()


class ClickRecorder:
    """
    Appends click events.

    Every message becomes exactly one row: repeat clicks are not merged, and
    the code is not checked against short_urls, so events for deleted URLs
    are still kept. The counter increment is a separate call on URLService.
    """

    def __init__(self, db: Session):
        self.db = db

    @translate_store_errors
    def record(self, message: ClickMessage) -> ClickEvent:
        event = ClickEvent(
            url_code=message.code,
            ip_address=message.ip_address,
            user_agent=message.user_agent,
            platform=message.platform,
            browser=message.browser,
            os=message.os,
            country=message.country,
            city=message.city,
            referrer=message.referrer,
            clicked_at=to_utc_naive(message.clicked_at),
        )
        self.db.add(event)

        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.debug("Click recorded", code=message.code, platform=message.platform)
        return event
