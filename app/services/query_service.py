from datetime import datetime
from typing import List, Optional
from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from ..db.models.calendar import CalendarEvent, STATUS_COMPLETED, STATUS_OVERDUE, STATUS_UPCOMING
from ..core.exceptions import NotFoundError, ValidationError, translate_storage_error
from ..utils.logger import get_logger
from ..utils.timeutils import to_utc, utcnow
from .source_repository import require_id

logger = get_logger(__name__)


def effective_status(event: CalendarEvent, now: Optional[datetime] = None) -> str:
    """Status of an event as seen at `now` (UTC); overdue is never stored."""
    if event.status == STATUS_COMPLETED:
        return STATUS_COMPLETED
    now = to_utc(now) if now is not None else utcnow()
    return STATUS_UPCOMING if now < event.start_at else STATUS_OVERDUE


class CalendarQueryService:
    def __init__(self, db: Session):
        self.db = db

    def get_upcoming_events(self, user_id: int, limit: int = 5, now: Optional[datetime] = None) -> List[CalendarEvent]:
        require_id(user_id, "user id")
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError(f"Invalid limit: {limit!r}")
        now = to_utc(now) if now is not None else utcnow()

        try:
            events = self.db.query(CalendarEvent).filter(
                and_(
                    CalendarEvent.user_id == user_id,
                    CalendarEvent.start_at >= now
                )
            ).order_by(
                CalendarEvent.start_at.asc(),
                CalendarEvent.id.asc()
            ).limit(limit).all()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving upcoming events for user {user_id}: {e}")
            raise translate_storage_error(e)

        logger.info(f"Retrieved {len(events)} upcoming events for user {user_id}")
        return events

    def get_overdue_events(self, user_id: int, now: Optional[datetime] = None) -> List[CalendarEvent]:
        """Past events whose source is not done yet, oldest first."""
        require_id(user_id, "user id")
        now = to_utc(now) if now is not None else utcnow()

        try:
            events = self.db.query(CalendarEvent).filter(
                and_(
                    CalendarEvent.user_id == user_id,
                    CalendarEvent.start_at < now,
                    CalendarEvent.status != STATUS_COMPLETED
                )
            ).order_by(
                CalendarEvent.start_at.asc(),
                CalendarEvent.id.asc()
            ).all()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving overdue events for user {user_id}: {e}")
            raise translate_storage_error(e)

        logger.info(f"Retrieved {len(events)} overdue events for user {user_id}")
        return events

    def get_events(
        self,
        user_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[CalendarEvent]:
        require_id(user_id, "user id")
        query = self.db.query(CalendarEvent).filter(CalendarEvent.user_id == user_id)

        if start is not None:
            query = query.filter(CalendarEvent.start_at >= to_utc(start))
        if end is not None:
            query = query.filter(CalendarEvent.start_at <= to_utc(end))
        if start is not None and end is not None and to_utc(start) > to_utc(end):
            raise ValidationError("Range start must not be after range end")

        try:
            return query.order_by(
                CalendarEvent.start_at.asc(),
                CalendarEvent.id.asc()
            ).all()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving events for user {user_id}: {e}")
            raise translate_storage_error(e)

    def get_event(self, event_id: int, user_id: int) -> CalendarEvent:
        require_id(event_id, "event id")
        require_id(user_id, "user id")
        try:
            event = self.db.query(CalendarEvent).filter(
                and_(
                    CalendarEvent.id == event_id,
                    CalendarEvent.user_id == user_id
                )
            ).first()
        except SQLAlchemyError as e:
            raise translate_storage_error(e)

        if not event:
            logger.warning(f"Calendar event {event_id} not found for user {user_id}")
            raise NotFoundError("Calendar event", event_id)
        return event
