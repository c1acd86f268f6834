from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Tuple
from sqlalchemy import and_, insert, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from ..db.models.assignment import Assignment
from ..db.models.milestone import Milestone
from ..db.models.calendar import (
    CalendarEvent,
    SOURCE_ASSIGNMENT_DEADLINE,
    SOURCE_MILESTONE,
    SOURCE_TYPES,
    STATUS_COMPLETED,
    STATUS_UPCOMING,
)
from ..core.exceptions import ConflictError, ValidationError, translate_storage_error
from ..utils.logger import get_logger
from ..utils.timeutils import to_utc, utcnow
from .source_repository import SourceRepository, require_id

logger = get_logger(__name__)

OUTCOME_INSERTED = "inserted"
OUTCOME_UPDATED = "updated"
OUTCOME_UNCHANGED = "unchanged"
OUTCOME_SKIPPED = "skipped"
OUTCOME_FAILED = "failed"

# Dialects with INSERT ... ON CONFLICT DO UPDATE
NATIVE_UPSERT = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}

_events = CalendarEvent.__table__
_KEY_COLUMNS = [_events.c.user_id, _events.c.source_type, _events.c.source_id]


@dataclass
class ReconcileResult:
    """Outcome of reconciling one source fact into the calendar."""
    source_type: str
    source_id: int
    event: Optional[CalendarEvent] = None
    outcome: str = OUTCOME_SKIPPED
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.outcome == OUTCOME_FAILED


def deadline_title(assignment: Assignment) -> str:
    return f"Due: {assignment.title}"


class EventReconciler:
    """
    Keeps derived calendar events in agreement with assignments and milestones.

    Every event is keyed by (user_id, source_type, source_id) and written with a
    single conditional statement, so concurrent callers reconciling the same
    source can never create a second row.
    """

    def __init__(self, db: Session, repository: SourceRepository = None):
        self.db = db
        self.repository = repository or SourceRepository(db)

    def upsert_event(
        self,
        user_id: int,
        source_type: str,
        source_id: int,
        title: str,
        start_at: datetime,
        completed: bool = False
    ) -> CalendarEvent:
        event, _ = self._upsert(user_id, source_type, source_id, title, start_at, completed)
        return event

    def generate_assignment_deadline_event(self, assignment_id: int, user_id: int) -> Optional[CalendarEvent]:
        assignment = self.repository.get_owned_assignment(assignment_id, user_id)
        return self.reconcile_assignment(assignment).event

    def generate_milestone_events(self, assignment_id: int, user_id: int) -> List[CalendarEvent]:
        assignment = self.repository.get_owned_assignment(assignment_id, user_id)
        milestones = self.repository.list_milestones_by_assignment(assignment.id)

        results = [self.reconcile_milestone(assignment.user_id, m) for m in milestones]
        events = [r.event for r in results if r.event is not None]
        logger.info(f"Reconciled {len(events)} milestone events for assignment {assignment.id}")
        return events

    def reconcile_assignment(self, assignment: Assignment) -> ReconcileResult:
        if assignment.due_at is None:
            return ReconcileResult(SOURCE_ASSIGNMENT_DEADLINE, assignment.id)

        event, outcome = self._upsert(
            assignment.user_id,
            SOURCE_ASSIGNMENT_DEADLINE,
            assignment.id,
            deadline_title(assignment),
            assignment.due_at,
            completed=(assignment.progress_percent or 0) >= 100
        )
        return ReconcileResult(SOURCE_ASSIGNMENT_DEADLINE, assignment.id, event, outcome)

    def reconcile_milestone(self, user_id: int, milestone: Milestone) -> ReconcileResult:
        if milestone.due_at is None:
            return ReconcileResult(SOURCE_MILESTONE, milestone.id)

        event, outcome = self._upsert(
            user_id,
            SOURCE_MILESTONE,
            milestone.id,
            milestone.title,
            milestone.due_at,
            completed=bool(milestone.completed)
        )
        return ReconcileResult(SOURCE_MILESTONE, milestone.id, event, outcome)

    def set_source_status(self, user_id: int, source_type: str, source_id: int, completed: bool) -> bool:
        """Update the stored completion of an existing event. Never inserts."""
        status = STATUS_COMPLETED if completed else STATUS_UPCOMING
        try:
            changed = self.db.query(CalendarEvent).filter(
                and_(
                    CalendarEvent.user_id == user_id,
                    CalendarEvent.source_type == source_type,
                    CalendarEvent.source_id == source_id,
                    CalendarEvent.status != status
                )
            ).update({"status": status, "updated_at": utcnow()}, synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating status for {source_type}:{source_id}: {e}")
            raise translate_storage_error(e)
        return changed > 0

    def remove_source_events(self, user_id: int, source_type: str, source_ids: Iterable[int]) -> int:
        source_ids = list(source_ids)
        if not source_ids:
            return 0
        try:
            removed = self.db.query(CalendarEvent).filter(
                and_(
                    CalendarEvent.user_id == user_id,
                    CalendarEvent.source_type == source_type,
                    CalendarEvent.source_id.in_(source_ids)
                )
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error removing {source_type} events for user {user_id}: {e}")
            raise translate_storage_error(e)

        if removed:
            logger.info(f"Removed {removed} {source_type} events for user {user_id}")
        return removed

    def remove_stale_events(self, user_id: int, source_type: str, keep_ids: Iterable[int]) -> int:
        """Delete derived events whose source is gone or no longer has a due date."""
        keep_ids = list(keep_ids)
        try:
            removed = self.db.query(CalendarEvent).filter(
                and_(
                    CalendarEvent.user_id == user_id,
                    CalendarEvent.source_type == source_type,
                    CalendarEvent.source_id.notin_(keep_ids)
                )
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error pruning {source_type} events for user {user_id}: {e}")
            raise translate_storage_error(e)

        if removed:
            logger.info(f"Pruned {removed} stale {source_type} events for user {user_id}")
        return removed

    def _upsert(
        self,
        user_id: int,
        source_type: str,
        source_id: int,
        title: str,
        start_at,
        completed: bool = False
    ) -> Tuple[CalendarEvent, str]:
        require_id(user_id, "user id")
        require_id(source_id, "source id")
        if source_type not in SOURCE_TYPES:
            raise ValidationError(f"Unknown source type: {source_type!r}")
        if not title or not title.strip():
            raise ValidationError("Event title is required")

        now = utcnow()
        values = {
            "user_id": user_id,
            "source_type": source_type,
            "source_id": source_id,
            "title": title.strip(),
            "start_at": to_utc(start_at),
            "all_day": True,
            "status": STATUS_COMPLETED if completed else STATUS_UPCOMING,
            "created_at": now,
            "updated_at": now,
        }

        try:
            dialect_insert = NATIVE_UPSERT.get(self.db.get_bind().dialect.name)
            if dialect_insert is not None:
                self._native_upsert(dialect_insert, values)
            else:
                self._fallback_upsert(values)
            self.db.commit()

            event = self.db.query(CalendarEvent).filter(
                and_(
                    CalendarEvent.user_id == user_id,
                    CalendarEvent.source_type == source_type,
                    CalendarEvent.source_id == source_id
                )
            ).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error upserting {source_type}:{source_id} for user {user_id}: {e}")
            raise translate_storage_error(e)

        if event is None:
            raise ConflictError(f"Event {source_type}:{source_id} disappeared during upsert")

        # created_at/updated_at only carry our stamp if this call wrote them
        if event.created_at == now:
            outcome = OUTCOME_INSERTED
        elif event.updated_at == now:
            outcome = OUTCOME_UPDATED
        else:
            outcome = OUTCOME_UNCHANGED

        if outcome != OUTCOME_UNCHANGED:
            logger.info(f"Calendar event {outcome}: {event.id} ({source_type}:{source_id})")
        return event, outcome

    def _native_upsert(self, dialect_insert, values: dict):
        stmt = dialect_insert(_events).values(**values)
        excluded = stmt.excluded
        stmt = stmt.on_conflict_do_update(
            index_elements=_KEY_COLUMNS,
            set_={
                "title": excluded.title,
                "start_at": excluded.start_at,
                "status": excluded.status,
                "updated_at": excluded.updated_at,
            },
            # Unchanged rows keep their updated_at
            where=or_(
                _events.c.title != excluded.title,
                _events.c.start_at != excluded.start_at,
                _events.c.status != excluded.status
            )
        )
        self.db.execute(stmt)

    def _fallback_upsert(self, values: dict):
        try:
            with self.db.begin_nested():
                self.db.execute(insert(_events).values(**values))
            return
        except IntegrityError:
            logger.debug(f"Insert conflict on {values['source_type']}:{values['source_id']}, updating")

        self._resolve_conflict(values)

    def _resolve_conflict(self, values: dict):
        key = and_(
            _events.c.user_id == values["user_id"],
            _events.c.source_type == values["source_type"],
            _events.c.source_id == values["source_id"]
        )
        changed = or_(
            _events.c.title != values["title"],
            _events.c.start_at != values["start_at"],
            _events.c.status != values["status"]
        )
        result = self.db.execute(
            _events.update().where(and_(key, changed)).values(
                title=values["title"],
                start_at=values["start_at"],
                status=values["status"],
                updated_at=values["updated_at"]
            )
        )
        if result.rowcount == 0:
            exists = self.db.execute(_events.select().where(key)).first()
            if exists is None:
                raise ConflictError(
                    f"Conflicting insert for {values['source_type']}:{values['source_id']} left no row"
                )
