import math
from dataclasses import dataclass
from typing import Iterable
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from ..db.models.assignment import Assignment
from ..db.models.milestone import Milestone
from ..db.models.calendar import SOURCE_ASSIGNMENT_DEADLINE, SOURCE_MILESTONE
from ..core.exceptions import translate_storage_error
from ..utils.logger import get_logger
from .calendar_service import EventReconciler
from .source_repository import SourceRepository

logger = get_logger(__name__)


@dataclass
class ToggleResult:
    milestone: Milestone
    assignment_progress: int


def compute_progress(milestones: Iterable[Milestone]) -> int:
    """Weighted share of completed milestones, as a whole percentage in [0, 100]."""
    milestones = list(milestones)
    total = sum(m.weight for m in milestones if m.weight and m.weight > 0)
    if not milestones or total <= 0:
        return 0

    done = sum(m.weight for m in milestones if m.completed and m.weight and m.weight > 0)
    # Half-up rounding, not banker's rounding
    progress = math.floor(100 * done / total + 0.5)
    return max(0, min(100, progress))


class ProgressRecalculator:
    def __init__(self, db: Session, reconciler: EventReconciler = None):
        self.db = db
        self.repository = SourceRepository(db)
        self.reconciler = reconciler or EventReconciler(db, self.repository)

    def toggle(self, milestone_id: int, user_id: int) -> ToggleResult:
        milestone, assignment = self.repository.get_owned_milestone(milestone_id, user_id)

        try:
            milestone.completed = not milestone.completed
            self.db.flush()
            progress = self._recalculate(assignment)
            self.db.commit()
            self.db.refresh(milestone)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error toggling milestone {milestone_id}: {e}")
            raise translate_storage_error(e)

        logger.info(
            f"Milestone {milestone.id} marked {'completed' if milestone.completed else 'incomplete'}; "
            f"assignment {assignment.id} progress {progress}%"
        )

        self.reconciler.set_source_status(user_id, SOURCE_MILESTONE, milestone.id, milestone.completed)
        self.reconciler.set_source_status(user_id, SOURCE_ASSIGNMENT_DEADLINE, assignment.id, progress >= 100)
        return ToggleResult(milestone=milestone, assignment_progress=progress)

    def remove_milestone(self, milestone_id: int, user_id: int) -> int:
        """Delete a milestone, drop its calendar event, and return the new assignment progress."""
        assignment = self.repository.delete_milestone(milestone_id, user_id)

        try:
            progress = self._recalculate(assignment)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error recalculating progress for assignment {assignment.id}: {e}")
            raise translate_storage_error(e)

        self.reconciler.remove_source_events(user_id, SOURCE_MILESTONE, [milestone_id])
        self.reconciler.set_source_status(user_id, SOURCE_ASSIGNMENT_DEADLINE, assignment.id, progress >= 100)
        return progress

    def _recalculate(self, assignment: Assignment) -> int:
        milestones = self.db.query(Milestone).filter(
            Milestone.assignment_id == assignment.id
        ).all()
        progress = compute_progress(milestones)
        assignment.progress_percent = progress
        return progress
