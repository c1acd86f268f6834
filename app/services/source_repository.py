from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import List, Optional
from ..db.models.assignment import Assignment
from ..db.models.milestone import Milestone
from ..db.models.course import Course
from ..core.exceptions import NotFoundError, ValidationError, translate_storage_error
from ..utils.logger import get_logger

logger = get_logger(__name__)


def require_id(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"Invalid {name}: {value!r}")
    return value


class SourceRepository:
    """Owned reads over the planning entities that calendar events derive from."""

    def __init__(self, db: Session):
        self.db = db

    def get_assignment(self, assignment_id: int) -> Optional[Assignment]:
        require_id(assignment_id, "assignment id")
        try:
            return self.db.query(Assignment).filter(Assignment.id == assignment_id).first()
        except SQLAlchemyError as e:
            raise translate_storage_error(e)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Malformed stored assignment {assignment_id}: {e}")

    def get_owned_assignment(self, assignment_id: int, user_id: int) -> Assignment:
        # Foreign rows are reported exactly like missing ones
        require_id(user_id, "user id")
        assignment = self.get_assignment(assignment_id)
        if not assignment or assignment.user_id != user_id:
            logger.warning(f"Assignment {assignment_id} not found for user {user_id}")
            raise NotFoundError("Assignment", assignment_id)
        return assignment

    def list_assignments_by_user(self, user_id: int) -> List[Assignment]:
        require_id(user_id, "user id")
        try:
            return self.db.query(Assignment).filter(
                Assignment.user_id == user_id
            ).order_by(Assignment.id.asc()).all()
        except SQLAlchemyError as e:
            raise translate_storage_error(e)

    def list_assignment_ids_by_user(self, user_id: int) -> List[int]:
        # Ids only, so one unreadable row cannot hide its siblings
        require_id(user_id, "user id")
        try:
            rows = self.db.query(Assignment.id).filter(
                Assignment.user_id == user_id
            ).order_by(Assignment.id.asc()).all()
        except SQLAlchemyError as e:
            raise translate_storage_error(e)
        return [row.id for row in rows]

    def list_milestone_ids_by_assignment(self, assignment_id: int) -> List[int]:
        require_id(assignment_id, "assignment id")
        try:
            rows = self.db.query(Milestone.id).filter(
                Milestone.assignment_id == assignment_id
            ).order_by(Milestone.id.asc()).all()
        except SQLAlchemyError as e:
            raise translate_storage_error(e)
        return [row.id for row in rows]

    def list_milestones_by_assignment(self, assignment_id: int) -> List[Milestone]:
        require_id(assignment_id, "assignment id")
        try:
            return self.db.query(Milestone).filter(
                Milestone.assignment_id == assignment_id
            ).order_by(Milestone.id.asc()).all()
        except SQLAlchemyError as e:
            raise translate_storage_error(e)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Malformed stored milestone for assignment {assignment_id}: {e}")

    def get_milestone(self, milestone_id: int) -> Optional[Milestone]:
        require_id(milestone_id, "milestone id")
        try:
            return self.db.query(Milestone).filter(Milestone.id == milestone_id).first()
        except SQLAlchemyError as e:
            raise translate_storage_error(e)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Malformed stored milestone {milestone_id}: {e}")

    def get_owned_milestone(self, milestone_id: int, user_id: int):
        """Return (milestone, assignment) or raise NotFoundError."""
        require_id(user_id, "user id")
        milestone = self.get_milestone(milestone_id)
        if not milestone:
            logger.warning(f"Milestone {milestone_id} not found")
            raise NotFoundError("Milestone", milestone_id)

        assignment = self.get_assignment(milestone.assignment_id)
        if not assignment or assignment.user_id != user_id:
            logger.warning(f"Milestone {milestone_id} not found for user {user_id}")
            raise NotFoundError("Milestone", milestone_id)
        return milestone, assignment

    def list_courses_by_user(self, user_id: int, include_archived: bool = False) -> List[Course]:
        require_id(user_id, "user id")
        query = self.db.query(Course).filter(Course.user_id == user_id)
        if not include_archived:
            query = query.filter(Course.archived == False)
        try:
            return query.order_by(Course.id.asc()).all()
        except SQLAlchemyError as e:
            raise translate_storage_error(e)

    def delete_assignment(self, assignment_id: int, user_id: int) -> List[int]:
        """Delete an owned assignment and its milestones; returns the removed milestone ids."""
        assignment = self.get_owned_assignment(assignment_id, user_id)
        milestone_ids = [m.id for m in assignment.milestones]
        try:
            self.db.delete(assignment)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting assignment {assignment_id}: {e}")
            raise translate_storage_error(e)

        logger.info(f"Assignment deleted: {assignment_id} ({len(milestone_ids)} milestones)")
        return milestone_ids

    def delete_milestone(self, milestone_id: int, user_id: int) -> Assignment:
        milestone, assignment = self.get_owned_milestone(milestone_id, user_id)
        try:
            self.db.delete(milestone)
            self.db.commit()
            self.db.refresh(assignment)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting milestone {milestone_id}: {e}")
            raise translate_storage_error(e)

        logger.info(f"Milestone deleted: {milestone_id}")
        return assignment
