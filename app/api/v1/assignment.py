from fastapi import APIRouter, HTTPException, status
from typing import List
from ...core.exceptions import NotFoundError, ValidationError
from ...db.models.calendar import SOURCE_ASSIGNMENT_DEADLINE, SOURCE_MILESTONE
from ...services.calendar_service import EventReconciler
from ...services.source_repository import SourceRepository
from ...services.auth import user_dependency
from ...db.base import db_dependency
from ...schemas.assignment import AssignmentResponse
from ...utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix='/assignments', tags=['assignments'])


@router.get("/all", response_model=List[AssignmentResponse])
async def get_assignments(
    user: user_dependency,
    db: db_dependency
):
    try:
        repository = SourceRepository(db)
        assignments = repository.list_assignments_by_user(user.id)
        return [AssignmentResponse.from_assignment(a) for a in assignments]
    except Exception as e:
        logger.error(f"Error listing assignments for user {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{assignment_id}/get", response_model=AssignmentResponse)
async def get_assignment(
    assignment_id: int,
    user: user_dependency,
    db: db_dependency
):
    try:
        repository = SourceRepository(db)
        assignment = repository.get_owned_assignment(assignment_id, user.id)
        return AssignmentResponse.from_assignment(assignment)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error getting assignment {assignment_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/{assignment_id}/remove", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assignment(
    assignment_id: int,
    user: user_dependency,
    db: db_dependency
):
    try:
        repository = SourceRepository(db)
        milestone_ids = repository.delete_assignment(assignment_id, user.id)

        reconciler = EventReconciler(db, repository)
        reconciler.remove_source_events(user.id, SOURCE_ASSIGNMENT_DEADLINE, [assignment_id])
        reconciler.remove_source_events(user.id, SOURCE_MILESTONE, milestone_ids)
        return None
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error deleting assignment {assignment_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
