from fastapi import APIRouter, HTTPException
from ...core.exceptions import NotFoundError, ValidationError
from ...services.progress_service import ProgressRecalculator
from ...services.auth import user_dependency
from ...db.base import db_dependency
from ...schemas.assignment import MilestoneResponse, MilestoneToggleResponse, MilestoneRemoveResponse
from ...utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix='/milestones', tags=['milestones'])


@router.patch("/{milestone_id}/toggle", response_model=MilestoneToggleResponse)
async def toggle_milestone(
    milestone_id: int,
    user: user_dependency,
    db: db_dependency
):
    try:
        recalculator = ProgressRecalculator(db)
        result = recalculator.toggle(milestone_id, user.id)
        return MilestoneToggleResponse(
            milestone=MilestoneResponse.model_validate(result.milestone),
            assignment_progress=result.assignment_progress
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error toggling milestone {milestone_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/{milestone_id}/remove", response_model=MilestoneRemoveResponse)
async def delete_milestone(
    milestone_id: int,
    user: user_dependency,
    db: db_dependency
):
    try:
        recalculator = ProgressRecalculator(db)
        progress = recalculator.remove_milestone(milestone_id, user.id)
        return MilestoneRemoveResponse(deleted=True, assignment_progress=progress)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error deleting milestone {milestone_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
