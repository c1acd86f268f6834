from fastapi import APIRouter, HTTPException, Query
from typing import List
from ...core.exceptions import ValidationError
from ...services.source_repository import SourceRepository
from ...services.auth import user_dependency
from ...db.base import db_dependency
from ...schemas.course import CourseResponse
from ...utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix='/courses', tags=['courses'])


@router.get("/all", response_model=List[CourseResponse])
async def get_courses(
    user: user_dependency,
    db: db_dependency,
    include_archived: bool = Query(False)
):
    try:
        repository = SourceRepository(db)
        return repository.list_courses_by_user(user.id, include_archived=include_archived)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error listing courses for user {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
