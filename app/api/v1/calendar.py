from fastapi import APIRouter, HTTPException, status, Query
from typing import Optional
from datetime import datetime
from ...core.exceptions import NotFoundError, ValidationError
from ...services.calendar_service import EventReconciler
from ...services.query_service import CalendarQueryService, effective_status
from ...services.sync_service import SyncOrchestrator
from ...services.auth import user_dependency
from ...db.base import db_dependency
from ...schemas.calendar import (
    CalendarEventResponse,
    CalendarEventListResponse,
    SyncSummaryResponse,
    AssignmentSyncResponse,
)
from ...utils.logger import get_logger
from ...utils.timeutils import utcnow

logger = get_logger(__name__)

router = APIRouter(prefix='/calendar', tags=['calendar'])


def _event_list(events) -> CalendarEventListResponse:
    now = utcnow()
    return CalendarEventListResponse(
        events=[CalendarEventResponse.from_event(e, effective_status(e, now)) for e in events],
        count=len(events)
    )


@router.get("/events", response_model=CalendarEventListResponse)
async def get_events(
    user: user_dependency,
    db: db_dependency,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
):
    try:
        query_service = CalendarQueryService(db)
        events = query_service.get_events(user.id, start=start, end=end)
        return _event_list(events)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error getting events for user {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/events/upcoming", response_model=CalendarEventListResponse)
async def get_upcoming_events(
    user: user_dependency,
    db: db_dependency,
    limit: int = Query(5, ge=1, le=50)
):
    try:
        query_service = CalendarQueryService(db)
        events = query_service.get_upcoming_events(user.id, limit)
        return _event_list(events)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error getting upcoming events for user {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/events/overdue", response_model=CalendarEventListResponse)
async def get_overdue_events(
    user: user_dependency,
    db: db_dependency
):
    try:
        query_service = CalendarQueryService(db)
        events = query_service.get_overdue_events(user.id)
        return _event_list(events)
    except Exception as e:
        logger.error(f"Error getting overdue events for user {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/events/{event_id}", response_model=CalendarEventResponse)
async def get_event(
    event_id: int,
    user: user_dependency,
    db: db_dependency
):
    try:
        query_service = CalendarQueryService(db)
        event = query_service.get_event(event_id, user.id)
        return CalendarEventResponse.from_event(event, effective_status(event))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error getting event {event_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/sync", response_model=SyncSummaryResponse)
def sync_events(
    user: user_dependency,
    db: db_dependency
):
    # Plain def: the sync pass blocks on its worker pool
    try:
        orchestrator = SyncOrchestrator(db)
        summary = orchestrator.sync_user_events(user.id)
        return SyncSummaryResponse(**summary.as_dict())
    except Exception as e:
        logger.error(f"Error syncing events for user {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/sync/{assignment_id}", response_model=AssignmentSyncResponse)
async def sync_assignment_events(
    assignment_id: int,
    user: user_dependency,
    db: db_dependency
):
    try:
        reconciler = EventReconciler(db)
        deadline_event = reconciler.generate_assignment_deadline_event(assignment_id, user.id)
        milestone_events = reconciler.generate_milestone_events(assignment_id, user.id)

        now = utcnow()
        return AssignmentSyncResponse(
            deadline_event=(
                CalendarEventResponse.from_event(deadline_event, effective_status(deadline_event, now))
                if deadline_event else None
            ),
            milestone_events=[
                CalendarEventResponse.from_event(e, effective_status(e, now)) for e in milestone_events
            ]
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error syncing events for assignment {assignment_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
