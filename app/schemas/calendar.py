from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional, List

class CalendarEventResponse(BaseModel):
    id: int
    user_id: int
    source_type: str
    source_id: int
    title: str
    start_at: datetime
    all_day: bool
    status: str
    created_at: datetime
    updated_at: datetime
    
    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_event(cls, event, status: str) -> "CalendarEventResponse":
        response = cls.model_validate(event)
        response.status = status
        return response

class CalendarEventListResponse(BaseModel):
    events: List[CalendarEventResponse]
    count: int

class SyncSummaryResponse(BaseModel):
    assignment_events: int
    milestone_events: int
    inserted: int = 0
    updated: int = 0
    removed: int = 0
    failed: int = 0
    errors: List[str] = []

class AssignmentSyncResponse(BaseModel):
    deadline_event: Optional[CalendarEventResponse] = None
    milestone_events: List[CalendarEventResponse]
