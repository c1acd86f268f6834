from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional, List
from ..utils.codec import decode_json


class MilestoneResponse(BaseModel):
    id: int
    assignment_id: int
    title: str
    due_at: Optional[datetime]
    completed: bool
    weight: float
    
    model_config = ConfigDict(from_attributes=True)


class AssignmentResponse(BaseModel):
    id: int
    user_id: int
    course_id: Optional[int]
    title: str
    due_at: Optional[datetime]
    progress_percent: int
    tags: List[str] = []
    milestones: List[MilestoneResponse] = []

    @classmethod
    def from_assignment(cls, assignment) -> "AssignmentResponse":
        return cls(
            id=assignment.id,
            user_id=assignment.user_id,
            course_id=assignment.course_id,
            title=assignment.title,
            due_at=assignment.due_at,
            progress_percent=assignment.progress_percent,
            # Empty or unreadable tag columns show as no tags
            tags=decode_json(assignment.tags, list).or_default([]),
            milestones=[MilestoneResponse.model_validate(m) for m in assignment.milestones],
        )


class MilestoneToggleResponse(BaseModel):
    milestone: MilestoneResponse
    assignment_progress: int


class MilestoneRemoveResponse(BaseModel):
    deleted: bool
    assignment_progress: int
