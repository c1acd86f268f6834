from pydantic import BaseModel, ConfigDict
from datetime import datetime


class CourseResponse(BaseModel):
    id: int
    user_id: int
    title: str
    archived: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
