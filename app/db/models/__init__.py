from .user import User
from .course import Course
from .assignment import Assignment
from .milestone import Milestone
from .calendar import CalendarEvent

__all__ = [
    "User",
    "Course",
    "Assignment",
    "Milestone",
    "CalendarEvent"
]
