from ..base import Base
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from ...utils.timeutils import utcnow

SOURCE_ASSIGNMENT_DEADLINE = "assignment_deadline"
SOURCE_MILESTONE = "milestone"
SOURCE_CUSTOM = "custom"
SOURCE_TYPES = (SOURCE_ASSIGNMENT_DEADLINE, SOURCE_MILESTONE, SOURCE_CUSTOM)

STATUS_UPCOMING = "upcoming"
STATUS_OVERDUE = "overdue"
STATUS_COMPLETED = "completed"


class CalendarEvent(Base):
    __tablename__ = "calendar_events"
    __table_args__ = (
        UniqueConstraint("user_id", "source_type", "source_id", name="uq_calendar_events_source"),
        Index("ix_calendar_events_user_start", "user_id", "start_at"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    source_type = Column(String, nullable=False)
    # Weak reference to the assignment or milestone, no foreign key
    source_id = Column(Integer, nullable=False)
    title = Column(String, nullable=False)
    start_at = Column(DateTime, nullable=False)
    all_day = Column(Boolean, default=True, nullable=False)
    # Only "upcoming" or "completed" are stored; "overdue" is computed at read time
    status = Column(String, default=STATUS_UPCOMING, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)
    
    user = relationship("User", back_populates="calendar_events")

    def __repr__(self):
        return f"<CalendarEvent(id={self.id}, {self.source_type}:{self.source_id}, start_at={self.start_at})>"
