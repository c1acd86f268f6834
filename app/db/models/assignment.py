from ..base import Base
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from ...utils.timeutils import utcnow


class Assignment(Base):
    __tablename__ = "assignments"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=True)
    title = Column(String, nullable=False)
    due_at = Column(DateTime, nullable=True)
    progress_percent = Column(Integer, default=0, nullable=False)
    tags = Column(Text, nullable=True)  # JSON list
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    
    user = relationship("User", back_populates="assignments")
    course = relationship("Course", back_populates="assignments")
    milestones = relationship(
        "Milestone",
        back_populates="assignment",
        cascade="all, delete-orphan",
        order_by="Milestone.id",
    )
