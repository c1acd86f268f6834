from ..base import Base
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, ForeignKey
from sqlalchemy.orm import relationship
from ...utils.timeutils import utcnow


class Milestone(Base):
    __tablename__ = "milestones"
    
    id = Column(Integer, primary_key=True, index=True)
    assignment_id = Column(Integer, ForeignKey("assignments.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    due_at = Column(DateTime, nullable=True)
    completed = Column(Boolean, default=False, nullable=False)
    weight = Column(Float, default=1.0, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    
    assignment = relationship("Assignment", back_populates="milestones")

    def __repr__(self):
        return f"<Milestone(id={self.id}, assignment_id={self.assignment_id}, completed={self.completed})>"
