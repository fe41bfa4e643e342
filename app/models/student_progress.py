from sqlalchemy import Column, Integer, Float, DateTime
from sqlalchemy.sql import func
from app.core.database import Base

class StudentProgress(Base):
    __tablename__ = "student_progress"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, unique=True, index=True)
    total_exams_taken = Column(Integer, nullable=False, default=0)
    total_exams_passed = Column(Integer, nullable=False, default=0)
    average_score = Column(Float, nullable=False, default=0.0)
    highest_score = Column(Integer, nullable=False, default=0)
    lowest_score = Column(Integer, nullable=True)
    total_documents_uploaded = Column(Integer, nullable=False, default=0)
    current_streak = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    last_activity_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
