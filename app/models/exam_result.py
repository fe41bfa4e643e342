from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import GradeEnum

class ExamResult(Base):
    __tablename__ = "exam_results"

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    total_questions = Column(Integer, nullable=False)
    correct_answers = Column(Integer, nullable=False, default=0)
    incorrect_answers = Column(Integer, nullable=False, default=0)
    unanswered = Column(Integer, nullable=False, default=0)
    total_points = Column(Integer, nullable=False)
    points_earned = Column(Integer, nullable=False, default=0)
    percentage_score = Column(Integer, nullable=False, default=0)
    grade = Column(Enum(GradeEnum), nullable=False, default=GradeEnum.F)
    passed = Column(Boolean, nullable=False, default=False)
    time_taken_seconds = Column(Integer, nullable=True)
    feedback = Column(String, nullable=True)
    completed_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    exam = relationship("Exam", back_populates="results")

    __table_args__ = (
        UniqueConstraint('exam_id', 'user_id', name='unique_exam_user_result'),
    )
