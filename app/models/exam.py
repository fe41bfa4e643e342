from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import ExamStatusEnum
from app.utils.clock import utcnow

EXPIRABLE_STATUSES = {
    ExamStatusEnum.PENDING,
    ExamStatusEnum.PROCESSING,
    ExamStatusEnum.READY,
    ExamStatusEnum.IN_PROGRESS,
}

class Exam(Base):
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    total_questions = Column(Integer, nullable=False, default=10)
    passing_score = Column(Integer, nullable=False, default=70)
    time_limit_minutes = Column(Integer, nullable=True)
    # Fixed at creation from time_limit_minutes, never recomputed.
    expires_at = Column(DateTime, nullable=True)
    status = Column(Enum(ExamStatusEnum), nullable=False, default=ExamStatusEnum.PENDING, index=True)
    error_message = Column(String, nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    document = relationship("Document", back_populates="exams")
    questions = relationship("Question", back_populates="exam", order_by="Question.question_number")
    answers = relationship("StudentAnswer", back_populates="exam")
    results = relationship("ExamResult", back_populates="exam")

    def is_expired(self, now=None) -> bool:
        return self.expires_at is not None and (now or utcnow()) > self.expires_at

    def status_at(self, now=None) -> ExamStatusEnum:
        """Status as a caller should see it; `expired` is never written."""
        if self.status in EXPIRABLE_STATUSES and self.is_expired(now):
            return ExamStatusEnum.EXPIRED
        return self.status

    @property
    def effective_status(self) -> ExamStatusEnum:
        return self.status_at()
