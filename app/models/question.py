from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import DifficultyEnum

class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    question_number = Column(Integer, nullable=False)
    question_text = Column(String, nullable=False)
    points = Column(Integer, nullable=False)
    difficulty = Column(Enum(DifficultyEnum), nullable=False, default=DifficultyEnum.MEDIUM)
    explanation = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    exam = relationship("Exam", back_populates="questions")
    options = relationship("QuestionOption", back_populates="question", order_by="QuestionOption.order_number")
    answers = relationship("StudentAnswer", back_populates="question")

    __table_args__ = (
        UniqueConstraint('exam_id', 'question_number', name='unique_exam_question_number'),
    )

    @property
    def correct_option(self):
        return next((option for option in self.options if option.is_correct), None)
