from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.constants import OptionLetterEnum

class QuestionOption(Base):
    __tablename__ = "question_options"

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False, index=True)
    letter = Column(Enum(OptionLetterEnum), nullable=False)
    option_text = Column(String, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    order_number = Column(Integer, nullable=False)

    question = relationship("Question", back_populates="options")

    __table_args__ = (
        UniqueConstraint('question_id', 'letter', name='unique_question_option_letter'),
        UniqueConstraint('question_id', 'order_number', name='unique_question_option_order'),
    )
