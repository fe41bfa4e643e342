from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime

from app.core.constants import OptionLetterEnum

class AnswerSubmission(BaseModel):
    question_id: int
    selected_option: OptionLetterEnum

class ExamSubmission(BaseModel):
    answers: List[AnswerSubmission] = []

class StudentAnswer(BaseModel):
    id: int
    exam_id: int
    question_id: int
    user_id: int
    selected_option: OptionLetterEnum
    is_correct: bool
    points_earned: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
