from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

from app.core.constants import GradeEnum

class ExamResult(BaseModel):
    id: int
    exam_id: int
    user_id: int
    total_questions: int
    correct_answers: int
    incorrect_answers: int
    unanswered: int
    total_points: int
    points_earned: int
    percentage_score: int
    grade: GradeEnum
    passed: bool
    time_taken_seconds: Optional[int] = None
    feedback: Optional[str] = None
    completed_at: datetime

    model_config = ConfigDict(from_attributes=True)
