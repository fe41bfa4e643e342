from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

from app.core.constants import PerformanceLevelEnum

class StudentProgress(BaseModel):
    user_id: int
    total_exams_taken: int
    total_exams_passed: int
    average_score: float
    highest_score: int
    lowest_score: Optional[int] = None
    total_documents_uploaded: int
    current_streak: int
    longest_streak: int
    last_activity_at: Optional[datetime] = None

    pass_rate: int = 0
    performance_level: PerformanceLevelEnum = PerformanceLevelEnum.NEEDS_IMPROVEMENT
    is_active: bool = False
    needs_attention: bool = True

    model_config = ConfigDict(from_attributes=True)

class RankingEntry(BaseModel):
    position: int
    user_id: int
    average_score: float
    total_exams_taken: int
    total_exams_passed: int
    current_streak: int
    pass_rate: int
