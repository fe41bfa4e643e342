from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime

from app.core.config import settings
from app.core.constants import ExamStatusEnum

class ExamCreate(BaseModel):
    document_id: int
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    total_questions: int = Field(default=settings.DEFAULT_TOTAL_QUESTIONS, ge=1, le=settings.MAX_TOTAL_QUESTIONS)
    passing_score: int = Field(default=settings.DEFAULT_PASSING_SCORE, ge=0, le=100)
    time_limit_minutes: Optional[int] = Field(default=None, ge=1, le=settings.MAX_TIME_LIMIT_MINUTES)

class Exam(BaseModel):
    id: int
    document_id: int
    user_id: int
    title: str
    description: Optional[str] = None
    total_questions: int
    passing_score: int
    time_limit_minutes: Optional[int] = None
    expires_at: Optional[datetime] = None
    # Read through the ORM's derived status so expiry is reported on read.
    status: ExamStatusEnum = Field(validation_alias="effective_status")
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class ExamStatus(BaseModel):
    id: int
    status: ExamStatusEnum = Field(validation_alias="effective_status")
    error_message: Optional[str] = None
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class StudentExamSummary(Exam):
    document_file_name: Optional[str] = None
    percentage_score: Optional[int] = None
    passed: Optional[bool] = None
    result_completed_at: Optional[datetime] = None
