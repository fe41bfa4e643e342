from pydantic import BaseModel, ConfigDict
from typing import Optional, List

from app.core.constants import DifficultyEnum, OptionLetterEnum

class QuestionOption(BaseModel):
    letter: OptionLetterEnum
    option_text: str
    order_number: int
    is_correct: Optional[bool] = None

    model_config = ConfigDict(from_attributes=True)

class Question(BaseModel):
    id: int
    exam_id: int
    question_number: int
    question_text: str
    points: int
    difficulty: DifficultyEnum
    explanation: Optional[str] = None
    options: List[QuestionOption] = []

    model_config = ConfigDict(from_attributes=True)

    def without_answers(self) -> "Question":
        """Copy safe to show a learner before the exam is completed."""
        return self.model_copy(update={
            "explanation": None,
            "options": [option.model_copy(update={"is_correct": None}) for option in self.options],
        })
