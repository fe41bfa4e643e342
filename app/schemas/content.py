from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import List, Optional

from app.core.constants import DifficultyEnum, OptionLetterEnum, OPTIONS_PER_QUESTION


class GeneratedOption(BaseModel):
    """One option as returned by the content service (camelCase on the wire)."""
    letter: OptionLetterEnum
    text: str = Field(..., min_length=1)
    is_correct: bool = Field(default=False, alias="isCorrect")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("letter", mode="before")
    @classmethod
    def normalize_letter(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


class GeneratedQuestion(BaseModel):
    question_text: str = Field(..., min_length=1, alias="questionText")
    options: List[GeneratedOption]
    difficulty: DifficultyEnum = DifficultyEnum.MEDIUM
    explanation: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("difficulty", mode="before")
    @classmethod
    def default_unknown_difficulty(cls, v):
        if isinstance(v, str) and v.strip().lower() in DifficultyEnum._value2member_map_:
            return v.strip().lower()
        return DifficultyEnum.MEDIUM

    @model_validator(mode="after")
    def check_options(self):
        if len(self.options) != OPTIONS_PER_QUESTION:
            raise ValueError(f"expected exactly {OPTIONS_PER_QUESTION} options, got {len(self.options)}")
        letters = {option.letter for option in self.options}
        if len(letters) != OPTIONS_PER_QUESTION:
            raise ValueError("option letters must be A, B, C and D exactly once")
        correct = sum(1 for option in self.options if option.is_correct)
        if correct != 1:
            raise ValueError(f"expected exactly one correct option, got {correct}")
        return self


def placeholder_questions(count: int) -> List[GeneratedQuestion]:
    """Deterministic stand-in set used when image-derived output cannot be parsed."""
    letters = list(OptionLetterEnum)
    return [
        GeneratedQuestion(
            question_text=f"Placeholder question {index + 1} based on the uploaded image.",
            options=[
                GeneratedOption(
                    letter=letter,
                    text=f"Option {letter.value}",
                    is_correct=position == index % OPTIONS_PER_QUESTION,
                )
                for position, letter in enumerate(letters)
            ],
            difficulty=DifficultyEnum.MEDIUM,
        )
        for index in range(count)
    ]
