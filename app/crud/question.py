from sqlalchemy.orm import Session, selectinload
from typing import List, Optional

from app.crud.base import CRUDBase
from app.models.question import Question
from app.models.question_option import QuestionOption
from app.schemas.content import GeneratedQuestion

class CRUDQuestion(CRUDBase[Question, None]):

    def _query_with_options(self, db: Session):
        return db.query(Question).options(selectinload(Question.options))

    def get(self, db: Session, id: int) -> Optional[Question]:
        return self._query_with_options(db).filter(Question.id == id).first()

    def get_by_exam(self, db: Session, exam_id: int) -> List[Question]:
        return (
            self._query_with_options(db)
            .filter(Question.exam_id == exam_id)
            .order_by(Question.question_number)
            .all()
        )

    def create_with_options(self, db: Session, *, exam_id: int, question_number: int,
                            generated: GeneratedQuestion, points: int) -> Question:
        question = Question(
            exam_id=exam_id,
            question_number=question_number,
            question_text=generated.question_text,
            points=points,
            difficulty=generated.difficulty,
            explanation=generated.explanation,
        )
        db.add(question)
        db.flush()

        ordered = sorted(generated.options, key=lambda option: option.letter.value)
        for order_number, option in enumerate(ordered, start=1):
            db.add(QuestionOption(
                question_id=question.id,
                letter=option.letter,
                option_text=option.text,
                is_correct=option.is_correct,
                order_number=order_number,
            ))
        db.flush()
        return question


question = CRUDQuestion(Question)
