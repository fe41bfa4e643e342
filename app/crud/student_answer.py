from sqlalchemy.orm import Session
from typing import List, Optional

from app.crud.base import CRUDBase
from app.models.student_answer import StudentAnswer

class CRUDStudentAnswer(CRUDBase[StudentAnswer, None]):

    def get_by_exam_and_user(self, db: Session, exam_id: int, user_id: int) -> List[StudentAnswer]:
        return (
            db.query(StudentAnswer)
            .filter(StudentAnswer.exam_id == exam_id)
            .filter(StudentAnswer.user_id == user_id)
            .all()
        )

    def get_by_exam_question_user(self, db: Session, exam_id: int, question_id: int,
                                  user_id: int) -> Optional[StudentAnswer]:
        return (
            db.query(StudentAnswer)
            .filter(StudentAnswer.exam_id == exam_id)
            .filter(StudentAnswer.question_id == question_id)
            .filter(StudentAnswer.user_id == user_id)
            .first()
        )


student_answer = CRUDStudentAnswer(StudentAnswer)
