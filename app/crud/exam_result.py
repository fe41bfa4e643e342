from sqlalchemy.orm import Session
from typing import List, Optional

from app.crud.base import CRUDBase
from app.models.exam_result import ExamResult

class CRUDExamResult(CRUDBase[ExamResult, None]):

    def get_by_exam_and_user(self, db: Session, exam_id: int, user_id: int) -> Optional[ExamResult]:
        return (
            db.query(ExamResult)
            .filter(ExamResult.exam_id == exam_id)
            .filter(ExamResult.user_id == user_id)
            .first()
        )

    def get_all_by_user(self, db: Session, user_id: int) -> List[ExamResult]:
        return (
            db.query(ExamResult)
            .filter(ExamResult.user_id == user_id)
            .order_by(ExamResult.completed_at.asc(), ExamResult.id.asc())
            .all()
        )


exam_result = CRUDExamResult(ExamResult)
