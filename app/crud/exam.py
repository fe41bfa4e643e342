from sqlalchemy.orm import Session
from typing import List, Optional

from app.core.constants import ExamStatusEnum
from app.crud.base import CRUDBase
from app.models.exam import Exam

class CRUDExam(CRUDBase[Exam, None]):

    def get_multi_by_user(self, db: Session, user_id: int, status: Optional[ExamStatusEnum] = None,
                          skip: int = 0, limit: int = 100) -> List[Exam]:
        query = db.query(Exam).filter(Exam.user_id == user_id)
        if status:
            query = query.filter(Exam.status == status)
        return (
            query
            .order_by(Exam.created_at.desc(), Exam.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )


exam = CRUDExam(Exam)
