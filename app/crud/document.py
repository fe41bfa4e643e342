from sqlalchemy.orm import Session
from typing import List, Optional

from app.core.constants import DocumentStatusEnum
from app.crud.base import CRUDBase
from app.models.document import Document
from app.models.exam import Exam
from app.schemas.document import DocumentCreate

class CRUDDocument(CRUDBase[Document, DocumentCreate]):

    def get_multi_by_user(self, db: Session, user_id: int, status: Optional[DocumentStatusEnum] = None,
                          skip: int = 0, limit: int = 100) -> List[Document]:
        query = db.query(Document).filter(Document.user_id == user_id)
        if status:
            query = query.filter(Document.status == status)
        return (
            query
            .order_by(Document.created_at.desc(), Document.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def count_referencing_exams(self, db: Session, document_id: int) -> int:
        return db.query(Exam).filter(Exam.document_id == document_id).count()


document = CRUDDocument(Document)
