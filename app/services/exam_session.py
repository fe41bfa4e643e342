from datetime import datetime, timedelta
from typing import List, Optional
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.constants import ConflictReasonEnum, DocumentStatusEnum, ExamStatusEnum
from app.core.exceptions import ForbiddenError, NotFoundError, StateConflictError
from app.crud.exam import exam as crud_exam
from app.crud.question import question as crud_question
from app.crud.status_ledger import status_ledger
from app.models.exam import Exam
from app.schemas.exam import ExamCreate
from app.schemas.question import Question as QuestionSchema
from app.schemas.user import UserContext
from app.services.document import document_service
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


def _not_expired(now: datetime):
    return or_(Exam.expires_at.is_(None), Exam.expires_at >= now)


class ExamSessionService:

    def create_exam(self, db: Session, exam_in: ExamCreate, current_user_context: UserContext,
                    now: Optional[datetime] = None) -> Exam:
        now = now or utcnow()
        doc = document_service.get_document(db, exam_in.document_id, current_user_context)
        if doc.user_id != current_user_context.user_id:
            raise ForbiddenError("You can only create exams from your own documents.")
        if doc.status != DocumentStatusEnum.ANALYZED or not (doc.content_text or "").strip():
            raise StateConflictError(
                ConflictReasonEnum.NOT_ANALYZED,
                "The document must be analyzed before an exam can be created from it.",
            )

        expires_at = None
        if exam_in.time_limit_minutes:
            expires_at = now + timedelta(minutes=exam_in.time_limit_minutes)

        exam = crud_exam.create(db, obj_in={
            **exam_in.model_dump(),
            "user_id": current_user_context.user_id,
            "status": ExamStatusEnum.PENDING,
            "expires_at": expires_at,
        })
        logger.info(f"Exam {exam.id} created from document {doc.id} ({exam.total_questions} questions)")
        return exam

    def get_exam(self, db: Session, exam_id: int, current_user_context: UserContext) -> Exam:
        exam = crud_exam.get(db, id=exam_id)
        if not exam:
            raise NotFoundError("Exam not found.")
        if exam.user_id != current_user_context.user_id and not current_user_context.is_teacher:
            raise ForbiddenError("You do not have access to this exam.")
        return exam

    def get_owned_exam(self, db: Session, exam_id: int, current_user_context: UserContext) -> Exam:
        exam = self.get_exam(db, exam_id, current_user_context)
        if exam.user_id != current_user_context.user_id:
            raise ForbiddenError("Only the learner who owns this exam can take it.")
        return exam

    def list_exams(self, db: Session, current_user_context: UserContext,
                   status: Optional[ExamStatusEnum] = None,
                   skip: int = 0, limit: int = 100) -> List[Exam]:
        return crud_exam.get_multi_by_user(
            db, user_id=current_user_context.user_id, status=status, skip=skip, limit=limit
        )

    def get_questions(self, db: Session, exam_id: int, current_user_context: UserContext) -> List[QuestionSchema]:
        exam = self.get_exam(db, exam_id, current_user_context)
        questions = [QuestionSchema.model_validate(q) for q in crud_question.get_by_exam(db, exam_id=exam.id)]
        if current_user_context.is_student and exam.status != ExamStatusEnum.COMPLETED:
            return [q.without_answers() for q in questions]
        return questions

    def start(self, db: Session, exam_id: int, current_user_context: UserContext,
              now: Optional[datetime] = None) -> Exam:
        now = now or utcnow()
        exam = self.get_owned_exam(db, exam_id, current_user_context)

        started = status_ledger.transition(
            db, Exam, exam_id,
            {ExamStatusEnum.PENDING, ExamStatusEnum.READY}, ExamStatusEnum.IN_PROGRESS,
            _not_expired(now),
            started_at=now,
        )
        db.refresh(exam)
        if not started:
            raise self._start_conflict(exam, now)
        return exam

    def complete(self, db: Session, exam: Exam, now: Optional[datetime] = None) -> Exam:
        now = now or utcnow()
        completed = status_ledger.transition(
            db, Exam, exam.id,
            {ExamStatusEnum.IN_PROGRESS}, ExamStatusEnum.COMPLETED,
            _not_expired(now),
            completed_at=now,
        )
        db.refresh(exam)
        if not completed:
            raise self.complete_conflict(exam, now)
        return exam

    def _start_conflict(self, exam: Exam, now: datetime) -> StateConflictError:
        if exam.status == ExamStatusEnum.COMPLETED:
            return StateConflictError(ConflictReasonEnum.ALREADY_COMPLETED, "This exam has already been completed.")
        if exam.status == ExamStatusEnum.IN_PROGRESS:
            return StateConflictError(ConflictReasonEnum.ALREADY_STARTED, "This exam has already been started.")
        if exam.is_expired(now):
            return StateConflictError(ConflictReasonEnum.EXPIRED, "This exam has expired.")
        if exam.status == ExamStatusEnum.PROCESSING:
            return StateConflictError(ConflictReasonEnum.NOT_READY, "Questions are still being generated.")
        return StateConflictError(ConflictReasonEnum.NOT_READY, "Question generation failed for this exam.")

    def complete_conflict(self, exam: Exam, now: datetime) -> StateConflictError:
        if exam.status == ExamStatusEnum.COMPLETED:
            return StateConflictError(ConflictReasonEnum.ALREADY_COMPLETED, "This exam has already been completed.")
        if exam.is_expired(now):
            return StateConflictError(ConflictReasonEnum.EXPIRED, "This exam has expired.")
        return StateConflictError(ConflictReasonEnum.NOT_STARTED, "This exam has not been started.")


exam_session_service = ExamSessionService()
