import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.constants import DocumentStatusEnum, ExamStatusEnum, FileKindEnum, TOTAL_SCORE_POINTS
from app.core.database import SessionLocal
from app.core.exceptions import ExternalServiceError, MalformedResponseError, ServiceError
from app.crud.exam import exam as crud_exam
from app.crud.question import question as crud_question
from app.crud.status_ledger import status_ledger
from app.models.exam import Exam
from app.schemas.content import GeneratedQuestion, placeholder_questions
from app.services.content_service import ContentService, get_content_service
from app.services.question_parser import parse_questions

logger = logging.getLogger(__name__)


def allocate_points(count: int) -> int:
    """Uniform points per question. The integer-division remainder is not redistributed."""
    if count < 1:
        raise ValueError("count must be a positive integer")
    return TOTAL_SCORE_POINTS // count


class QuestionGenerationStage:
    """
    Produces an exam's question set from its document's extracted text.

    Only one caller can move an exam from `pending` to `processing`, so
    concurrent triggers never double-write the question set. Questions are
    committed one by one; a failure partway leaves the ones already stored.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        content_service: Optional[ContentService] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        max_retries: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self._content_service = content_service
        self.sleep = sleep
        self.max_retries = settings.GENERATION_MAX_RETRIES if max_retries is None else max_retries
        self.backoff_seconds = settings.GENERATION_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds

    @property
    def content_service(self) -> ContentService:
        if self._content_service is None:
            self._content_service = get_content_service()
        return self._content_service

    async def generate(self, exam_id: int, count: Optional[int] = None) -> None:
        with self.session_factory() as db:
            claimed = status_ledger.transition(
                db, Exam, exam_id,
                {ExamStatusEnum.PENDING}, ExamStatusEnum.PROCESSING,
            )
            db.commit()
            if not claimed:
                logger.info(f"Generation for exam {exam_id} not started, it is no longer 'pending'")
                return

            try:
                stored = await self._generate_questions(db, exam_id, count)
            except ServiceError as e:
                logger.warning(f"Generation for exam {exam_id} failed: {e}")
                self._fail(db, exam_id, str(e))
                return
            except Exception as e:
                logger.error(f"Unexpected error generating exam {exam_id}: {e}", exc_info=True)
                self._fail(db, exam_id, "An unexpected error occurred while generating questions.")
                return

            status_ledger.transition(
                db, Exam, exam_id,
                {ExamStatusEnum.PROCESSING}, ExamStatusEnum.READY,
                error_message=None,
            )
            db.commit()
            logger.info(f"Exam {exam_id} ready with {stored} questions")

    async def _generate_questions(self, db: Session, exam_id: int, count: Optional[int]) -> int:
        exam = crud_exam.get(db, id=exam_id)
        doc = exam.document
        count = count or exam.total_questions

        if doc.status != DocumentStatusEnum.ANALYZED or not (doc.content_text or "").strip():
            raise ServiceError("The source document has no analyzed content.")

        raw = await self._request_questions(doc.content_text, count)
        questions = self._parse(raw, count, from_image=doc.file_kind == FileKindEnum.IMAGE)

        points = allocate_points(count)
        for number, generated in enumerate(questions, start=1):
            crud_question.create_with_options(
                db, exam_id=exam_id, question_number=number, generated=generated, points=points,
            )
            db.commit()
        return len(questions)

    async def _request_questions(self, content_text: str, count: int) -> str:
        attempt = 0
        while True:
            try:
                return await self.content_service.generate_questions(content_text, count)
            except ExternalServiceError as e:
                if not e.retryable or attempt >= self.max_retries:
                    raise
                delay = self.backoff_seconds * (2 ** attempt)
                attempt += 1
                logger.warning(
                    f"Content service busy ({e}), retry {attempt}/{self.max_retries} in {delay:.1f}s"
                )
                await self.sleep(delay)

    def _parse(self, raw: str, count: int, from_image: bool) -> List[GeneratedQuestion]:
        try:
            return parse_questions(raw, count)
        except MalformedResponseError as e:
            if not from_image:
                raise
            logger.warning(f"Unusable output for an image document ({e}), using placeholder questions")
            return placeholder_questions(count)

    def _fail(self, db: Session, exam_id: int, message: str):
        db.rollback()
        status_ledger.transition(
            db, Exam, exam_id,
            {ExamStatusEnum.PROCESSING}, ExamStatusEnum.ERROR,
            error_message=message,
        )
        db.commit()
