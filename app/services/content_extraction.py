import asyncio
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.core.constants import DocumentStatusEnum, FileKindEnum
from app.core.database import SessionLocal
from app.core.exceptions import FileExtractionError, ServiceError
from app.crud.document import document as crud_document
from app.crud.status_ledger import status_ledger
from app.models.document import Document
from app.services.content_service import ContentService, get_content_service
from app.services.text_extraction import extract_text, image_mime_type

logger = logging.getLogger(__name__)


def _read_file(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


class ContentExtractionStage:
    """
    Turns an uploaded document into plain text.

    `extract` runs detached from the request that triggered it. It never
    raises: every outcome ends up in the document's status and error_message.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal,
                 content_service: Optional[ContentService] = None):
        self.session_factory = session_factory
        self._content_service = content_service

    @property
    def content_service(self) -> ContentService:
        if self._content_service is None:
            self._content_service = get_content_service()
        return self._content_service

    async def extract(self, document_id: int) -> None:
        with self.session_factory() as db:
            claimed = status_ledger.transition(
                db, Document, document_id,
                {DocumentStatusEnum.UPLOADED}, DocumentStatusEnum.PROCESSING,
            )
            db.commit()
            if not claimed:
                logger.info(f"Extraction for document {document_id} not started, it is not in 'uploaded'")
                return

            try:
                text = await self._extract_text(db, document_id)
            except ServiceError as e:
                logger.warning(f"Extraction for document {document_id} failed: {e}")
                self._fail(db, document_id, str(e))
                return
            except Exception as e:
                logger.error(f"Unexpected error extracting document {document_id}: {e}", exc_info=True)
                self._fail(db, document_id, "An unexpected error occurred while extracting the document.")
                return

            status_ledger.transition(
                db, Document, document_id,
                {DocumentStatusEnum.PROCESSING}, DocumentStatusEnum.ANALYZED,
                content_text=text, error_message=None,
            )
            db.commit()
            logger.info(f"Document {document_id} analyzed ({len(text)} characters)")

    async def _extract_text(self, db: Session, document_id: int) -> str:
        doc = crud_document.get(db, id=document_id)
        if not doc.file_path:
            raise FileExtractionError("The document has no stored file to extract from.")

        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(None, _read_file, doc.file_path)
        except OSError as e:
            raise FileExtractionError(f"Could not read the uploaded file: {e.strerror or e}")

        if doc.file_kind == FileKindEnum.IMAGE:
            text = await self.content_service.extract_text(data, image_mime_type(doc.file_name, doc.mime_type))
            text = (text or "").strip()
            if not text:
                raise FileExtractionError("No readable text could be found in the image.")
            return text

        return await loop.run_in_executor(None, extract_text, data, doc.file_kind)

    def _fail(self, db: Session, document_id: int, message: str):
        db.rollback()
        status_ledger.transition(
            db, Document, document_id,
            {DocumentStatusEnum.PROCESSING}, DocumentStatusEnum.ERROR,
            error_message=message,
        )
        db.commit()
