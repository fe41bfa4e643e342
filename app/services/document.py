import logging
import os
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.constants import ConflictReasonEnum, DocumentStatusEnum, FileKindEnum
from app.core.exceptions import ForbiddenError, NotFoundError, StateConflictError, ValidationError
from app.crud.document import document as crud_document
from app.crud.status_ledger import status_ledger
from app.models.document import Document
from app.schemas.document import DocumentCreate
from app.schemas.user import UserContext
from app.services.progress import progress_service
from app.services.text_extraction import detect_file_kind, image_mime_type

logger = logging.getLogger(__name__)


class DocumentService:

    def _store_file(self, data: bytes, file_name: str) -> str:
        os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
        ext = os.path.splitext(file_name)[1].lower()
        path = os.path.join(settings.UPLOAD_DIR, f"{uuid.uuid4().hex}{ext}")
        with open(path, "wb") as f:
            f.write(data)
        return path

    def upload(
        self,
        db: Session,
        *,
        file_name: str,
        data: bytes,
        current_user_context: UserContext,
        content_type: Optional[str] = None,
        file_kind: Optional[FileKindEnum] = None,
    ) -> Document:
        if not data:
            raise ValidationError("The uploaded file is empty.")
        if len(data) > settings.MAX_UPLOAD_SIZE_BYTES:
            raise ValidationError(
                f"The uploaded file exceeds the {settings.MAX_UPLOAD_SIZE_BYTES // (1024 * 1024)}MB limit."
            )

        kind = file_kind or detect_file_kind(file_name, content_type)
        if kind is None:
            raise ValidationError("Unsupported file type. Upload a PDF, DOCX, TXT or image file.")

        mime_type = image_mime_type(file_name, content_type) if kind == FileKindEnum.IMAGE else content_type
        path = self._store_file(data, file_name)

        doc = crud_document.create(db, obj_in=DocumentCreate(
            user_id=current_user_context.user_id,
            file_name=file_name,
            file_path=path,
            file_kind=kind,
            mime_type=mime_type,
            file_size=len(data),
        ))
        progress_service.record_upload(db, user_id=current_user_context.user_id)
        logger.info(f"User {current_user_context.user_id} uploaded document {doc.id} ({kind.value}, {len(data)} bytes)")
        return doc

    def get_document(self, db: Session, document_id: int, current_user_context: UserContext) -> Document:
        doc = crud_document.get(db, id=document_id)
        if not doc:
            raise NotFoundError("Document not found.")
        if doc.user_id != current_user_context.user_id and not current_user_context.is_teacher:
            raise ForbiddenError("You do not have access to this document.")
        return doc

    def _get_owned_document(self, db: Session, document_id: int, current_user_context: UserContext) -> Document:
        doc = self.get_document(db, document_id, current_user_context)
        if doc.user_id != current_user_context.user_id:
            raise ForbiddenError("Only the owner can modify this document.")
        return doc

    def list_documents(self, db: Session, current_user_context: UserContext,
                       status: Optional[DocumentStatusEnum] = None,
                       skip: int = 0, limit: int = 100) -> List[Document]:
        return crud_document.get_multi_by_user(
            db, user_id=current_user_context.user_id, status=status, skip=skip, limit=limit
        )

    def prepare_extraction(self, db: Session, document_id: int, current_user_context: UserContext) -> Document:
        """Checks done before handing the document to the extraction stage."""
        doc = self._get_owned_document(db, document_id, current_user_context)
        if doc.status == DocumentStatusEnum.ANALYZED:
            raise StateConflictError(ConflictReasonEnum.ALREADY_COMPLETED, "The document has already been analyzed.")
        if doc.status == DocumentStatusEnum.PROCESSING:
            raise StateConflictError(ConflictReasonEnum.ALREADY_STARTED, "The document is already being processed.")
        if doc.status == DocumentStatusEnum.ERROR:
            raise StateConflictError(
                ConflictReasonEnum.NOT_READY, "Extraction failed for this document. Reset it before retrying."
            )
        return doc

    def reset(self, db: Session, document_id: int, current_user_context: UserContext) -> Document:
        doc = self._get_owned_document(db, document_id, current_user_context)
        changed = status_ledger.transition(
            db, Document, document_id,
            {DocumentStatusEnum.ERROR}, DocumentStatusEnum.UPLOADED,
            error_message=None,
        )
        if not changed:
            raise StateConflictError(ConflictReasonEnum.NOT_FAILED, "Only documents in 'error' can be reset.")
        db.refresh(doc)
        return doc

    def delete(self, db: Session, document_id: int, current_user_context: UserContext) -> None:
        doc = self._get_owned_document(db, document_id, current_user_context)
        if crud_document.count_referencing_exams(db, document_id=document_id):
            raise StateConflictError(ConflictReasonEnum.IN_USE, "The document is used by one or more exams.")

        file_path = doc.file_path
        crud_document.delete(db, id=document_id)
        if file_path and os.path.exists(file_path):
            try:
                os.remove(file_path)
            except OSError as e:
                logger.warning(f"Could not remove file for document {document_id}: {e}")
        logger.info(f"Document {document_id} deleted by user {current_user_context.user_id}")


document_service = DocumentService()
