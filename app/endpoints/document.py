from typing import List, Optional
from fastapi import APIRouter, Depends, status, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from app.core.constants import DocumentStatusEnum, FileKindEnum
from app.core.tasks import BackgroundTaskRunner
from app.models.document import Document as DocumentModel
from app.crud.status_ledger import status_ledger
from app.schemas.document import Document, DocumentStatus
from app.schemas.response import APIResponse, TaskAccepted
from app.schemas.user import UserContext
from app.services.content_extraction import ContentExtractionStage
from app.services.document import document_service
from app.utils import deps

router = APIRouter()


@router.post("/", response_model=APIResponse[Document], status_code=status.HTTP_201_CREATED)
async def upload_document(
    *,
    db: Session = Depends(deps.get_transactional_db),
    file: UploadFile = File(...),
    file_kind: Optional[FileKindEnum] = Form(None),
    context: UserContext = Depends(deps.get_current_user_context)
):
    data = await file.read()
    doc = document_service.upload(
        db,
        file_name=file.filename or "upload",
        data=data,
        current_user_context=context,
        content_type=file.content_type,
        file_kind=file_kind,
    )
    db.commit()
    return APIResponse(message="Document uploaded successfully", data=Document.model_validate(doc))


@router.get("/", response_model=APIResponse[List[Document]])
async def get_documents(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_context),
    status: Optional[DocumentStatusEnum] = Query(None),
    skip: int = 0,
    limit: int = 100
):
    docs = document_service.list_documents(db, current_user_context=context, status=status, skip=skip, limit=limit)
    return APIResponse(message="Documents retrieved successfully", data=[Document.model_validate(d) for d in docs])


@router.get("/{document_id}", response_model=APIResponse[Document])
async def get_document(
    *,
    db: Session = Depends(deps.get_db),
    document_id: int,
    context: UserContext = Depends(deps.get_current_user_context)
):
    doc = document_service.get_document(db, document_id, current_user_context=context)
    return APIResponse(message="Document retrieved successfully", data=Document.model_validate(doc))


@router.get("/{document_id}/status", response_model=APIResponse[DocumentStatus])
async def get_document_status(
    *,
    db: Session = Depends(deps.get_db),
    document_id: int,
    context: UserContext = Depends(deps.get_current_user_context)
):
    doc = document_service.get_document(db, document_id, current_user_context=context)
    current = status_ledger.current_status(db, DocumentModel, doc.id)
    return APIResponse(
        message="Document status retrieved successfully",
        data=DocumentStatus(id=doc.id, status=current, error_message=doc.error_message),
    )


@router.post("/{document_id}/extract", response_model=APIResponse[TaskAccepted],
             status_code=status.HTTP_202_ACCEPTED)
async def extract_document(
    *,
    db: Session = Depends(deps.get_transactional_db),
    document_id: int,
    context: UserContext = Depends(deps.get_current_user_context),
    runner: BackgroundTaskRunner = Depends(deps.get_task_runner),
    stage: ContentExtractionStage = Depends(deps.get_extraction_stage)
):
    doc = document_service.prepare_extraction(db, document_id, current_user_context=context)
    db.commit()
    runner.spawn(stage.extract(doc.id), name=f"extract-document-{doc.id}")
    return APIResponse(
        message="Extraction started",
        data=TaskAccepted(id=doc.id, status=doc.status.value, poll_url=f"/documents/{doc.id}/status"),
    )


@router.post("/{document_id}/reset", response_model=APIResponse[Document])
async def reset_document(
    *,
    db: Session = Depends(deps.get_transactional_db),
    document_id: int,
    context: UserContext = Depends(deps.get_current_user_context)
):
    doc = document_service.reset(db, document_id, current_user_context=context)
    db.commit()
    return APIResponse(message="Document reset for a new extraction", data=Document.model_validate(doc))


@router.delete("/{document_id}", response_model=APIResponse[None])
async def delete_document(
    *,
    db: Session = Depends(deps.get_transactional_db),
    document_id: int,
    context: UserContext = Depends(deps.get_current_user_context)
):
    document_service.delete(db, document_id, current_user_context=context)
    db.commit()
    return APIResponse(message="Document deleted successfully")
