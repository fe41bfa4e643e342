from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

from app.core.constants import DocumentStatusEnum, FileKindEnum

class DocumentBase(BaseModel):
    file_name: str
    file_kind: FileKindEnum
    mime_type: Optional[str] = None
    file_size: Optional[int] = None

class DocumentCreate(DocumentBase):
    user_id: int
    file_path: Optional[str] = None
    status: DocumentStatusEnum = DocumentStatusEnum.UPLOADED

class Document(DocumentBase):
    id: int
    user_id: int
    status: DocumentStatusEnum
    content_text: Optional[str] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class DocumentStatus(BaseModel):
    id: int
    status: DocumentStatusEnum
    error_message: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
