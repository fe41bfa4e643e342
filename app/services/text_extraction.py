import io
import logging
import os
from typing import Optional

import PyPDF2
import docx

from app.core.constants import FileKindEnum, IMAGE_EXTENSIONS, DOCUMENT_EXTENSIONS
from app.core.exceptions import FileExtractionError

logger = logging.getLogger(__name__)


def detect_file_kind(file_name: str, content_type: Optional[str] = None) -> Optional[FileKindEnum]:
    """Infer the document kind from its extension, falling back to the MIME type."""
    ext = os.path.splitext(file_name.lower())[1]
    if ext in DOCUMENT_EXTENSIONS:
        return DOCUMENT_EXTENSIONS[ext]
    if ext in IMAGE_EXTENSIONS:
        return FileKindEnum.IMAGE
    if content_type:
        if content_type.startswith("image/"):
            return FileKindEnum.IMAGE
        if content_type == "application/pdf":
            return FileKindEnum.PDF
        if content_type.startswith("text/plain"):
            return FileKindEnum.TXT
        if content_type == "application/vnd.openxmlformats-officedocument.wordprocessingml.document":
            return FileKindEnum.DOCX
    return None


def image_mime_type(file_name: str, content_type: Optional[str] = None) -> str:
    if content_type and content_type.startswith("image/"):
        return content_type
    ext = os.path.splitext(file_name.lower())[1]
    return IMAGE_EXTENSIONS.get(ext, "image/jpeg")


def extract_text(data: bytes, kind: FileKindEnum) -> str:
    """
    Decode a text-bearing document into plain text.

    Images are not handled here; their text comes from the content service.

    Raises:
        FileExtractionError: unsupported kind, undecodable bytes, or no readable text.
    """
    kind = FileKindEnum(kind)
    text = ""

    try:
        if kind == FileKindEnum.PDF:
            pdf_reader = PyPDF2.PdfReader(io.BytesIO(data))
            text = "\n".join(page.extract_text() or "" for page in pdf_reader.pages)

        elif kind == FileKindEnum.DOCX:
            document = docx.Document(io.BytesIO(data))
            text = "\n".join(paragraph.text for paragraph in document.paragraphs)

        elif kind == FileKindEnum.TXT:
            text = data.decode("utf-8", errors="replace")

        else:
            raise FileExtractionError(f"Local extraction is not supported for '{kind.value}' files.")

    except FileExtractionError:
        raise
    except Exception as e:
        logger.error(f"Text extraction failed for {kind.value} document: {e}", exc_info=True)
        raise FileExtractionError(f"Failed to extract text: {e}")

    text = text.strip()
    if not text:
        raise FileExtractionError("No readable text could be extracted from the document.")

    return text
