from enum import Enum


class RoleEnum(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"

class FileKindEnum(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    TXT = "txt"
    IMAGE = "image"

class DocumentStatusEnum(str, Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    ANALYZED = "analyzed"
    ERROR = "error"

class ExamStatusEnum(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    READY = "ready"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ERROR = "error"
    # Derived on read from expires_at, never persisted.
    EXPIRED = "expired"

class DifficultyEnum(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

class OptionLetterEnum(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"

class GradeEnum(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"

class PerformanceLevelEnum(str, Enum):
    EXCELLENT = "excellent"
    VERY_GOOD = "very_good"
    GOOD = "good"
    FAIR = "fair"
    NEEDS_IMPROVEMENT = "needs_improvement"

class ConflictReasonEnum(str, Enum):
    NOT_READY = "not_ready"
    NOT_STARTED = "not_started"
    ALREADY_STARTED = "already_started"
    ALREADY_COMPLETED = "already_completed"
    EXPIRED = "expired"
    ALREADY_ANSWERED = "already_answered"
    ALREADY_GRADED = "already_graded"
    NOT_ANALYZED = "not_analyzed"
    IN_USE = "in_use"
    NOT_FAILED = "not_failed"


OPTIONS_PER_QUESTION = 4
TOTAL_SCORE_POINTS = 100

IMAGE_EXTENSIONS = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
}

DOCUMENT_EXTENSIONS = {
    ".pdf": FileKindEnum.PDF,
    ".docx": FileKindEnum.DOCX,
    ".txt": FileKindEnum.TXT,
}
