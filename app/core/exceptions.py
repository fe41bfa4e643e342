from typing import Any, Dict, Optional

from fastapi import HTTPException, status

from app.core.constants import ConflictReasonEnum


class AppError(HTTPException):
    """Base class for errors surfaced synchronously to the caller."""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"

    def __init__(self, detail: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(status_code=self.status_code, detail=detail)
        self.details = details


class ValidationError(AppError):
    """Malformed input or a reference that does not fit the request."""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class StateConflictError(AppError):
    """An illegal status transition. `reason` names the precondition that failed."""
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"

    def __init__(self, reason: ConflictReasonEnum, detail: str):
        super().__init__(detail=detail, details={"reason": reason.value})
        self.reason = reason


class ServiceError(Exception):
    """Base class for failures that never leave an async stage."""
    pass


class ExternalServiceError(ServiceError):
    """The content service failed. `retryable` marks busy / rate-limited signals."""

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


class MalformedResponseError(ServiceError):
    """The content service answered, but not with usable structured output."""
    pass


class FileExtractionError(ServiceError):
    pass


class ConsistencyError(Exception):
    """A grading invariant was violated. Fatal: the transaction must be aborted."""
    pass
