from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from pydantic import ValidationError
from app.core.database import SessionLocal
from app.core.security import decode_access_token
from app.core.tasks import BackgroundTaskRunner, task_runner
from app.schemas.token import TokenPayload
from app.schemas.user import UserContext
from app.services.content_extraction import ContentExtractionStage
from app.services.question_generation import QuestionGenerationStage

http_bearer = HTTPBearer()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_transactional_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

def get_current_user_context(
    credentials: HTTPAuthorizationCredentials = Depends(http_bearer)
) -> UserContext:
    try:
        payload = decode_access_token(credentials.credentials)
        token_data = TokenPayload(**payload)
    except (JWTError, ValidationError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return UserContext(user_id=token_data.user_id, role=token_data.role)

def get_task_runner() -> BackgroundTaskRunner:
    return task_runner

def get_extraction_stage() -> ContentExtractionStage:
    return ContentExtractionStage(session_factory=SessionLocal)

def get_generation_stage() -> QuestionGenerationStage:
    return QuestionGenerationStage(session_factory=SessionLocal)
