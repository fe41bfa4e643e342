from pydantic_settings import BaseSettings
from typing import Optional, List

class Settings(BaseSettings):
    PROJECT_NAME: str = "Document Exam Pipeline"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 2  # 2 days

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./exams.db"
    TEST_DATABASE_URL: Optional[str] = None

    # Uploads
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_SIZE_BYTES: int = 10 * 1024 * 1024  # 10MB

    # Content service
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_TEMPERATURE: float = 0.4
    MAX_CONTENT_CHARS: int = 30000

    # Generation stage
    GENERATION_MAX_RETRIES: int = 3
    GENERATION_BACKOFF_SECONDS: float = 1.0

    # Exam defaults
    DEFAULT_TOTAL_QUESTIONS: int = 10
    DEFAULT_PASSING_SCORE: int = 70
    MAX_TOTAL_QUESTIONS: int = 50
    MAX_TIME_LIMIT_MINUTES: int = 180

    # Progress
    ATTENTION_SCORE_THRESHOLD: float = 70
    INACTIVITY_DAYS: int = 7

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    class Config:
        env_file = ".env"

settings = Settings()
