import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

import app.models  # noqa: F401  registers every table on Base.metadata
from app.core.config import settings
from app.core.constants import RoleEnum
from app.core.database import Base, build_engine
from app.services.content_extraction import ContentExtractionStage
from app.services.question_generation import QuestionGenerationStage
from app.utils import deps as deps_utils
import main
from tests.helpers.factories import (
    FakeContentService,
    RecordingSleep,
    RecordingTaskRunner,
    auth_headers,
)


@pytest.fixture(autouse=True)
def _isolated_dirs(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture(scope="function")
def database_engine(tmp_path):
    test_db_url = settings.TEST_DATABASE_URL or f"sqlite:///{tmp_path / 'test.db'}"
    engine = build_engine(test_db_url)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(database_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=database_engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.rollback()
        db.close()


@pytest.fixture
def fake_content_service():
    return FakeContentService()


@pytest.fixture
def recorded_sleep():
    return RecordingSleep()


@pytest.fixture
def extraction_stage(session_factory, fake_content_service):
    return ContentExtractionStage(session_factory=session_factory, content_service=fake_content_service)


@pytest.fixture
def generation_stage(session_factory, fake_content_service, recorded_sleep):
    return QuestionGenerationStage(
        session_factory=session_factory,
        content_service=fake_content_service,
        sleep=recorded_sleep,
        max_retries=3,
        backoff_seconds=1.0,
    )


@pytest.fixture
def task_runner():
    return RecordingTaskRunner()


def _install_overrides(session_factory, task_runner, extraction_stage, generation_stage):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    def _get_transactional_db():
        db = session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    main.app.dependency_overrides[deps_utils.get_db] = _get_db
    main.app.dependency_overrides[deps_utils.get_transactional_db] = _get_transactional_db
    main.app.dependency_overrides[deps_utils.get_task_runner] = lambda: task_runner
    main.app.dependency_overrides[deps_utils.get_extraction_stage] = lambda: extraction_stage
    main.app.dependency_overrides[deps_utils.get_generation_stage] = lambda: generation_stage


@pytest.fixture(scope="function")
def client(session_factory, task_runner, extraction_stage, generation_stage):
    _install_overrides(session_factory, task_runner, extraction_stage, generation_stage)
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def server_error_client(session_factory, task_runner, extraction_stage, generation_stage):
    """Client that returns the 5xx response instead of re-raising the server exception."""
    _install_overrides(session_factory, task_runner, extraction_stage, generation_stage)
    with TestClient(main.app, raise_server_exceptions=False) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()


@pytest.fixture
def student_headers():
    return auth_headers(1, RoleEnum.STUDENT)


@pytest.fixture
def other_student_headers():
    return auth_headers(2, RoleEnum.STUDENT)


@pytest.fixture
def teacher_headers():
    return auth_headers(900, RoleEnum.TEACHER)
