from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

import main

from app.core.constants import DocumentStatusEnum, ExamStatusEnum
from app.crud.exam import exam as crud_exam
from app.crud.exam_result import exam_result as crud_exam_result
from app.crud.question import question as crud_question
from app.crud.student_answer import student_answer as crud_student_answer
from app.crud.student_progress import student_progress as crud_student_progress
from app.models.student_answer import StudentAnswer
from app.services.exam_session import exam_session_service
from app.utils import deps as deps_utils
from tests.helpers.asserts import api_call, assert_conflict
from tests.helpers.factories import (
    correct_letter,
    make_document,
    make_exam,
    make_ready_exam,
    student_context,
    wrong_letter,
)
from app.utils.clock import utcnow


def test_create_exam_spawns_generation(client: TestClient, student_headers, task_runner, db_session: Session):
    doc = make_document(db_session, user_id=1)

    r = client.post("/exams/", headers=student_headers, json={
        "document_id": doc.id, "title": "Energy", "total_questions": 4, "time_limit_minutes": 15,
    })

    assert r.status_code == 202, r.text
    accepted = r.json()["data"]
    assert accepted["status"] == "pending"
    assert accepted["poll_url"] == f"/exams/{accepted['id']}/status"

    r_pending = api_call(client, "GET", f"/exams/{accepted['id']}/status", headers=student_headers)
    assert r_pending.json()["data"]["status"] == "pending"

    assert task_runner.run_all() == [f"generate-exam-{accepted['id']}"]

    r_ready = api_call(client, "GET", f"/exams/{accepted['id']}", headers=student_headers)
    exam = r_ready.json()["data"]
    assert exam["status"] == "ready"
    assert exam["expires_at"] is not None

    r_questions = api_call(client, "GET", f"/exams/{accepted['id']}/questions", headers=student_headers)
    questions = r_questions.json()["data"]
    assert [q["question_number"] for q in questions] == [1, 2, 3, 4]
    assert all(q["points"] == 25 for q in questions)
    assert all(o["is_correct"] is None for q in questions for o in q["options"])
    assert [o["letter"] for o in questions[0]["options"]] == ["A", "B", "C", "D"]


def test_create_exam_from_unanalyzed_document_conflicts(client: TestClient, student_headers, task_runner,
                                                         db_session: Session):
    doc = make_document(db_session, user_id=1, status=DocumentStatusEnum.PROCESSING)

    r = client.post("/exams/", headers=student_headers, json={"document_id": doc.id, "title": "Energy"})

    assert_conflict(r, "not_analyzed")
    assert task_runner.spawned == []


def test_create_exam_validates_bounds(client: TestClient, student_headers, db_session: Session):
    doc = make_document(db_session, user_id=1)

    for body in [
        {"document_id": doc.id, "title": "Energy", "total_questions": 0},
        {"document_id": doc.id, "title": "Energy", "total_questions": 51},
        {"document_id": doc.id, "title": "Energy", "passing_score": 101},
        {"document_id": doc.id, "title": ""},
    ]:
        r = client.post("/exams/", headers=student_headers, json=body)
        assert r.status_code == 422, body
        assert r.json()["error"]["code"] == "VALIDATION_ERROR"


def test_generation_failure_is_observable_by_polling(client: TestClient, student_headers, task_runner,
                                                     fake_content_service, db_session: Session):
    fake_content_service.question_responses = ["not json"]
    doc = make_document(db_session, user_id=1)

    exam_id = client.post("/exams/", headers=student_headers,
                          json={"document_id": doc.id, "title": "Energy", "total_questions": 2}).json()["data"]["id"]
    task_runner.run_all()

    status = api_call(client, "GET", f"/exams/{exam_id}/status", headers=student_headers).json()["data"]
    assert status["status"] == "error"
    assert status["error_message"]
    assert_conflict(client.post(f"/exams/{exam_id}/start", headers=student_headers), "not_ready")


def test_start_twice_reports_already_started(client: TestClient, student_headers, db_session: Session):
    exam = make_ready_exam(db_session, user_id=1, total_questions=2)

    r_first = api_call(client, "POST", f"/exams/{exam.id}/start", headers=student_headers)
    r_second = client.post(f"/exams/{exam.id}/start", headers=student_headers)

    assert r_first.json()["data"]["status"] == "in_progress"
    assert_conflict(r_second, "already_started")


def test_expired_exam_reports_expired(client: TestClient, student_headers, db_session: Session):
    exam = make_ready_exam(db_session, user_id=1, total_questions=2, time_limit_minutes=1,
                           created_at=utcnow() - timedelta(minutes=2))

    r_status = api_call(client, "GET", f"/exams/{exam.id}/status", headers=student_headers)
    r_start = client.post(f"/exams/{exam.id}/start", headers=student_headers)

    assert r_status.json()["data"]["status"] == "expired"
    assert_conflict(r_start, "expired")


def test_submit_grades_and_reveals_answers(client: TestClient, student_headers, db_session: Session):
    exam = make_ready_exam(db_session, user_id=1, total_questions=4, passing_score=70)
    questions = crud_question.get_by_exam(db_session, exam_id=exam.id)
    api_call(client, "POST", f"/exams/{exam.id}/start", headers=student_headers)

    answers = [
        {"question_id": questions[0].id, "selected_option": correct_letter(1)},
        {"question_id": questions[1].id, "selected_option": correct_letter(2)},
        {"question_id": questions[2].id, "selected_option": wrong_letter(3)},
    ]
    r_submit = api_call(client, "POST", f"/exams/{exam.id}/submit", headers=student_headers, json={"answers": answers})

    result = r_submit.json()["data"]
    assert (result["correct_answers"], result["incorrect_answers"], result["unanswered"]) == (2, 1, 1)
    assert result["percentage_score"] == 50
    assert result["grade"] == "F"
    assert result["passed"] is False

    r_result = api_call(client, "GET", f"/exams/{exam.id}/result", headers=student_headers)
    assert r_result.json()["data"]["id"] == result["id"]

    r_questions = api_call(client, "GET", f"/exams/{exam.id}/questions", headers=student_headers)
    revealed = r_questions.json()["data"]
    assert all(sum(1 for o in q["options"] if o["is_correct"]) == 1 for q in revealed)

    r_again = client.post(f"/exams/{exam.id}/submit", headers=student_headers, json={"answers": answers})
    assert_conflict(r_again, "already_completed")


def test_submit_with_duplicate_question_rolls_back(client: TestClient, student_headers, db_session: Session):
    exam = make_ready_exam(db_session, user_id=1, total_questions=2)
    question = crud_question.get_by_exam(db_session, exam_id=exam.id)[0]
    api_call(client, "POST", f"/exams/{exam.id}/start", headers=student_headers)

    r = client.post(f"/exams/{exam.id}/submit", headers=student_headers, json={"answers": [
        {"question_id": question.id, "selected_option": "A"},
        {"question_id": question.id, "selected_option": "B"},
    ]})

    assert r.status_code == 400
    db_session.expire_all()
    status = api_call(client, "GET", f"/exams/{exam.id}/status", headers=student_headers).json()["data"]
    assert status["status"] == "in_progress"


def test_submit_rejects_unknown_option_letter(client: TestClient, student_headers, db_session: Session):
    exam = make_ready_exam(db_session, user_id=1, total_questions=2)
    question = crud_question.get_by_exam(db_session, exam_id=exam.id)[0]
    api_call(client, "POST", f"/exams/{exam.id}/start", headers=student_headers)

    r = client.post(f"/exams/{exam.id}/submit", headers=student_headers,
                    json={"answers": [{"question_id": question.id, "selected_option": "E"}]})

    assert r.status_code == 422


def test_result_before_submission_is_not_found(client: TestClient, student_headers, db_session: Session):
    exam = make_ready_exam(db_session, user_id=1, total_questions=2)

    assert client.get(f"/exams/{exam.id}/result", headers=student_headers).status_code == 404


def test_list_exams_reports_effective_status(client: TestClient, student_headers, db_session: Session):
    doc = make_document(db_session, user_id=1)
    make_exam(db_session, doc, status=ExamStatusEnum.READY, time_limit_minutes=1,
              created_at=utcnow() - timedelta(hours=1))
    make_exam(db_session, doc, status=ExamStatusEnum.READY)

    exams = api_call(client, "GET", "/exams/", headers=student_headers).json()["data"]

    assert sorted(e["status"] for e in exams) == ["expired", "ready"]


class _LockedDatabaseSession(Session):
    def commit(self):
        raise OperationalError("COMMIT", {}, Exception("database is locked"))


@pytest.fixture
def locked_commits(server_error_client, database_engine, monkeypatch):
    """Route mutating requests through the real transactional session, whose commit always fails."""
    monkeypatch.setattr(deps_utils, "SessionLocal", sessionmaker(
        autocommit=False, autoflush=False, bind=database_engine, class_=_LockedDatabaseSession,
    ))
    main.app.dependency_overrides.pop(deps_utils.get_transactional_db, None)
    return server_error_client


def test_failed_commit_on_start_is_reported(locked_commits: TestClient, student_headers, db_session: Session):
    exam = make_ready_exam(db_session, user_id=1, total_questions=2)

    r = locked_commits.post(f"/exams/{exam.id}/start", headers=student_headers)

    assert r.status_code == 500, r.text
    assert r.json()["error"]["code"] == "INTERNAL_SERVER_ERROR"
    db_session.expire_all()
    stored = crud_exam.get(db_session, id=exam.id)
    assert stored.status == ExamStatusEnum.READY
    assert stored.started_at is None


def test_failed_commit_on_submit_is_reported(locked_commits: TestClient, student_headers, db_session: Session):
    exam = make_ready_exam(db_session, user_id=1, total_questions=2)
    exam_session_service.start(db_session, exam.id, student_context(1))
    db_session.commit()
    question = crud_question.get_by_exam(db_session, exam_id=exam.id)[0]

    r = locked_commits.post(f"/exams/{exam.id}/submit", headers=student_headers, json={"answers": [
        {"question_id": question.id, "selected_option": correct_letter(1)},
    ]})

    assert r.status_code == 500, r.text
    db_session.expire_all()
    assert crud_exam.get(db_session, id=exam.id).status == ExamStatusEnum.IN_PROGRESS
    assert crud_exam_result.get_by_exam_and_user(db_session, exam_id=exam.id, user_id=1) is None
    assert db_session.query(StudentAnswer).filter(StudentAnswer.exam_id == exam.id).count() == 0


def test_inconsistent_grading_rolls_back_whole_submission(server_error_client: TestClient, student_headers,
                                                          db_session: Session, monkeypatch):
    print("\n[TEST] Inconsistent answer counts abort the submission")
    exam = make_ready_exam(db_session, user_id=1, total_questions=2)
    question = crud_question.get_by_exam(db_session, exam_id=exam.id)[0]
    api_call(server_error_client, "POST", f"/exams/{exam.id}/start", headers=student_headers)

    print("[1] Answer lookup returns one answer twice")
    stored_answers = crud_student_answer.get_by_exam_and_user

    def _with_duplicate(db, exam_id, user_id):
        answers = stored_answers(db, exam_id=exam_id, user_id=user_id)
        return answers + answers[:1]

    monkeypatch.setattr(crud_student_answer, "get_by_exam_and_user", _with_duplicate)

    r = server_error_client.post(f"/exams/{exam.id}/submit", headers=student_headers, json={"answers": [
        {"question_id": question.id, "selected_option": correct_letter(1)},
    ]})

    print("[2] Nothing from the submission is kept")
    assert r.status_code == 500, r.text
    assert r.json()["error"]["code"] == "CONSISTENCY_ERROR"
    db_session.expire_all()
    assert crud_exam.get(db_session, id=exam.id).status == ExamStatusEnum.IN_PROGRESS
    assert db_session.query(StudentAnswer).filter(StudentAnswer.exam_id == exam.id).count() == 0
    assert crud_exam_result.get_by_exam_and_user(db_session, exam_id=exam.id, user_id=1) is None
    assert crud_student_progress.get_by_user(db_session, user_id=1) is None
    print("[OK] Exam still in progress with no answers, result or progress")
