import asyncio
import json

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.core.constants import DocumentStatusEnum, ExamStatusEnum, FileKindEnum
from app.core.exceptions import ExternalServiceError
from app.crud.exam import exam as crud_exam
from app.crud.question import question as crud_question
from app.services.question_generation import allocate_points
from tests.helpers.factories import make_document, make_exam, questions_payload


def _busy():
    return ExternalServiceError("503 UNAVAILABLE: model overloaded", retryable=True)


def _reload_exam(db: Session, exam_id: int):
    db.expire_all()
    return crud_exam.get(db, id=exam_id)


@pytest.mark.parametrize("count,points", [(1, 100), (3, 33), (7, 14), (10, 10), (50, 2)])
def test_allocate_points_floors_without_redistribution(count, points):
    assert allocate_points(count) == points


def test_allocate_points_rejects_zero():
    with pytest.raises(ValueError):
        allocate_points(0)


@pytest.mark.asyncio
async def test_generates_exactly_n_questions_with_one_correct_option(db_session: Session, generation_stage):
    exam = make_exam(db_session, make_document(db_session), total_questions=7)

    await generation_stage.generate(exam.id, 7)

    exam = _reload_exam(db_session, exam.id)
    assert exam.status == ExamStatusEnum.READY
    assert exam.error_message is None
    questions = crud_question.get_by_exam(db_session, exam_id=exam.id)
    assert [q.question_number for q in questions] == list(range(1, 8))
    for question in questions:
        assert question.points == 14
        assert len(question.options) == 4
        assert [o.order_number for o in question.options] == [1, 2, 3, 4]
        assert sum(1 for o in question.options if o.is_correct) == 1


@pytest.mark.asyncio
async def test_count_defaults_to_exam_total(db_session: Session, generation_stage, fake_content_service):
    exam = make_exam(db_session, make_document(db_session), total_questions=4)

    await generation_stage.generate(exam.id)

    assert fake_content_service.generate_calls[0]["count"] == 4
    assert len(crud_question.get_by_exam(db_session, exam_id=exam.id)) == 4


@pytest.mark.asyncio
async def test_retryable_failures_back_off_exponentially(db_session: Session, generation_stage,
                                                         fake_content_service, recorded_sleep):
    fake_content_service.question_responses = [_busy(), _busy(), _busy()]
    exam = make_exam(db_session, make_document(db_session), total_questions=2)

    await generation_stage.generate(exam.id, 2)

    assert recorded_sleep.delays == [1.0, 2.0, 4.0]
    assert len(fake_content_service.generate_calls) == 4
    assert _reload_exam(db_session, exam.id).status == ExamStatusEnum.READY


@pytest.mark.asyncio
async def test_gives_up_after_three_retries(db_session: Session, generation_stage,
                                            fake_content_service, recorded_sleep):
    fake_content_service.question_responses = [_busy(), _busy(), _busy(), _busy()]
    exam = make_exam(db_session, make_document(db_session), total_questions=2)

    await generation_stage.generate(exam.id, 2)

    exam = _reload_exam(db_session, exam.id)
    assert exam.status == ExamStatusEnum.ERROR
    assert "overloaded" in exam.error_message
    assert recorded_sleep.delays == [1.0, 2.0, 4.0]
    assert len(crud_question.get_by_exam(db_session, exam_id=exam.id)) == 0


@pytest.mark.asyncio
async def test_non_retryable_failure_is_not_retried(db_session: Session, generation_stage,
                                                    fake_content_service, recorded_sleep):
    fake_content_service.question_responses = [ExternalServiceError("400 INVALID_ARGUMENT", retryable=False)]
    exam = make_exam(db_session, make_document(db_session), total_questions=2)

    await generation_stage.generate(exam.id, 2)

    assert recorded_sleep.delays == []
    assert len(fake_content_service.generate_calls) == 1
    assert _reload_exam(db_session, exam.id).status == ExamStatusEnum.ERROR


@pytest.mark.asyncio
async def test_chatty_output_is_salvaged(db_session: Session, generation_stage, fake_content_service):
    fake_content_service.question_responses = ["Here you go:\n" + json.dumps(questions_payload(3)) + "\nEnjoy!"]
    exam = make_exam(db_session, make_document(db_session), total_questions=3)

    await generation_stage.generate(exam.id, 3)

    assert _reload_exam(db_session, exam.id).status == ExamStatusEnum.READY
    assert len(crud_question.get_by_exam(db_session, exam_id=exam.id)) == 3


@pytest.mark.asyncio
async def test_malformed_output_fails_text_document(db_session: Session, generation_stage, fake_content_service):
    fake_content_service.question_responses = ["no structured output at all"]
    exam = make_exam(db_session, make_document(db_session), total_questions=3)

    await generation_stage.generate(exam.id, 3)

    exam = _reload_exam(db_session, exam.id)
    assert exam.status == ExamStatusEnum.ERROR
    assert exam.error_message
    assert len(crud_question.get_by_exam(db_session, exam_id=exam.id)) == 0


@pytest.mark.asyncio
async def test_failure_partway_keeps_stored_questions(db_session: Session, generation_stage, monkeypatch):
    exam = make_exam(db_session, make_document(db_session), total_questions=5)
    store_question = crud_question.create_with_options

    def _fail_on_third(db, *, question_number, **kwargs):
        if question_number == 3:
            raise OperationalError("INSERT INTO questions", {}, Exception("disk I/O error"))
        return store_question(db, question_number=question_number, **kwargs)

    monkeypatch.setattr(crud_question, "create_with_options", _fail_on_third)

    await generation_stage.generate(exam.id, 5)

    exam = _reload_exam(db_session, exam.id)
    assert exam.status == ExamStatusEnum.ERROR
    assert exam.error_message
    assert [q.question_number for q in crud_question.get_by_exam(db_session, exam_id=exam.id)] == [1, 2]


@pytest.mark.asyncio
async def test_malformed_output_uses_placeholders_for_image_document(db_session: Session, generation_stage,
                                                                     fake_content_service):
    fake_content_service.question_responses = ["no structured output at all"]
    doc = make_document(db_session, kind=FileKindEnum.IMAGE, file_name="board.png")
    exam = make_exam(db_session, doc, total_questions=5)

    await generation_stage.generate(exam.id, 5)

    assert _reload_exam(db_session, exam.id).status == ExamStatusEnum.READY
    questions = crud_question.get_by_exam(db_session, exam_id=exam.id)
    correct = [q.correct_option.letter.value for q in questions]
    assert correct == ["A", "B", "C", "D", "A"]
    assert all(q.question_text.startswith("Placeholder question") for q in questions)


@pytest.mark.asyncio
async def test_unanalyzed_document_fails_generation(db_session: Session, generation_stage, fake_content_service):
    doc = make_document(db_session, status=DocumentStatusEnum.PROCESSING)
    exam = make_exam(db_session, doc, total_questions=2)

    await generation_stage.generate(exam.id, 2)

    assert _reload_exam(db_session, exam.id).status == ExamStatusEnum.ERROR
    assert fake_content_service.generate_calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [ExamStatusEnum.PROCESSING, ExamStatusEnum.READY, ExamStatusEnum.ERROR])
async def test_generate_is_noop_unless_pending(db_session: Session, generation_stage, fake_content_service, status):
    exam = make_exam(db_session, make_document(db_session), status=status, total_questions=2)

    await generation_stage.generate(exam.id, 2)

    assert _reload_exam(db_session, exam.id).status == status
    assert fake_content_service.generate_calls == []
    assert len(crud_question.get_by_exam(db_session, exam_id=exam.id)) == 0


@pytest.mark.asyncio
async def test_concurrent_generate_calls_produce_one_question_set(db_session: Session, generation_stage,
                                                                  fake_content_service):
    exam = make_exam(db_session, make_document(db_session), total_questions=5)

    await asyncio.gather(generation_stage.generate(exam.id, 5), generation_stage.generate(exam.id, 5))

    assert len(fake_content_service.generate_calls) == 1
    assert _reload_exam(db_session, exam.id).status == ExamStatusEnum.READY
    questions = crud_question.get_by_exam(db_session, exam_id=exam.id)
    assert [q.question_number for q in questions] == [1, 2, 3, 4, 5]
