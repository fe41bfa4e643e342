from datetime import timedelta
from sqlalchemy.orm import Session

from app.core.constants import DocumentStatusEnum, ExamStatusEnum
from app.crud.status_ledger import status_ledger
from app.models.document import Document
from app.models.exam import Exam
from app.utils.clock import utcnow
from tests.helpers.factories import make_document, make_exam


def test_transition_applies_when_status_matches(db_session: Session):
    doc = make_document(db_session, status=DocumentStatusEnum.UPLOADED)

    changed = status_ledger.transition(
        db_session, Document, doc.id, {DocumentStatusEnum.UPLOADED}, DocumentStatusEnum.PROCESSING
    )
    db_session.commit()

    assert changed is True
    assert status_ledger.current_status(db_session, Document, doc.id) == DocumentStatusEnum.PROCESSING


def test_transition_is_noop_when_precondition_fails(db_session: Session):
    doc = make_document(db_session, status=DocumentStatusEnum.ANALYZED)

    changed = status_ledger.transition(
        db_session, Document, doc.id, {DocumentStatusEnum.UPLOADED}, DocumentStatusEnum.PROCESSING,
        error_message="should not be written",
    )
    db_session.commit()
    db_session.refresh(doc)

    assert changed is False
    assert doc.status == DocumentStatusEnum.ANALYZED
    assert doc.error_message is None


def test_only_one_of_two_sessions_wins_the_same_transition(session_factory, db_session: Session):
    doc = make_document(db_session, status=DocumentStatusEnum.UPLOADED)

    first = session_factory()
    second = session_factory()
    try:
        won_first = status_ledger.transition(
            first, Document, doc.id, {DocumentStatusEnum.UPLOADED}, DocumentStatusEnum.PROCESSING
        )
        first.commit()
        won_second = status_ledger.transition(
            second, Document, doc.id, {DocumentStatusEnum.UPLOADED}, DocumentStatusEnum.PROCESSING
        )
        second.commit()
    finally:
        first.close()
        second.close()

    assert [won_first, won_second] == [True, False]


def test_transition_honours_extra_criteria(db_session: Session):
    doc = make_document(db_session)
    exam = make_exam(db_session, doc, status=ExamStatusEnum.READY, time_limit_minutes=1)
    later = utcnow() + timedelta(minutes=5)

    changed = status_ledger.transition(
        db_session, Exam, exam.id, {ExamStatusEnum.READY}, ExamStatusEnum.IN_PROGRESS,
        Exam.expires_at >= later,
    )

    assert changed is False
    assert status_ledger.current_status(db_session, Exam, exam.id) == ExamStatusEnum.READY


def test_current_status_of_unknown_id_is_none(db_session: Session):
    assert status_ledger.current_status(db_session, Document, 12345) is None
