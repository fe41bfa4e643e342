from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.constants import ConflictReasonEnum, ExamStatusEnum, GradeEnum
from app.core.exceptions import (
    ConsistencyError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from app.crud.exam_result import exam_result as crud_exam_result
from app.crud.question import question as crud_question
from app.crud.student_answer import student_answer as crud_student_answer
from app.models.exam import Exam
from app.models.exam_result import ExamResult
from app.models.question import Question
from app.models.student_answer import StudentAnswer
from app.schemas.student_answer import ExamSubmission
from app.schemas.user import UserContext
from app.services.exam_session import exam_session_service
from app.services.progress import progress_service
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


def percentage_score(points_earned: int, total_points: int) -> int:
    """points_earned / total_points * 100, rounded half up."""
    if total_points <= 0:
        return 0
    return (200 * points_earned + total_points) // (2 * total_points)


def letter_grade(percentage: int) -> GradeEnum:
    if percentage >= 90:
        return GradeEnum.A
    if percentage >= 80:
        return GradeEnum.B
    if percentage >= 70:
        return GradeEnum.C
    if percentage >= 60:
        return GradeEnum.D
    return GradeEnum.F


def feedback_for(percentage: int) -> str:
    if percentage >= 90:
        return "Excellent work! You have shown an exceptional understanding of the content."
    if percentage >= 80:
        return "Very good! You have shown a good understanding of the material."
    if percentage >= 70:
        return "Good job. You have reached the passing level."
    if percentage >= 60:
        return "You are close to passing. Review the material and try again."
    return "You need to study the material more. Review the content before trying again."


def compute_result(exam: Exam, questions: List[Question], answers: List[StudentAnswer]) -> Dict[str, Any]:
    """
    Score one learner's answers in a single pass.

    Raises:
        ConsistencyError: the answer counts do not add up to the question count.
    """
    answered = {a.question_id for a in answers}
    total_questions = len(questions)
    correct_answers = sum(1 for a in answers if a.is_correct)
    incorrect_answers = sum(1 for a in answers if not a.is_correct)
    unanswered = sum(1 for q in questions if q.id not in answered)

    if correct_answers + incorrect_answers + unanswered != total_questions:
        raise ConsistencyError(
            f"Exam {exam.id}: {correct_answers} correct + {incorrect_answers} incorrect + "
            f"{unanswered} unanswered != {total_questions} questions"
        )

    total_points = sum(q.points for q in questions)
    points_earned = sum(a.points_earned for a in answers)
    percentage = percentage_score(points_earned, total_points)

    return {
        "total_questions": total_questions,
        "correct_answers": correct_answers,
        "incorrect_answers": incorrect_answers,
        "unanswered": unanswered,
        "total_points": total_points,
        "points_earned": points_earned,
        "percentage_score": percentage,
        "grade": letter_grade(percentage),
        "passed": percentage >= exam.passing_score,
        "feedback": feedback_for(percentage),
    }


class GradingEngine:

    def _validate_batch(self, db: Session, exam: Exam, submission: ExamSubmission,
                        user_id: int) -> List[Question]:
        question_ids = [a.question_id for a in submission.answers]
        if len(question_ids) != len(set(question_ids)):
            raise ValidationError("Each question can only be answered once per submission.")

        questions = []
        for answer in submission.answers:
            question = crud_question.get(db, id=answer.question_id)
            if not question:
                raise NotFoundError(f"Question {answer.question_id} not found.")
            if question.exam_id != exam.id:
                raise ValidationError(f"Question {answer.question_id} does not belong to this exam.")
            if answer.selected_option not in {option.letter for option in question.options}:
                raise ValidationError(
                    f"Option {answer.selected_option.value} does not exist for question {answer.question_id}."
                )
            if crud_student_answer.get_by_exam_question_user(
                db, exam_id=exam.id, question_id=question.id, user_id=user_id
            ):
                raise StateConflictError(
                    ConflictReasonEnum.ALREADY_ANSWERED,
                    f"Question {answer.question_id} has already been answered.",
                )
            questions.append(question)
        return questions

    def submit(self, db: Session, exam_id: int, submission: ExamSubmission,
               current_user_context: UserContext, now: Optional[datetime] = None) -> ExamResult:
        """
        Grade a batch of answers and complete the exam.

        Nothing is committed here; the caller's transaction either keeps the
        answers, the completed status, the result and the progress update
        together, or none of them.
        """
        now = now or utcnow()
        user_id = current_user_context.user_id
        exam = exam_session_service.get_owned_exam(db, exam_id, current_user_context)
        if exam.status != ExamStatusEnum.IN_PROGRESS or exam.is_expired(now):
            raise exam_session_service.complete_conflict(exam, now)

        questions = self._validate_batch(db, exam, submission, user_id)

        try:
            for answer, question in zip(submission.answers, questions):
                correct = question.correct_option
                is_correct = correct is not None and answer.selected_option == correct.letter
                crud_student_answer.create(db, obj_in={
                    "exam_id": exam.id,
                    "question_id": question.id,
                    "user_id": user_id,
                    "selected_option": answer.selected_option,
                    "is_correct": is_correct,
                    "points_earned": question.points if is_correct else 0,
                })
        except IntegrityError:
            raise StateConflictError(ConflictReasonEnum.ALREADY_ANSWERED, "An answer was already recorded.")

        exam_session_service.complete(db, exam, now)

        if crud_exam_result.get_by_exam_and_user(db, exam_id=exam.id, user_id=user_id):
            raise StateConflictError(ConflictReasonEnum.ALREADY_GRADED, "This exam has already been graded.")

        values = compute_result(
            exam,
            crud_question.get_by_exam(db, exam_id=exam.id),
            crud_student_answer.get_by_exam_and_user(db, exam_id=exam.id, user_id=user_id),
        )
        time_taken = int((now - exam.started_at).total_seconds()) if exam.started_at else None

        try:
            result = crud_exam_result.create(db, obj_in={
                **values,
                "exam_id": exam.id,
                "user_id": user_id,
                "time_taken_seconds": time_taken,
                "completed_at": now,
            })
        except IntegrityError:
            raise StateConflictError(ConflictReasonEnum.ALREADY_GRADED, "This exam has already been graded.")

        progress_service.update_after_exam(db, user_id=user_id, result=result, now=now)
        logger.info(
            f"Exam {exam.id} graded for user {user_id}: {result.percentage_score}% "
            f"({result.grade.value}, passed={result.passed})"
        )
        return result

    def get_result(self, db: Session, exam_id: int, current_user_context: UserContext) -> ExamResult:
        exam = exam_session_service.get_exam(db, exam_id, current_user_context)
        result = crud_exam_result.get_by_exam_and_user(db, exam_id=exam.id, user_id=exam.user_id)
        if not result:
            raise NotFoundError("No result exists for this exam yet.")
        return result


grading_engine = GradingEngine()
