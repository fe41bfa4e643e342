from datetime import datetime, timedelta
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.constants import PerformanceLevelEnum
from app.core.exceptions import ForbiddenError
from app.crud.exam import exam as crud_exam
from app.crud.exam_result import exam_result as crud_exam_result
from app.crud.student_progress import student_progress as crud_student_progress
from app.models.exam_result import ExamResult
from app.models.student_progress import StudentProgress
from app.schemas.exam import StudentExamSummary
from app.schemas.progress import StudentProgress as StudentProgressSchema, RankingEntry
from app.schemas.user import UserContext
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


class ProgressService:

    def update_after_exam(self, db: Session, user_id: int, result: ExamResult,
                          now: Optional[datetime] = None) -> StudentProgress:
        """
        Refresh a learner's aggregate after `result` has been written.

        Totals and the average are recomputed from every stored result rather
        than adjusted in place; the streak follows the outcome of `result`.
        """
        now = now or utcnow()
        progress = crud_student_progress.get_or_create(db, user_id=user_id)
        results = crud_exam_result.get_all_by_user(db, user_id=user_id)
        scores = [r.percentage_score for r in results]

        progress.total_exams_taken = len(results)
        progress.total_exams_passed = sum(1 for r in results if r.passed)
        progress.average_score = round(sum(scores) / len(scores), 2) if scores else 0.0
        progress.highest_score = max(scores) if scores else 0
        progress.lowest_score = min(scores) if scores else None

        if result.passed:
            progress.current_streak += 1
        else:
            progress.current_streak = 0
        progress.longest_streak = max(progress.longest_streak, progress.current_streak)
        progress.last_activity_at = now

        db.add(progress)
        db.flush()
        logger.info(
            f"Progress for user {user_id}: {progress.total_exams_taken} exams, "
            f"average {progress.average_score}, streak {progress.current_streak}"
        )
        return progress

    def record_upload(self, db: Session, user_id: int) -> StudentProgress:
        progress = crud_student_progress.get_or_create(db, user_id=user_id)
        progress.total_documents_uploaded += 1
        db.add(progress)
        db.flush()
        return progress

    # Derived classifications, never stored.

    def is_active(self, progress: StudentProgress, now: Optional[datetime] = None) -> bool:
        if progress.last_activity_at is None:
            return False
        return (now or utcnow()) - progress.last_activity_at <= timedelta(days=settings.INACTIVITY_DAYS)

    def needs_attention(self, progress: StudentProgress, now: Optional[datetime] = None) -> bool:
        return (
            progress.average_score < settings.ATTENTION_SCORE_THRESHOLD
            or progress.total_exams_taken == 0
            or not self.is_active(progress, now)
        )

    def pass_rate(self, progress: StudentProgress) -> int:
        if not progress.total_exams_taken:
            return 0
        return round(progress.total_exams_passed / progress.total_exams_taken * 100)

    def performance_level(self, progress: StudentProgress) -> PerformanceLevelEnum:
        average = progress.average_score or 0
        if average >= 90:
            return PerformanceLevelEnum.EXCELLENT
        if average >= 80:
            return PerformanceLevelEnum.VERY_GOOD
        if average >= 70:
            return PerformanceLevelEnum.GOOD
        if average >= 60:
            return PerformanceLevelEnum.FAIR
        return PerformanceLevelEnum.NEEDS_IMPROVEMENT

    def to_schema(self, progress: StudentProgress, now: Optional[datetime] = None) -> StudentProgressSchema:
        return StudentProgressSchema.model_validate(progress).model_copy(update={
            "pass_rate": self.pass_rate(progress),
            "performance_level": self.performance_level(progress),
            "is_active": self.is_active(progress, now),
            "needs_attention": self.needs_attention(progress, now),
        })

    # Read views

    def get_for_user(self, db: Session, user_id: int, current_user_context: UserContext) -> StudentProgressSchema:
        if user_id != current_user_context.user_id and not current_user_context.is_teacher:
            raise ForbiddenError("Only teachers can view another learner's progress.")

        progress = crud_student_progress.get_by_user(db, user_id=user_id)
        if not progress:
            # Not persisted: a progress read has no side effects.
            progress = StudentProgress(
                user_id=user_id,
                total_exams_taken=0,
                total_exams_passed=0,
                average_score=0.0,
                highest_score=0,
                lowest_score=None,
                total_documents_uploaded=0,
                current_streak=0,
                longest_streak=0,
                last_activity_at=None,
            )
        return self.to_schema(progress)

    def list_needing_attention(self, db: Session, current_user_context: UserContext,
                               now: Optional[datetime] = None) -> List[StudentProgressSchema]:
        self._require_teacher(current_user_context)
        now = now or utcnow()
        rows = crud_student_progress.get_needing_attention(
            db,
            score_threshold=settings.ATTENTION_SCORE_THRESHOLD,
            inactive_before=now - timedelta(days=settings.INACTIVITY_DAYS),
        )
        return [self.to_schema(row, now) for row in rows]

    def ranking(self, db: Session, current_user_context: UserContext, limit: int = 10) -> List[RankingEntry]:
        self._require_teacher(current_user_context)
        rows = crud_student_progress.get_ranking(db, limit=limit)
        return [
            RankingEntry(
                position=position,
                user_id=row.user_id,
                average_score=row.average_score,
                total_exams_taken=row.total_exams_taken,
                total_exams_passed=row.total_exams_passed,
                current_streak=row.current_streak,
                pass_rate=self.pass_rate(row),
            )
            for position, row in enumerate(rows, start=1)
        ]

    def list_student_exams(self, db: Session, user_id: int, current_user_context: UserContext,
                           skip: int = 0, limit: int = 10) -> List[StudentExamSummary]:
        """One learner's exams, newest first, each with its result summary once graded."""
        self._require_teacher(current_user_context)
        summaries = []
        for exam in crud_exam.get_multi_by_user(db, user_id=user_id, skip=skip, limit=limit):
            result = crud_exam_result.get_by_exam_and_user(db, exam_id=exam.id, user_id=user_id)
            summary = StudentExamSummary.model_validate(exam)
            summary.document_file_name = exam.document.file_name if exam.document else None
            if result:
                summary.percentage_score = result.percentage_score
                summary.passed = result.passed
                summary.result_completed_at = result.completed_at
            summaries.append(summary)
        return summaries

    def _require_teacher(self, current_user_context: UserContext):
        if not current_user_context.is_teacher:
            raise ForbiddenError("Only teachers can view class-wide progress.")


progress_service = ProgressService()
