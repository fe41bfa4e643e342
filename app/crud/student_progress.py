from datetime import datetime
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Optional

from app.crud.base import CRUDBase
from app.models.student_progress import StudentProgress

logger = logging.getLogger(__name__)

class CRUDStudentProgress(CRUDBase[StudentProgress, None]):

    def get_by_user(self, db: Session, user_id: int) -> Optional[StudentProgress]:
        return db.query(StudentProgress).filter(StudentProgress.user_id == user_id).first()

    def get_by_user_for_update(self, db: Session, user_id: int) -> Optional[StudentProgress]:
        return (
            db.query(StudentProgress)
            .filter(StudentProgress.user_id == user_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def get_or_create(self, db: Session, user_id: int) -> StudentProgress:
        """
        Locked progress row for a writer, created on first use.

        A writer that loses the race to insert the first row picks up the
        row the other one committed instead of failing on the unique user_id.
        """
        progress = self.get_by_user_for_update(db, user_id=user_id)
        if progress:
            return progress
        try:
            with db.begin_nested():
                progress = StudentProgress(
                    user_id=user_id,
                    total_exams_taken=0,
                    total_exams_passed=0,
                    average_score=0.0,
                    highest_score=0,
                    total_documents_uploaded=0,
                    current_streak=0,
                    longest_streak=0,
                )
                db.add(progress)
        except IntegrityError:
            logger.info(f"Progress row for user {user_id} was created concurrently, reusing it")
            progress = self.get_by_user_for_update(db, user_id=user_id)
        return progress

    def get_needing_attention(self, db: Session, score_threshold: float,
                              inactive_before: datetime) -> List[StudentProgress]:
        return (
            db.query(StudentProgress)
            .filter(or_(
                StudentProgress.average_score < score_threshold,
                StudentProgress.total_exams_taken == 0,
                StudentProgress.last_activity_at.is_(None),
                StudentProgress.last_activity_at < inactive_before,
            ))
            .order_by(StudentProgress.average_score.asc())
            .all()
        )

    def get_ranking(self, db: Session, limit: int = 10) -> List[StudentProgress]:
        return (
            db.query(StudentProgress)
            .filter(StudentProgress.total_exams_taken > 0)
            .order_by(StudentProgress.average_score.desc(), StudentProgress.total_exams_passed.desc())
            .limit(limit)
            .all()
        )


student_progress = CRUDStudentProgress(StudentProgress)
