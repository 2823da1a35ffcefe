"""
Progress Service
Tracks per-student engagement with content and builds dashboard/analytics views
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional
from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..exceptions import (
    ConflictError,
    ContentNotFoundError,
    NotFoundError,
    ValidationError,
)
from ..models import (
    Content,
    Grade,
    Progress,
    ProgressStatus,
    Quiz,
    QuizResult,
    Subject,
    User,
    utcnow,
)
from .logging import get_logging_service

RECENT_ACTIVITY_LIMIT = 5
DEFAULT_ANALYTICS_DAYS = 30


def _round2(value: Optional[float]) -> float:
    return round(float(value or 0), 2)


class ProgressService:
    """Service for tracking student progress"""

    def __init__(self, session: Session):
        self.session = session
        self.logging = get_logging_service()

    def _require_content(self, content_id: int) -> Content:
        content = self.session.get(Content, content_id)
        if content is None:
            raise ContentNotFoundError()
        return content

    def _find(self, student_id: int, content_id: int) -> Optional[Progress]:
        return (
            self.session.query(Progress)
            .filter(Progress.student_id == student_id, Progress.content_id == content_id)
            .first()
        )

    def record_progress(
        self,
        student: User,
        content_id: int,
        status: Optional[ProgressStatus] = None,
        progress_percentage: Optional[float] = None,
        time_spent: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Progress:
        """
        Upsert the (student, content) progress record.

        A new record defaults to in-progress at 0%. On an existing record only
        the supplied fields change, ``time_spent`` is added to the running
        total and ``last_accessed_at`` is always refreshed. The first move to
        completed stamps ``completed_at`` and forces 100%; later completed
        updates keep the original timestamp.
        """
        if progress_percentage is not None and not 0 <= progress_percentage <= 100:
            raise ValidationError.for_field(
                "progress_percentage", "Progress must be between 0 and 100"
            )
        if time_spent is not None and time_spent < 0:
            raise ValidationError.for_field("time_spent", "Time spent cannot be negative")

        self._require_content(content_id)

        for attempt in range(2):
            progress = self._find(student.id, content_id)
            created = progress is None
            now = utcnow()
            if created:
                progress = Progress(
                    student_id=student.id,
                    content_id=content_id,
                    status=status or ProgressStatus.IN_PROGRESS,
                    progress_percentage=progress_percentage or 0.0,
                    time_spent=time_spent or 0,
                    notes=notes,
                    bookmarked=False,
                )
                self.session.add(progress)
            else:
                if status is not None:
                    progress.status = status
                if progress_percentage is not None:
                    progress.progress_percentage = progress_percentage
                if time_spent:
                    progress.time_spent = (progress.time_spent or 0) + time_spent
                if notes is not None:
                    progress.notes = notes

            progress.last_accessed_at = now
            if status == ProgressStatus.COMPLETED:
                progress.mark_completed(now)

            try:
                self.session.commit()
                break
            except IntegrityError:
                # A concurrent request created the row first; apply as an update
                self.session.rollback()
                if not created or attempt:
                    raise ConflictError("Could not save progress, please retry")

        self.session.refresh(progress)
        self.logging.log_crud_operation(
            "create" if created else "update",
            "progress",
            progress.id,
            user_id=student.id,
            content_id=content_id,
            status=progress.status.value,
        )
        return progress

    def list_progress(
        self,
        student: User,
        status: Optional[ProgressStatus] = None,
        subject: Optional[Subject] = None,
        grade: Optional[Grade] = None,
    ) -> List[Progress]:
        """Own progress rows, most recently accessed first; orphaned rows are skipped"""
        query = (
            self.session.query(Progress)
            .join(Content, Content.id == Progress.content_id)
            .options(joinedload(Progress.content))
            .filter(Progress.student_id == student.id)
        )
        if status is not None:
            query = query.filter(Progress.status == status)
        if subject is not None:
            query = query.filter(Content.subject == subject)
        if grade is not None:
            query = query.filter(Content.grade == grade)
        return query.order_by(Progress.last_accessed_at.desc(), Progress.id.desc()).all()

    def get_progress(self, student: User, content_id: int) -> Progress:
        progress = self._find(student.id, content_id)
        if progress is None:
            raise NotFoundError("No progress found for this content")
        return progress

    def toggle_bookmark(self, student: User, content_id: int) -> Progress:
        """Flip the bookmark, creating a not-started bookmarked record if needed"""
        self._require_content(content_id)

        progress = self._find(student.id, content_id)
        if progress is None:
            progress = Progress(
                student_id=student.id,
                content_id=content_id,
                status=ProgressStatus.NOT_STARTED,
                progress_percentage=0.0,
                time_spent=0,
                bookmarked=True,
            )
            self.session.add(progress)
            try:
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                progress = self._find(student.id, content_id)
                progress.bookmarked = not progress.bookmarked
                self.session.commit()
        else:
            progress.bookmarked = not progress.bookmarked
            self.session.commit()

        self.session.refresh(progress)
        self.logging.log_crud_operation(
            "bookmark",
            "progress",
            progress.id,
            user_id=student.id,
            content_id=content_id,
            bookmarked=progress.bookmarked,
        )
        return progress

    def get_dashboard_stats(self, student: User) -> Dict[str, Any]:
        """Overview counts, recent activity and a per-subject rollup"""
        student_id = student.id

        status_counts = dict(
            self.session.query(Progress.status, func.count(Progress.id))
            .filter(Progress.student_id == student_id)
            .group_by(Progress.status)
            .all()
        )
        total_lessons = sum(status_counts.values())
        total_time = (
            self.session.query(func.coalesce(func.sum(Progress.time_spent), 0))
            .filter(Progress.student_id == student_id)
            .scalar()
        )

        total_quizzes, passed_quizzes, average_score = (
            self.session.query(
                func.count(QuizResult.id),
                func.sum(case((QuizResult.passed.is_(True), 1), else_=0)),
                func.avg(QuizResult.percentage),
            )
            .filter(QuizResult.student_id == student_id)
            .one()
        )

        recent_progress = (
            self.session.query(Progress)
            .options(joinedload(Progress.content))
            .filter(Progress.student_id == student_id)
            .order_by(Progress.last_accessed_at.desc(), Progress.id.desc())
            .limit(RECENT_ACTIVITY_LIMIT)
            .all()
        )
        recent_quizzes = (
            self.session.query(QuizResult)
            .options(joinedload(QuizResult.quiz))
            .filter(QuizResult.student_id == student_id)
            .order_by(QuizResult.submitted_at.desc(), QuizResult.id.desc())
            .limit(RECENT_ACTIVITY_LIMIT)
            .all()
        )

        subject_rows = (
            self.session.query(
                Content.subject,
                func.count(Progress.id),
                func.sum(case((Progress.status == ProgressStatus.COMPLETED, 1), else_=0)),
                func.avg(Progress.progress_percentage),
            )
            .join(Content, Content.id == Progress.content_id)
            .filter(Progress.student_id == student_id)
            .group_by(Content.subject)
            .order_by(Content.subject)
            .all()
        )

        return {
            "overview": {
                "total_lessons": total_lessons,
                "completed_lessons": status_counts.get(ProgressStatus.COMPLETED, 0),
                "in_progress_lessons": status_counts.get(ProgressStatus.IN_PROGRESS, 0),
                "total_quizzes": total_quizzes or 0,
                "passed_quizzes": int(passed_quizzes or 0),
                "average_score": _round2(average_score),
                "total_time_spent": int(total_time or 0),
            },
            "recent_activity": {
                "recent_progress": recent_progress,
                "recent_quizzes": recent_quizzes,
            },
            "subject_progress": [
                {
                    "subject": subject.value,
                    "total": total,
                    "completed": int(completed or 0),
                    "avg_progress": _round2(avg_progress),
                }
                for subject, total, completed, avg_progress in subject_rows
            ],
        }

    def get_analytics(self, student: User, period_days: int = DEFAULT_ANALYTICS_DAYS) -> Dict[str, Any]:
        """
        Time-windowed performance data.

        The quiz series and the daily learning-time buckets are limited to the
        last ``period_days`` days; the per-subject rollup covers all results.
        """
        if period_days < 1:
            raise ValidationError.for_field("period", "Period must be at least one day")
        since = utcnow() - timedelta(days=period_days)
        student_id = student.id

        quiz_performance = (
            self.session.query(QuizResult)
            .options(joinedload(QuizResult.quiz))
            .filter(QuizResult.student_id == student_id, QuizResult.submitted_at >= since)
            .order_by(QuizResult.submitted_at.asc(), QuizResult.id.asc())
            .all()
        )

        day = func.date(Progress.last_accessed_at)
        time_rows = (
            self.session.query(day, func.sum(Progress.time_spent))
            .filter(Progress.student_id == student_id, Progress.last_accessed_at >= since)
            .group_by(day)
            .order_by(day)
            .all()
        )

        subject_rows = (
            self.session.query(
                Quiz.subject,
                func.avg(QuizResult.percentage),
                func.count(QuizResult.id),
                func.sum(case((QuizResult.passed.is_(True), 1), else_=0)),
            )
            .join(Quiz, Quiz.id == QuizResult.quiz_id)
            .filter(QuizResult.student_id == student_id)
            .group_by(Quiz.subject)
            .order_by(Quiz.subject)
            .all()
        )

        return {
            "quiz_performance": quiz_performance,
            "learning_time": [
                {"date": str(date), "total_time": int(total or 0)}
                for date, total in time_rows
            ],
            "subject_performance": [
                {
                    "subject": subject.value,
                    "average_score": _round2(avg),
                    "total_attempts": attempts,
                    "passed": int(passed or 0),
                }
                for subject, avg, attempts, passed in subject_rows
            ],
        }
