"""
Quiz Service
Quiz authoring, publishing and the submission/grading flow
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import (
    AuthorizationError,
    ConflictError,
    ContentNotFoundError,
    QuizNotFoundError,
    ValidationError,
)
from ..models import (
    Content,
    Difficulty,
    Grade,
    Question,
    QuestionType,
    Quiz,
    QuizResult,
    Subject,
    User,
    utcnow,
)
from ..roles import can_manage, is_admin
from .grading import (
    AnswerKey,
    GradingOutcome,
    compute_time_taken,
    grade_answers,
    normalize_answer,
)
from .listing import Page, order_clause, paginate, split_tags
from .logging import get_logging_service
from .settings_config_service import get_settings_service

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000
DEFAULT_DURATION = 30
DEFAULT_PASSING_SCORE = 60

SORTABLE_COLUMNS = {
    "created_at": Quiz.created_at,
    "updated_at": Quiz.updated_at,
    "title": Quiz.title,
    "attempts": Quiz.attempts,
    "duration": Quiz.duration,
    "total_points": Quiz.total_points,
}


def to_naive_utc(value: datetime) -> datetime:
    """Normalize a client timestamp; naive values are taken to be UTC already."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _validate_questions(questions: Sequence[Dict[str, Any]]):
    if not questions:
        raise ValidationError.for_field("questions", "At least one question is required")

    errors = []
    for index, q in enumerate(questions):
        prefix = f"questions[{index}]"
        if not str(q.get("question_text") or "").strip():
            errors.append(
                {"field": f"{prefix}.question_text", "message": "Question text is required"}
            )
        answer = str(q.get("correct_answer") or "").strip()
        if not answer:
            errors.append(
                {"field": f"{prefix}.correct_answer", "message": "Correct answer is required"}
            )

        question_type = q.get("question_type")
        options = q.get("options") or []
        if question_type == QuestionType.MCQ:
            if len(options) < 2:
                errors.append(
                    {
                        "field": f"{prefix}.options",
                        "message": "Multiple choice questions need at least two options",
                    }
                )
            elif sum(1 for opt in options if opt.get("is_correct")) != 1:
                errors.append(
                    {
                        "field": f"{prefix}.options",
                        "message": "Multiple choice questions need exactly one correct option",
                    }
                )
        elif question_type == QuestionType.TRUE_FALSE and answer:
            if normalize_answer(answer) not in ("true", "false"):
                errors.append(
                    {
                        "field": f"{prefix}.correct_answer",
                        "message": "True/false questions must be answered True or False",
                    }
                )
        points = q.get("points")
        if points is not None and points < 0:
            errors.append({"field": f"{prefix}.points", "message": "Points cannot be negative"})
    if errors:
        raise ValidationError("Invalid questions", errors=errors)


def _build_question(data: Dict[str, Any], index: int) -> Question:
    question = Question(
        question_text=str(data["question_text"]).strip(),
        question_type=data.get("question_type") or QuestionType.SHORT_ANSWER,
        options=[
            {"text": str(opt.get("text", "")), "is_correct": bool(opt.get("is_correct", False))}
            for opt in (data.get("options") or [])
        ],
        explanation=data.get("explanation"),
        points=data.get("points", 1),
        order=data["order"] if data.get("order") is not None else index,
    )
    question.set_encrypted_correct_answer(str(data["correct_answer"]).strip())
    return question


class QuizService:
    """Service for quizzes and graded attempts"""

    def __init__(self, session: Session):
        self.session = session
        self.logging = get_logging_service()
        self.settings = get_settings_service()

    def _get_or_404(self, quiz_id: int) -> Quiz:
        quiz = self.session.get(Quiz, quiz_id)
        if quiz is None:
            raise QuizNotFoundError()
        return quiz

    def _require_manage(self, quiz: Quiz, user: User, action: str):
        if not can_manage(user, quiz.created_by_id):
            raise AuthorizationError(f"Not authorized to {action} this quiz")

    def _check_related_content(self, content_id: Optional[int]):
        if content_id is not None and self.session.get(Content, content_id) is None:
            raise ContentNotFoundError("Related content not found")

    @staticmethod
    def _check_scalars(
        title: Optional[str] = None,
        description: Optional[str] = None,
        duration: Optional[int] = None,
        passing_score: Optional[float] = None,
    ):
        if title is not None:
            if not title.strip():
                raise ValidationError.for_field("title", "Title is required")
            if len(title.strip()) > TITLE_MAX_LENGTH:
                raise ValidationError.for_field(
                    "title", f"Title cannot be more than {TITLE_MAX_LENGTH} characters"
                )
        if description is not None:
            if not description.strip():
                raise ValidationError.for_field("description", "Description is required")
            if len(description.strip()) > DESCRIPTION_MAX_LENGTH:
                raise ValidationError.for_field(
                    "description",
                    f"Description cannot be more than {DESCRIPTION_MAX_LENGTH} characters",
                )
        if duration is not None and duration < 1:
            raise ValidationError.for_field("duration", "Duration must be at least 1 minute")
        if passing_score is not None and not 0 <= passing_score <= 100:
            raise ValidationError.for_field(
                "passing_score", "Passing score must be between 0 and 100"
            )

    def create_quiz(
        self,
        creator: User,
        title: str,
        description: str,
        subject: Subject,
        grade: Grade,
        questions: Sequence[Dict[str, Any]],
        duration: Optional[int] = None,
        passing_score: Optional[int] = None,
        difficulty: Optional[Difficulty] = None,
        related_content_id: Optional[int] = None,
        tags: Any = None,
    ) -> Quiz:
        """Create an unpublished quiz; total points are derived from the questions"""
        self._check_scalars(title or "", description or "", duration, passing_score)
        _validate_questions(questions)
        self._check_related_content(related_content_id)

        quiz = Quiz(
            title=title.strip(),
            description=description.strip(),
            subject=subject,
            grade=grade,
            duration=duration or DEFAULT_DURATION,
            passing_score=DEFAULT_PASSING_SCORE if passing_score is None else passing_score,
            difficulty=difficulty or Difficulty.BEGINNER,
            related_content_id=related_content_id,
            tags=split_tags(tags),
            created_by_id=creator.id,
            is_published=False,
        )
        quiz.questions = [_build_question(q, i) for i, q in enumerate(questions)]
        self.session.add(quiz)
        self.session.commit()
        self.session.refresh(quiz)

        self.logging.log_crud_operation(
            "create",
            "quiz",
            quiz.id,
            user_id=creator.id,
            questions=len(quiz.questions),
            total_points=quiz.total_points,
        )
        return quiz

    def list_quizzes(
        self,
        viewer: Optional[User] = None,
        subject: Optional[Subject] = None,
        grade: Optional[Grade] = None,
        difficulty: Optional[Difficulty] = None,
        created_by: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
        sort: Optional[str] = None,
    ) -> Page:
        query = self.session.query(Quiz)

        include_unpublished = (
            created_by is not None
            and viewer is not None
            and (is_admin(viewer) or viewer.id == created_by)
        )
        if not include_unpublished:
            query = query.filter(Quiz.is_published.is_(True))

        if created_by is not None:
            query = query.filter(Quiz.created_by_id == created_by)
        if subject is not None:
            query = query.filter(Quiz.subject == subject)
        if grade is not None:
            query = query.filter(Quiz.grade == grade)
        if difficulty is not None:
            query = query.filter(Quiz.difficulty == difficulty)

        return paginate(
            query, page, limit, order_clause(sort, SORTABLE_COLUMNS), Quiz.id.desc()
        )

    def get_quiz(self, quiz_id: int, viewer: User) -> Quiz:
        """Quiz for attempting; unpublished quizzes are only visible to owner/admin"""
        quiz = self._get_or_404(quiz_id)
        if not quiz.is_published and not can_manage(viewer, quiz.created_by_id):
            raise AuthorizationError("Quiz is not published yet")
        return quiz

    def get_quiz_full(self, quiz_id: int, user: User) -> Quiz:
        """Quiz including answer keys; owner/admin only"""
        quiz = self._get_or_404(quiz_id)
        self._require_manage(quiz, user, "view answers for")
        return quiz

    def update_quiz(
        self,
        quiz_id: int,
        user: User,
        changes: Dict[str, Any],
        questions: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> Quiz:
        """
        Partial update. ``None`` values are left unchanged, except that a
        ``None`` related_content_id unlinks the content. A question list, when
        given, replaces every existing question.
        """
        quiz = self._get_or_404(quiz_id)
        self._require_manage(quiz, user, "update")

        self._check_scalars(
            changes.get("title"),
            changes.get("description"),
            changes.get("duration"),
            changes.get("passing_score"),
        )
        if "related_content_id" in changes:
            self._check_related_content(changes.get("related_content_id"))

        applied = []
        for key in (
            "title",
            "description",
            "subject",
            "grade",
            "duration",
            "passing_score",
            "difficulty",
            "related_content_id",
            "tags",
        ):
            if key not in changes:
                continue
            value = changes[key]
            # An explicit null only clears the related content link
            if value is None and key != "related_content_id":
                continue
            if key in ("title", "description"):
                value = value.strip()
            elif key == "tags":
                value = split_tags(value)
            setattr(quiz, key, value)
            applied.append(key)

        if questions is not None:
            _validate_questions(questions)
            quiz.questions = [_build_question(q, i) for i, q in enumerate(questions)]
            applied.append("questions")

        self.session.commit()
        self.session.refresh(quiz)

        self.logging.log_crud_operation(
            "update",
            "quiz",
            quiz.id,
            user_id=user.id,
            fields=applied,
            total_points=quiz.total_points,
        )
        return quiz

    def delete_quiz(self, quiz_id: int, user: User) -> None:
        quiz = self._get_or_404(quiz_id)
        self._require_manage(quiz, user, "delete")

        self.session.delete(quiz)
        self.session.commit()

        self.logging.log_crud_operation("delete", "quiz", quiz_id, user_id=user.id)

    def toggle_publish(self, quiz_id: int, user: User) -> Quiz:
        quiz = self._get_or_404(quiz_id)
        self._require_manage(quiz, user, "publish")

        quiz.is_published = not quiz.is_published
        self.session.commit()
        self.session.refresh(quiz)

        self.logging.log_crud_operation(
            "publish", "quiz", quiz.id, user_id=user.id, is_published=quiz.is_published
        )
        return quiz

    def submit_quiz(
        self,
        quiz_id: int,
        student: User,
        answers: Iterable[Tuple[Any, Any]],
        started_at: datetime,
    ) -> QuizResult:
        """
        Grade a submission and record it as the student's next attempt.

        ``answers`` are ``(question_id, user_answer)`` pairs. ``started_at``
        may not lie in the future beyond the configured clock-skew allowance.
        The attempts counter on the quiz is bumped after the result is
        stored; if that bump fails the result still stands.
        """
        quiz = self._get_or_404(quiz_id)
        if not quiz.is_published and not can_manage(student, quiz.created_by_id):
            raise AuthorizationError("Quiz is not published yet")

        submitted_at = utcnow()
        started_at = to_naive_utc(started_at)
        skew = self.settings.getint("quiz", "clock_skew_seconds", 60)
        if started_at > submitted_at + timedelta(seconds=skew):
            raise ValidationError.for_field(
                "started_at", "Start time cannot be in the future"
            )

        keys = [
            AnswerKey(
                question_id=q.id,
                correct_answer=q.get_decrypted_correct_answer() or "",
                points=q.points,
                question_text=q.question_text,
            )
            for q in quiz.questions
        ]
        outcome = grade_answers(keys, answers, quiz.passing_score)
        time_taken = compute_time_taken(started_at, submitted_at)

        result = self._store_attempt(
            quiz, student, outcome, started_at, submitted_at, time_taken
        )

        try:
            self.session.execute(
                update(Quiz)
                .where(Quiz.id == quiz_id)
                .values(attempts=Quiz.attempts + 1)
                .execution_options(synchronize_session=False)
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            self.logging.log_error(
                "quiz_attempts_increment",
                str(e),
                user_id=student.id,
                quiz_id=quiz_id,
                result_id=result.id,
            )

        self.session.refresh(result)
        self.logging.log_crud_operation(
            "submit",
            "quiz_result",
            result.id,
            user_id=student.id,
            quiz_id=quiz_id,
            attempt_number=result.attempt_number,
            percentage=result.percentage,
            passed=result.passed,
        )
        return result

    def _store_attempt(
        self,
        quiz: Quiz,
        student: User,
        outcome: GradingOutcome,
        started_at: datetime,
        submitted_at: datetime,
        time_taken: int,
    ) -> QuizResult:
        # The unique (quiz, student, attempt_number) constraint turns a
        # concurrent duplicate into an IntegrityError; recount and retry.
        retries = max(1, self.settings.getint("quiz", "max_attempt_retries", 3))
        quiz_id = quiz.id
        for attempt in range(1, retries + 1):
            prior = (
                self.session.query(func.count(QuizResult.id))
                .filter(
                    QuizResult.quiz_id == quiz_id,
                    QuizResult.student_id == student.id,
                )
                .scalar()
            )
            result = QuizResult(
                quiz_id=quiz_id,
                student_id=student.id,
                answers=[a.to_dict() for a in outcome.answers],
                score=outcome.score,
                total_points=outcome.total_points,
                percentage=outcome.percentage,
                passed=outcome.passed,
                time_taken=time_taken,
                started_at=started_at,
                submitted_at=submitted_at,
                attempt_number=(prior or 0) + 1,
            )
            self.session.add(result)
            try:
                self.session.commit()
                return result
            except IntegrityError:
                self.session.rollback()
                self.logging.log_event(
                    "quiz",
                    "WARNING",
                    "quiz.attempt_number_conflict",
                    user_id=student.id,
                    quiz_id=quiz_id,
                    attempt=attempt,
                )
        raise ConflictError("Could not record the quiz attempt, please submit again")

    def get_results(self, quiz_id: int, student: User) -> List[QuizResult]:
        """The student's own attempts on a quiz, newest first"""
        return (
            self.session.query(QuizResult)
            .filter(QuizResult.quiz_id == quiz_id, QuizResult.student_id == student.id)
            .order_by(QuizResult.submitted_at.desc(), QuizResult.id.desc())
            .all()
        )
