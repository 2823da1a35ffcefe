"""
SQLAlchemy models for VidyaSetu

Users, the content library, quizzes with their questions, per-student
progress and graded quiz results.
"""

import enum
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Boolean,
    ForeignKey,
    Text,
    Float,
    Enum as SQLEnum,
    Index,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import declarative_base, relationship, Session
from sqlalchemy.dialects.sqlite import JSON
from cryptography.fernet import Fernet, InvalidToken

Base = declarative_base()

# Encryption setup - use persistent key from security_utils
from ..security_utils import get_or_create_encryption_key

ENCRYPTION_KEY = get_or_create_encryption_key()
cipher = Fernet(ENCRYPTION_KEY)


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite stores datetimes without a zone."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class UserRole(enum.Enum):
    """Account roles"""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class Subject(enum.Enum):
    MATHEMATICS = "Mathematics"
    SCIENCE = "Science"
    ENGLISH = "English"
    SOCIAL_STUDIES = "Social Studies"
    HINDI = "Hindi"
    COMPUTER_SCIENCE = "Computer Science"
    GENERAL_KNOWLEDGE = "General Knowledge"
    OTHER = "Other"


class Grade(enum.Enum):
    """School grade a resource targets; ALL means every grade"""

    GRADE_1 = "1"
    GRADE_2 = "2"
    GRADE_3 = "3"
    GRADE_4 = "4"
    GRADE_5 = "5"
    GRADE_6 = "6"
    GRADE_7 = "7"
    GRADE_8 = "8"
    GRADE_9 = "9"
    GRADE_10 = "10"
    GRADE_11 = "11"
    GRADE_12 = "12"
    ALL = "All"


class ContentType(enum.Enum):
    """Kinds of learning asset"""

    VIDEO = "video"
    AUDIO = "audio"
    PDF = "pdf"
    TEXT = "text"
    IMAGE = "image"


class Difficulty(enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class QuestionType(enum.Enum):
    """Quiz question types"""

    MCQ = "mcq"
    TRUE_FALSE = "true-false"
    SHORT_ANSWER = "short-answer"


class ProgressStatus(enum.Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


def encrypt_data(data: str) -> str:
    """Encrypt sensitive data"""
    if not data:
        return data
    return cipher.encrypt(data.encode()).decode()


def decrypt_data(encrypted_data: str) -> str:
    """Decrypt sensitive data"""
    if not encrypted_data:
        return encrypted_data
    try:
        return cipher.decrypt(encrypted_data.encode()).decode()
    except InvalidToken:
        return encrypted_data  # Stored before encryption was enabled


class User(Base):
    """A platform account"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        SQLEnum(UserRole), nullable=False, default=UserRole.STUDENT, index=True
    )
    grade = Column(String(20), nullable=True)  # For students
    school = Column(String(200), nullable=True)
    location = Column(String(200), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    last_login = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"


class Content(Base):
    """A learning asset in the library"""

    __tablename__ = "contents"

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    subject = Column(SQLEnum(Subject), nullable=False, index=True)
    grade = Column(SQLEnum(Grade), nullable=False, index=True)
    content_type = Column(SQLEnum(ContentType), nullable=False, index=True)
    file_url = Column(String(500), nullable=True)
    text_content = Column(Text, nullable=True)
    thumbnail = Column(String(500), nullable=True)
    duration = Column(Integer, nullable=True)  # minutes
    file_size = Column(Integer, nullable=True)  # bytes
    tags = Column(JSON, nullable=False, default=list)
    difficulty = Column(
        SQLEnum(Difficulty), nullable=False, default=Difficulty.BEGINNER, index=True
    )
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    is_published = Column(Boolean, default=False, nullable=False, index=True)
    views = Column(Integer, default=0, nullable=False)
    downloads = Column(Integer, default=0, nullable=False)
    order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    creator = relationship("User", foreign_keys=[created_by_id])
    likes = relationship(
        "ContentLike",
        back_populates="content",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Content(id={self.id}, title='{self.title}', type='{self.content_type}')>"

    @property
    def like_count(self) -> int:
        return len(self.likes)

    def is_liked_by(self, user_id: int) -> bool:
        return any(like.user_id == user_id for like in self.likes)


class ContentLike(Base):
    """One user's like on one content item; the composite key keeps it unique"""

    __tablename__ = "content_likes"

    content_id = Column(
        Integer, ForeignKey("contents.id", ondelete="CASCADE"), primary_key=True
    )
    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    content = relationship("Content", back_populates="likes")

    def __repr__(self):
        return f"<ContentLike(content_id={self.content_id}, user_id={self.user_id})>"


class Quiz(Base):
    """An assessment made of ordered questions"""

    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    subject = Column(SQLEnum(Subject), nullable=False, index=True)
    grade = Column(SQLEnum(Grade), nullable=False, index=True)
    related_content_id = Column(Integer, ForeignKey("contents.id"), nullable=True)
    duration = Column(Integer, default=30, nullable=False)  # minutes
    passing_score = Column(Integer, default=60, nullable=False)  # percentage
    total_points = Column(Integer, default=0, nullable=False)
    difficulty = Column(
        SQLEnum(Difficulty), nullable=False, default=Difficulty.BEGINNER, index=True
    )
    is_published = Column(Boolean, default=False, nullable=False, index=True)
    attempts = Column(Integer, default=0, nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    tags = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    creator = relationship("User", foreign_keys=[created_by_id])
    related_content = relationship("Content", foreign_keys=[related_content_id])
    questions = relationship(
        "Question",
        back_populates="quiz",
        order_by="Question.order",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Quiz(id={self.id}, title='{self.title}', points={self.total_points})>"

    def recompute_total_points(self) -> int:
        """Sum question points (unset counts as 1) into ``total_points``."""
        from ..services.grading import compute_total_points

        self.total_points = compute_total_points(q.points for q in self.questions)
        return self.total_points


class Question(Base):
    """One quiz item; the answer key is encrypted at rest"""

    __tablename__ = "questions"

    id = Column(Integer, primary_key=True)
    quiz_id = Column(
        Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_text = Column(Text, nullable=False)
    question_type = Column(SQLEnum(QuestionType), nullable=False)
    options = Column(JSON, nullable=False, default=list)  # [{text, is_correct}]
    correct_answer = Column(Text, nullable=False)  # Encrypted
    explanation = Column(Text, nullable=True)
    points = Column(Integer, default=1, nullable=True)
    order = Column(Integer, default=0, nullable=False)

    quiz = relationship("Quiz", back_populates="questions")

    def __repr__(self):
        return f"<Question(id={self.id}, quiz_id={self.quiz_id}, type='{self.question_type}')>"

    def get_decrypted_correct_answer(self) -> Optional[str]:
        """Get decrypted correct answer"""
        if self.correct_answer:
            return decrypt_data(self.correct_answer)
        return None

    def set_encrypted_correct_answer(self, answer: str):
        """Set encrypted correct answer"""
        self.correct_answer = encrypt_data(answer)

    def public_options(self) -> List[Dict[str, Any]]:
        """Options with the correctness flag stripped."""
        return [{"text": (opt or {}).get("text", "")} for opt in (self.options or [])]


class Progress(Base):
    """One student's state on one content item"""

    __tablename__ = "progress"
    __table_args__ = (
        UniqueConstraint("student_id", "content_id", name="uq_progress_student_content"),
        Index("ix_progress_student_accessed", "student_id", "last_accessed_at"),
    )

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content_id = Column(Integer, ForeignKey("contents.id"), nullable=False, index=True)
    status = Column(
        SQLEnum(ProgressStatus), nullable=False, default=ProgressStatus.IN_PROGRESS
    )
    progress_percentage = Column(Float, default=0.0, nullable=False)
    time_spent = Column(Integer, default=0, nullable=False)  # cumulative minutes
    last_accessed_at = Column(DateTime, default=utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    bookmarked = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    student = relationship("User", foreign_keys=[student_id])
    content = relationship("Content", foreign_keys=[content_id])

    def __repr__(self):
        return (
            f"<Progress(student_id={self.student_id}, content_id={self.content_id}, "
            f"status='{self.status}')>"
        )

    def mark_completed(self, when: Optional[datetime] = None):
        """Set completion once; repeated completions keep the first timestamp."""
        self.status = ProgressStatus.COMPLETED
        if self.completed_at is None:
            self.completed_at = when or utcnow()
            self.progress_percentage = 100.0


class QuizResult(Base):
    """One graded quiz attempt"""

    __tablename__ = "quiz_results"
    __table_args__ = (
        UniqueConstraint(
            "quiz_id", "student_id", "attempt_number", name="uq_quiz_result_attempt"
        ),
        Index("ix_quiz_results_student_submitted", "student_id", "submitted_at"),
    )

    id = Column(Integer, primary_key=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # [{question_id, user_answer, is_correct, points_earned}]
    answers = Column(JSON, nullable=False, default=list)
    score = Column(Integer, nullable=False, default=0)
    total_points = Column(Integer, nullable=False, default=0)  # Snapshot
    percentage = Column(Float, nullable=False, default=0.0)
    passed = Column(Boolean, nullable=False, default=False)
    time_taken = Column(Integer, nullable=False, default=0)  # minutes
    started_at = Column(DateTime, nullable=False)
    submitted_at = Column(DateTime, default=utcnow, nullable=False)
    attempt_number = Column(Integer, nullable=False, default=1)

    quiz = relationship("Quiz", foreign_keys=[quiz_id])
    student = relationship("User", foreign_keys=[student_id])

    def __repr__(self):
        return (
            f"<QuizResult(id={self.id}, quiz_id={self.quiz_id}, "
            f"attempt={self.attempt_number}, percentage={self.percentage})>"
        )


@event.listens_for(Session, "before_flush")
def _recompute_quiz_totals(session, flush_context, instances):
    """Keep Quiz.total_points in step with its questions on every flush."""
    quizzes = set()
    for obj in list(session.new) + list(session.dirty) + list(session.deleted):
        if isinstance(obj, Quiz) and obj not in session.deleted:
            quizzes.add(obj)
        elif isinstance(obj, Question) and obj.quiz is not None:
            if obj.quiz not in session.deleted:
                quizzes.add(obj.quiz)
    for quiz in quizzes:
        quiz.recompute_total_points()
