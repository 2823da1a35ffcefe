"""
Models package for VidyaSetu

This package contains all database models and enums for the application.
"""

from .models import (
    Base,
    User,
    Content,
    ContentLike,
    Quiz,
    Question,
    Progress,
    QuizResult,
    UserRole,
    Subject,
    Grade,
    ContentType,
    Difficulty,
    QuestionType,
    ProgressStatus,
    encrypt_data,
    decrypt_data,
    utcnow,
)

__all__ = [
    "Base",
    "User",
    "Content",
    "ContentLike",
    "Quiz",
    "Question",
    "Progress",
    "QuizResult",
    "UserRole",
    "Subject",
    "Grade",
    "ContentType",
    "Difficulty",
    "QuestionType",
    "ProgressStatus",
    "encrypt_data",
    "decrypt_data",
    "utcnow",
]
