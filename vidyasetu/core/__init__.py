"""
Core module for VidyaSetu
"""

from .models import (
    Base,
    User,
    UserRole,
    Content,
    ContentLike,
    ContentType,
    Quiz,
    Question,
    QuestionType,
    Progress,
    ProgressStatus,
    QuizResult,
)
from .services import (
    DatabaseService,
    get_db_service,
    init_db_service,
    AuthService,
    get_auth_service,
    LoggingService,
    get_logging_service,
    get_logger,
)

__all__ = [
    # Models
    "Base",
    "User",
    "UserRole",
    "Content",
    "ContentLike",
    "ContentType",
    "Quiz",
    "Question",
    "QuestionType",
    "Progress",
    "ProgressStatus",
    "QuizResult",
    # Services
    "DatabaseService",
    "get_db_service",
    "init_db_service",
    "AuthService",
    "get_auth_service",
    "LoggingService",
    "get_logging_service",
    "get_logger",
]
