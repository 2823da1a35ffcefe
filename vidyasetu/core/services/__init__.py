"""
Core services for VidyaSetu
"""

from .database import DatabaseService, get_db_service, init_db_service
from .auth import AuthService, get_auth_service, user_to_dict
from .logging import LoggingService, get_logging_service, get_logger
from .settings_config_service import get_settings_service
from .file_service import FileStorageService, get_file_service

# Request-scoped domain services
from .content_service import ContentService
from .quiz_service import QuizService
from .progress_service import ProgressService
from .user_service import UserService

__all__ = [
    "DatabaseService",
    "get_db_service",
    "init_db_service",
    "AuthService",
    "get_auth_service",
    "user_to_dict",
    "LoggingService",
    "get_logging_service",
    "get_logger",
    "get_settings_service",
    "FileStorageService",
    "get_file_service",
    # Request-scoped domain services
    "ContentService",
    "QuizService",
    "ProgressService",
    "UserService",
]
