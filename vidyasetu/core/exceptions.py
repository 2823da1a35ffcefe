"""
Custom exceptions for VidyaSetu

Services raise these; the API layer maps each one to an HTTP status code and
renders it in the standard response envelope.
"""

from typing import Dict, List, Optional


class VidyaSetuException(Exception):
    """Base exception for all VidyaSetu exceptions"""

    status_code = 500

    def __init__(self, message: str = "", errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ConfigurationError(VidyaSetuException):
    """Raised when there's a configuration error"""


class ValidationError(VidyaSetuException):
    """Raised when validation fails"""

    status_code = 400

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message}])


class ConflictError(ValidationError):
    """Raised when a write collides with an existing record (duplicate email, etc.)"""


class AuthenticationError(VidyaSetuException):
    """Raised when authentication fails"""

    status_code = 401


class AuthorizationError(VidyaSetuException):
    """Raised when authorization fails"""

    status_code = 403


class NotFoundError(VidyaSetuException):
    """Raised when a referenced record does not exist"""

    status_code = 404


class ContentNotFoundError(NotFoundError):
    """Raised when content is not found"""

    def __init__(self, message: str = "Content not found"):
        super().__init__(message)


class QuizNotFoundError(NotFoundError):
    """Raised when a quiz is not found"""

    def __init__(self, message: str = "Quiz not found"):
        super().__init__(message)


class UserNotFoundError(NotFoundError):
    """Raised when user is not found"""

    def __init__(self, message: str = "User not found"):
        super().__init__(message)
