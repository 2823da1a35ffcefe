"""
Logging service for VidyaSetu
"""

import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional
import structlog

from .settings_config_service import get_settings_service

_HANDLER_TAG = "_vidyasetu_handler"


class LoggingService:
    """Structured logging service"""

    def __init__(self):
        settings = get_settings_service().get_logging_defaults()
        self.log_dir = Path(settings["directory"])
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.level = getattr(logging, str(settings["default_level"]).upper(), logging.INFO)
        self.max_bytes = settings["max_file_size_mb"] * 1024 * 1024
        self.backup_count = settings["backup_count"]

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                structlog.processors.JSONRenderer(),
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        self._setup_handlers()

    def _setup_handlers(self):
        """Set up logging handlers"""
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            if getattr(handler, _HANDLER_TAG, False):
                root_logger.removeHandler(handler)
                handler.close()

        # Main application log
        main_handler = RotatingFileHandler(
            self.log_dir / "vidyasetu.log",
            maxBytes=self.max_bytes,
            backupCount=self.backup_count,
            encoding="utf-8",
        )
        main_handler.setLevel(logging.DEBUG)
        main_handler.setFormatter(logging.Formatter("%(message)s"))

        # Error log
        error_handler = RotatingFileHandler(
            self.log_dir / "errors.log",
            maxBytes=self.max_bytes,
            backupCount=self.backup_count,
            encoding="utf-8",
        )
        error_handler.setLevel(logging.WARNING)
        error_handler.setFormatter(logging.Formatter("%(message)s"))

        console_handler = logging.StreamHandler()
        console_handler.setLevel(self.level)
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

        for handler in (main_handler, error_handler, console_handler):
            setattr(handler, _HANDLER_TAG, True)
            root_logger.addHandler(handler)
        root_logger.setLevel(logging.DEBUG)

    def get_logger(self, name: str) -> structlog.BoundLogger:
        """Get a structured logger"""
        return structlog.get_logger(name)

    def log_event(
        self,
        logger_name: str,
        level: str,
        event_type: str,
        user_id: Optional[int] = None,
        **kwargs,
    ):
        """Log a structured event"""
        logger = self.get_logger(logger_name)

        log_data = {
            "event_type": event_type,
            "user_id": user_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **kwargs,
        }

        level_method = getattr(logger, level.lower(), logger.info)
        level_method(event_type, **log_data)

    def log_crud_operation(
        self,
        operation: str,
        entity: str,
        entity_id: Any,
        user_id: Optional[int] = None,
        **kwargs,
    ):
        """Log CRUD operation"""
        self.log_event(
            "crud",
            "INFO",
            f"crud.{operation}",
            user_id=user_id,
            entity=entity,
            entity_id=entity_id,
            **kwargs,
        )

    def log_auth_event(
        self,
        event: str,
        user_id: Optional[int] = None,
        email: Optional[str] = None,
        success: bool = True,
        **kwargs,
    ):
        """Log authentication event"""
        self.log_event(
            "auth",
            "INFO" if success else "WARNING",
            f"auth.{event}",
            user_id=user_id,
            email=email,
            success=success,
            **kwargs,
        )

    def log_error(
        self,
        error_type: str,
        error_message: str,
        user_id: Optional[int] = None,
        **kwargs,
    ):
        """Log error event"""
        self.log_event(
            "error",
            "ERROR",
            f"error.{error_type}",
            user_id=user_id,
            error_message=error_message,
            **kwargs,
        )

    def log_request(
        self,
        method: str,
        path: str,
        status_code: int,
        duration_ms: int,
        **kwargs,
    ):
        """Log one handled HTTP request"""
        self.log_event(
            "http",
            "WARNING" if status_code >= 500 else "INFO",
            "http.request",
            method=method,
            path=path,
            status_code=status_code,
            duration_ms=duration_ms,
            **kwargs,
        )


# Global logging service instance
_logging_service: Optional[LoggingService] = None


def get_logging_service() -> LoggingService:
    """Get the global logging service instance"""
    global _logging_service
    if _logging_service is None:
        _logging_service = LoggingService()
    return _logging_service


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance"""
    return get_logging_service().get_logger(name)
