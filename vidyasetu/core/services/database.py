"""
Database service for VidyaSetu
"""

import json
import os
import sqlite3
from pathlib import Path
from typing import Optional
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from ..models import Base
from .settings_config_service import get_settings_service


@event.listens_for(Engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    # WAL lets readers proceed while a request is writing
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()


def _json_dumps(value) -> str:
    return json.dumps(value, ensure_ascii=False)


class DatabaseService:
    """Database service for managing SQLite connections and sessions"""

    def __init__(self, db_path: Optional[str] = None):
        """Initialize database service"""
        settings = get_settings_service()
        if db_path is None:
            db_path = os.getenv("VIDYASETU_DB_PATH") or settings.get(
                "database", "path", "vidyasetu.db"
            )

        self.db_path = Path(db_path)
        self.echo = settings.getboolean("database", "echo", False)
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker[Session]] = None

        # Import logging service after initialization to avoid circular imports
        from .logging import get_logging_service

        self.logger = get_logging_service().get_logger("database")

        self._setup_engine()
        self._create_tables()

    def _setup_engine(self):
        """Set up SQLAlchemy engine"""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.engine = create_engine(
            f"sqlite:///{self.db_path}",
            echo=self.echo,
            # Request handlers run on a thread pool
            connect_args={"check_same_thread": False},
            pool_pre_ping=True,
            # Keep non-ASCII tags searchable as plain text
            json_serializer=_json_dumps,
        )
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, bind=self.engine
        )
        self.logger.info("database.ready", db_path=str(self.db_path))

    def _create_tables(self):
        """Create all database tables"""
        if self.engine is None:
            raise RuntimeError("Database engine not initialized")
        Base.metadata.create_all(bind=self.engine)

    def get_session(self) -> Session:
        """Get a database session"""
        if self.SessionLocal is None:
            raise RuntimeError("Database session factory not initialized")
        return self.SessionLocal()

    def close(self):
        """Dispose the connection pool"""
        if self.engine is not None:
            self.engine.dispose()


_db_service: Optional[DatabaseService] = None


def get_db_service() -> DatabaseService:
    """Get the global database service instance"""
    global _db_service
    if _db_service is None:
        _db_service = DatabaseService()
    return _db_service


def init_db_service(db_path: Optional[str] = None) -> DatabaseService:
    """Initialize (or replace) the global database service"""
    global _db_service
    if _db_service is not None:
        _db_service.close()
    _db_service = DatabaseService(db_path)
    return _db_service
