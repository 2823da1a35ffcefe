from fastapi import Depends
from sqlalchemy.orm import Session

from vidyasetu.core.services.content_service import ContentService
from vidyasetu.core.services.database import get_db_service as _get_db_service
from vidyasetu.core.services.progress_service import ProgressService
from vidyasetu.core.services.quiz_service import QuizService
from vidyasetu.core.services.user_service import UserService


def get_db_service():
    # Delegate to the core database singleton so tests and the API share the
    # same DatabaseService instance regardless of import path.
    return _get_db_service()


def get_db():
    service = get_db_service()
    session = service.get_session()
    try:
        yield session
    finally:
        session.close()


def get_content_service(db: Session = Depends(get_db)) -> ContentService:
    return ContentService(db)


def get_quiz_service(db: Session = Depends(get_db)) -> QuizService:
    return QuizService(db)


def get_progress_service(db: Session = Depends(get_db)) -> ProgressService:
    return ProgressService(db)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)
