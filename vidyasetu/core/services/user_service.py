"""
User Service
Admin-side user management and platform statistics
"""

from typing import Any, Dict, Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..exceptions import ConflictError, UserNotFoundError, ValidationError
from ..models import Content, Quiz, QuizResult, User, UserRole
from .listing import Page, like_pattern, paginate
from .logging import get_logging_service

RECENT_LIMIT = 5
UPDATABLE_FIELDS = ("name", "email", "role", "grade", "school", "location", "is_active")


class UserService:
    """Service for user administration"""

    def __init__(self, session: Session):
        self.session = session
        self.logging = get_logging_service()

    def _get_or_404(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    def list_users(
        self,
        role: Optional[UserRole] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page:
        """Users filtered by role and a name/email substring, newest first"""
        query = self.session.query(User)
        if role is not None:
            query = query.filter(User.role == role)
        if search and search.strip():
            pattern = like_pattern(search.strip())
            query = query.filter(
                or_(
                    User.name.ilike(pattern, escape="\\"),
                    User.email.ilike(pattern, escape="\\"),
                )
            )
        return paginate(query, page, limit, User.created_at.desc(), User.id.desc())

    def get_user(self, user_id: int) -> User:
        return self._get_or_404(user_id)

    def update_user(self, user_id: int, changes: Dict[str, Any], actor: User) -> User:
        """Partial update; ``None`` values are left unchanged"""
        user = self._get_or_404(user_id)

        applied = []
        for key in UPDATABLE_FIELDS:
            value = changes.get(key)
            if value is None:
                continue
            if key == "name":
                value = value.strip()
                if not value:
                    raise ValidationError.for_field("name", "Name cannot be empty")
            elif key == "email":
                value = value.strip().lower()
                taken = (
                    self.session.query(User.id)
                    .filter(User.email == value, User.id != user_id)
                    .first()
                )
                if taken:
                    raise ConflictError.for_field("email", "Email already in use")
            setattr(user, key, value)
            applied.append(key)

        self.session.commit()
        self.session.refresh(user)

        self.logging.log_crud_operation(
            "update", "user", user.id, user_id=actor.id, fields=applied
        )
        return user

    def delete_user(self, user_id: int, actor: User) -> None:
        """Delete the account only; content, quizzes and results it owns are kept"""
        user = self._get_or_404(user_id)
        self.session.delete(user)
        self.session.commit()

        self.logging.log_crud_operation("delete", "user", user_id, user_id=actor.id)

    def get_platform_statistics(self) -> Dict[str, Any]:
        role_counts = dict(
            self.session.query(User.role, func.count(User.id)).group_by(User.role).all()
        )
        active_users = (
            self.session.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar()
        )

        total_content = self.session.query(func.count(Content.id)).scalar()
        published_content = (
            self.session.query(func.count(Content.id))
            .filter(Content.is_published.is_(True))
            .scalar()
        )
        by_type = (
            self.session.query(Content.content_type, func.count(Content.id))
            .group_by(Content.content_type)
            .order_by(Content.content_type)
            .all()
        )

        total_quizzes = self.session.query(func.count(Quiz.id)).scalar()
        published_quizzes = (
            self.session.query(func.count(Quiz.id))
            .filter(Quiz.is_published.is_(True))
            .scalar()
        )
        quiz_attempts = self.session.query(func.count(QuizResult.id)).scalar()

        recent_users = (
            self.session.query(User)
            .order_by(User.created_at.desc(), User.id.desc())
            .limit(RECENT_LIMIT)
            .all()
        )
        recent_content = (
            self.session.query(Content)
            .order_by(Content.created_at.desc(), Content.id.desc())
            .limit(RECENT_LIMIT)
            .all()
        )

        return {
            "users": {
                "total": sum(role_counts.values()),
                "students": role_counts.get(UserRole.STUDENT, 0),
                "teachers": role_counts.get(UserRole.TEACHER, 0),
                "admins": role_counts.get(UserRole.ADMIN, 0),
                "active": active_users or 0,
            },
            "content": {
                "total": total_content or 0,
                "published": published_content or 0,
                "by_type": [
                    {"content_type": content_type.value, "count": count}
                    for content_type, count in by_type
                ],
            },
            "quizzes": {
                "total": total_quizzes or 0,
                "published": published_quizzes or 0,
                "attempts": quiz_attempts or 0,
            },
            "recent_users": recent_users,
            "recent_content": recent_content,
        }
