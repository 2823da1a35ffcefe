"""
Content Service
Handles content creation, listing, retrieval, publishing, likes and download counts
"""

from typing import Dict, Any, List, Optional, Tuple
from sqlalchemy import String, cast, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import AuthorizationError, ContentNotFoundError, ValidationError
from ..models import (
    Content,
    ContentLike,
    ContentType,
    Difficulty,
    Grade,
    Subject,
    User,
)
from ..roles import can_manage, is_admin
from .listing import Page, like_pattern, order_clause, paginate, split_tags
from .logging import get_logging_service

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000

SORTABLE_COLUMNS = {
    "created_at": Content.created_at,
    "updated_at": Content.updated_at,
    "title": Content.title,
    "views": Content.views,
    "downloads": Content.downloads,
    "order": Content.order,
    "duration": Content.duration,
}

# Fields a PUT may change; owner, counters and likes are never patchable
UPDATABLE_FIELDS = (
    "title",
    "description",
    "subject",
    "grade",
    "content_type",
    "file_url",
    "text_content",
    "thumbnail",
    "duration",
    "file_size",
    "tags",
    "difficulty",
    "order",
)


def _clean_text(field: str, value: Optional[str], max_length: int) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError.for_field(field, f"{field.capitalize()} is required")
    if len(value) > max_length:
        raise ValidationError.for_field(
            field, f"{field.capitalize()} cannot be more than {max_length} characters"
        )
    return value


class ContentService:
    """Service for managing the content library"""

    def __init__(self, session: Session):
        self.session = session
        self.logging = get_logging_service()

    def _get_or_404(self, content_id: int) -> Content:
        content = self.session.get(Content, content_id)
        if content is None:
            raise ContentNotFoundError()
        return content

    def _require_manage(self, content: Content, user: User, action: str):
        if not can_manage(user, content.created_by_id):
            raise AuthorizationError(f"Not authorized to {action} this content")

    def create_content(
        self,
        creator: User,
        title: str,
        description: str,
        subject: Subject,
        grade: Grade,
        content_type: ContentType,
        text_content: Optional[str] = None,
        duration: Optional[int] = None,
        tags: Any = None,
        difficulty: Optional[Difficulty] = None,
        file_url: Optional[str] = None,
        file_size: Optional[int] = None,
        thumbnail: Optional[str] = None,
        order: int = 0,
    ) -> Content:
        """Create content owned by ``creator``; it starts unpublished"""
        if duration is not None and duration < 0:
            raise ValidationError.for_field("duration", "Duration cannot be negative")

        content = Content(
            title=_clean_text("title", title, TITLE_MAX_LENGTH),
            description=_clean_text("description", description, DESCRIPTION_MAX_LENGTH),
            subject=subject,
            grade=grade,
            content_type=content_type,
            text_content=text_content,
            duration=duration or 0,
            tags=split_tags(tags),
            difficulty=difficulty or Difficulty.BEGINNER,
            file_url=file_url,
            file_size=file_size or 0,
            thumbnail=thumbnail,
            order=order or 0,
            created_by_id=creator.id,
            is_published=False,
        )
        self.session.add(content)
        self.session.commit()
        self.session.refresh(content)

        self.logging.log_crud_operation(
            "create", "content", content.id, user_id=creator.id, title=content.title
        )
        return content

    def list_content(
        self,
        viewer: Optional[User] = None,
        subject: Optional[Subject] = None,
        grade: Optional[Grade] = None,
        content_type: Optional[ContentType] = None,
        difficulty: Optional[Difficulty] = None,
        search: Optional[str] = None,
        created_by: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
        sort: Optional[str] = None,
    ) -> Page:
        """
        Published content matching the filters, newest first by default.

        Filtering by ``created_by`` also returns unpublished items when the
        viewer is that creator or an admin, which is what owner dashboards use.
        """
        query = self.session.query(Content)

        include_unpublished = (
            created_by is not None
            and viewer is not None
            and (is_admin(viewer) or viewer.id == created_by)
        )
        if not include_unpublished:
            query = query.filter(Content.is_published.is_(True))

        if created_by is not None:
            query = query.filter(Content.created_by_id == created_by)
        if subject is not None:
            query = query.filter(Content.subject == subject)
        if grade is not None:
            query = query.filter(Content.grade == grade)
        if content_type is not None:
            query = query.filter(Content.content_type == content_type)
        if difficulty is not None:
            query = query.filter(Content.difficulty == difficulty)
        if search and search.strip():
            pattern = like_pattern(search.strip())
            query = query.filter(
                or_(
                    Content.title.ilike(pattern, escape="\\"),
                    Content.description.ilike(pattern, escape="\\"),
                    cast(Content.tags, String).ilike(pattern, escape="\\"),
                )
            )

        return paginate(
            query, page, limit, order_clause(sort, SORTABLE_COLUMNS), Content.id.desc()
        )

    def get_content(self, content_id: int, viewer: Optional[User] = None) -> Content:
        """
        Fetch one content item and count the view.

        Unpublished content is only visible to its owner or an admin.
        """
        content = self._get_or_404(content_id)
        if not content.is_published and not can_manage(viewer, content.created_by_id):
            raise AuthorizationError("Content is not published yet")

        self.session.execute(
            update(Content)
            .where(Content.id == content_id)
            .values(views=Content.views + 1)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        self.session.refresh(content)
        return content

    def update_content(
        self, content_id: int, user: User, changes: Dict[str, Any]
    ) -> Content:
        """Apply a partial update; keys with ``None`` values are left unchanged"""
        content = self._get_or_404(content_id)
        self._require_manage(content, user, "update")

        applied = []
        for key in UPDATABLE_FIELDS:
            value = changes.get(key)
            if value is None:
                continue
            if key == "title":
                value = _clean_text("title", value, TITLE_MAX_LENGTH)
            elif key == "description":
                value = _clean_text("description", value, DESCRIPTION_MAX_LENGTH)
            elif key == "tags":
                value = split_tags(value)
            elif key == "duration" and value < 0:
                raise ValidationError.for_field("duration", "Duration cannot be negative")
            setattr(content, key, value)
            applied.append(key)

        self.session.commit()
        self.session.refresh(content)

        self.logging.log_crud_operation(
            "update", "content", content.id, user_id=user.id, fields=applied
        )
        return content

    def delete_content(self, content_id: int, user: User) -> List[str]:
        """Delete content and its likes; returns the stored file URLs it referenced"""
        content = self._get_or_404(content_id)
        self._require_manage(content, user, "delete")

        files = [url for url in (content.file_url, content.thumbnail) if url]
        self.session.delete(content)
        self.session.commit()

        self.logging.log_crud_operation("delete", "content", content_id, user_id=user.id)
        return files

    def toggle_publish(self, content_id: int, user: User) -> Content:
        content = self._get_or_404(content_id)
        self._require_manage(content, user, "publish")

        content.is_published = not content.is_published
        self.session.commit()
        self.session.refresh(content)

        self.logging.log_crud_operation(
            "publish",
            "content",
            content.id,
            user_id=user.id,
            is_published=content.is_published,
        )
        return content

    def toggle_like(self, content_id: int, user: User) -> Tuple[int, bool]:
        """
        Flip ``user``'s like on the content.

        Returns ``(like_count, liked)`` where ``liked`` is the state after the
        toggle. Removal and insertion are single statements guarded by the
        (content, user) primary key, so a concurrent double-like cannot
        produce two rows.
        """
        self._get_or_404(content_id)

        removed = self.session.execute(
            delete(ContentLike).where(
                ContentLike.content_id == content_id, ContentLike.user_id == user.id
            )
        ).rowcount
        liked = not removed
        if liked:
            self.session.add(ContentLike(content_id=content_id, user_id=user.id))
        try:
            self.session.commit()
        except IntegrityError:
            # Another request inserted the same like first
            self.session.rollback()

        count = self.session.scalar(
            select(func.count())
            .select_from(ContentLike)
            .where(ContentLike.content_id == content_id)
        )
        self.logging.log_crud_operation(
            "like" if liked else "unlike", "content", content_id, user_id=user.id
        )
        return count or 0, liked

    def increment_download(self, content_id: int, user: Optional[User] = None) -> int:
        """Count a download; every call increments, with no per-user dedup"""
        self._get_or_404(content_id)
        self.session.execute(
            update(Content)
            .where(Content.id == content_id)
            .values(downloads=Content.downloads + 1)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        downloads = self.session.scalar(
            select(Content.downloads).where(Content.id == content_id)
        )
        self.logging.log_crud_operation(
            "download", "content", content_id, user_id=user.id if user else None
        )
        return downloads
