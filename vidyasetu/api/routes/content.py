from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from typing import List, Optional, Union
from pydantic import BaseModel

from vidyasetu.api.dependencies import get_content_service
from vidyasetu.api.responses import success_response
from vidyasetu.api.security import (
    get_current_user,
    get_optional_current_user,
    require_teacher_or_admin,
)
from vidyasetu.api.serializers import content_to_dict
from vidyasetu.core.exceptions import VidyaSetuException
from vidyasetu.core.models import ContentType, Difficulty, Grade, Subject, User
from vidyasetu.core.services.content_service import ContentService
from vidyasetu.core.services.file_service import (
    THUMBNAIL_FIELD,
    FileStorageService,
    get_file_service,
)

router = APIRouter(prefix="/api/content", tags=["content"])


class ContentUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    subject: Optional[Subject] = None
    grade: Optional[Grade] = None
    content_type: Optional[ContentType] = None
    text_content: Optional[str] = None
    file_url: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: Optional[int] = None
    file_size: Optional[int] = None
    tags: Optional[Union[str, List[str]]] = None
    difficulty: Optional[Difficulty] = None
    order: Optional[int] = None


def _has_file(upload: Optional[UploadFile]) -> bool:
    return upload is not None and bool(upload.filename)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_content(
    title: str = Form(...),
    description: str = Form(...),
    subject: Subject = Form(...),
    grade: Grade = Form(...),
    content_type: ContentType = Form(...),
    text_content: Optional[str] = Form(None),
    duration: Optional[int] = Form(None),
    tags: Optional[str] = Form(None),
    difficulty: Optional[Difficulty] = Form(None),
    order: Optional[int] = Form(None),
    file: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_teacher_or_admin),
    service: ContentService = Depends(get_content_service),
    files: FileStorageService = Depends(get_file_service),
):
    stored = []
    try:
        main_file = None
        if _has_file(file):
            main_file = await files.save_upload(file, content_type.value, "file")
            stored.append(main_file.url)
        thumb_file = None
        if _has_file(thumbnail):
            thumb_file = await files.save_upload(thumbnail, THUMBNAIL_FIELD, THUMBNAIL_FIELD)
            stored.append(thumb_file.url)

        content = service.create_content(
            current_user,
            title=title,
            description=description,
            subject=subject,
            grade=grade,
            content_type=content_type,
            text_content=text_content,
            duration=duration,
            tags=tags,
            difficulty=difficulty,
            file_url=main_file.url if main_file else None,
            file_size=main_file.size if main_file else None,
            thumbnail=thumb_file.url if thumb_file else None,
            order=order or 0,
        )
    except VidyaSetuException:
        # Nothing was saved; drop any files already written
        for url in stored:
            files.delete(url)
        raise

    return success_response(
        content_to_dict(content, current_user),
        "Content created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("")
async def list_content(
    subject: Optional[Subject] = None,
    grade: Optional[Grade] = None,
    content_type: Optional[ContentType] = None,
    difficulty: Optional[Difficulty] = None,
    search: Optional[str] = None,
    created_by: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: Optional[str] = None,
    current_user: Optional[User] = Depends(get_optional_current_user),
    service: ContentService = Depends(get_content_service),
):
    result = service.list_content(
        viewer=current_user,
        subject=subject,
        grade=grade,
        content_type=content_type,
        difficulty=difficulty,
        search=search,
        created_by=created_by,
        page=page,
        limit=limit,
        sort=sort,
    )
    return success_response(
        [content_to_dict(c, current_user) for c in result.items],
        pagination=result.pagination(),
    )


@router.get("/{content_id}")
async def get_content(
    content_id: int,
    current_user: Optional[User] = Depends(get_optional_current_user),
    service: ContentService = Depends(get_content_service),
):
    content = service.get_content(content_id, current_user)
    return success_response(content_to_dict(content, current_user))


@router.put("/{content_id}")
async def update_content(
    content_id: int,
    changes: ContentUpdate,
    current_user: User = Depends(get_current_user),
    service: ContentService = Depends(get_content_service),
):
    content = service.update_content(
        content_id, current_user, changes.model_dump(exclude_unset=True)
    )
    return success_response(
        content_to_dict(content, current_user), "Content updated successfully"
    )


@router.delete("/{content_id}")
async def delete_content(
    content_id: int,
    current_user: User = Depends(get_current_user),
    service: ContentService = Depends(get_content_service),
    files: FileStorageService = Depends(get_file_service),
):
    for url in service.delete_content(content_id, current_user):
        files.delete(url)
    return success_response(message="Content deleted successfully")


@router.patch("/{content_id}/publish")
async def toggle_publish(
    content_id: int,
    current_user: User = Depends(get_current_user),
    service: ContentService = Depends(get_content_service),
):
    content = service.toggle_publish(content_id, current_user)
    message = "Content published" if content.is_published else "Content unpublished"
    return success_response(content_to_dict(content, current_user), message)


@router.post("/{content_id}/like")
async def toggle_like(
    content_id: int,
    current_user: User = Depends(get_current_user),
    service: ContentService = Depends(get_content_service),
):
    likes, liked = service.toggle_like(content_id, current_user)
    return success_response(
        {"likes": likes, "liked": liked},
        "Content liked" if liked else "Content unliked",
    )


@router.post("/{content_id}/download")
async def record_download(
    content_id: int,
    current_user: User = Depends(get_current_user),
    service: ContentService = Depends(get_content_service),
):
    downloads = service.increment_download(content_id, current_user)
    return success_response({"downloads": downloads})
