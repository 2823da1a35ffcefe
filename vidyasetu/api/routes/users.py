from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, EmailStr
from typing import Optional

from vidyasetu.api.dependencies import get_user_service
from vidyasetu.api.responses import success_response
from vidyasetu.api.security import require_admin
from vidyasetu.api.serializers import content_summary
from vidyasetu.core.models import User, UserRole
from vidyasetu.core.services.auth import user_to_dict
from vidyasetu.core.services.user_service import UserService

router = APIRouter(prefix="/api/users", tags=["users"])


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    grade: Optional[str] = None
    school: Optional[str] = None
    location: Optional[str] = None
    is_active: Optional[bool] = None


@router.get("")
async def list_users(
    role: Optional[UserRole] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    result = service.list_users(role=role, search=search, page=page, limit=limit)
    return success_response(
        [user_to_dict(u) for u in result.items], pagination=result.pagination()
    )


@router.get("/admin/statistics")
async def platform_statistics(
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    stats = service.get_platform_statistics()
    stats["recent_users"] = [user_to_dict(u) for u in stats["recent_users"]]
    stats["recent_content"] = [content_summary(c) for c in stats["recent_content"]]
    return success_response(stats)


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return success_response(user_to_dict(service.get_user(user_id)))


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    changes: UserUpdate,
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    data = changes.model_dump(exclude_unset=True)
    if data.get("email") is not None:
        data["email"] = str(data["email"])
    user = service.update_user(user_id, data, current_user)
    return success_response(user_to_dict(user), "User updated successfully")


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    service.delete_user(user_id, current_user)
    return success_response(message="User deleted successfully")
