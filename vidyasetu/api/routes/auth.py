from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr
from typing import Optional

from vidyasetu.core.services.auth import get_auth_service, AuthService, user_to_dict
from vidyasetu.core.models import UserRole, User
from vidyasetu.core.roles import is_admin
from vidyasetu.api.responses import success_response
from vidyasetu.api.security import get_current_user, get_optional_current_user

# Models


class UserRegister(BaseModel):
    name: str
    email: EmailStr
    password: str
    role: UserRole = UserRole.STUDENT
    grade: Optional[str] = None
    school: Optional[str] = None
    location: Optional[str] = None


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    grade: Optional[str] = None
    school: Optional[str] = None
    location: Optional[str] = None


router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    current_user: Optional[User] = Depends(get_optional_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    # Self-registration covers students and teachers; admins create admins
    if user_data.role == UserRole.ADMIN and not is_admin(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin accounts can only be created by an admin",
        )

    result = auth_service.register_user(
        name=user_data.name,
        email=str(user_data.email),
        password=user_data.password,
        role=user_data.role,
        grade=user_data.grade,
        school=user_data.school,
        location=user_data.location,
    )
    return success_response(
        result, "User registered successfully", status_code=status.HTTP_201_CREATED
    )


@router.post("/login")
async def login(
    credentials: UserLogin,
    auth_service: AuthService = Depends(get_auth_service),
):
    result = auth_service.login_user(str(credentials.email), credentials.password)
    return success_response(result, "Login successful")


@router.get("/me")
async def read_users_me(current_user: User = Depends(get_current_user)):
    return success_response(user_to_dict(current_user))


@router.put("/profile")
async def update_profile(
    profile: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    user = auth_service.update_profile(
        current_user.id,
        name=profile.name,
        email=str(profile.email) if profile.email else None,
        grade=profile.grade,
        school=profile.school,
        location=profile.location,
    )
    return success_response(user, "Profile updated successfully")
