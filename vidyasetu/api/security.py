"""
FastAPI authentication + authorization helpers.

This centralizes:
- Token -> current user dependency
- Standard role-based route guards (dependencies)
"""

from __future__ import annotations

from typing import Optional, Union

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from vidyasetu.core.models import User, UserRole
from vidyasetu.core.roles import has_role
from vidyasetu.core.services.auth import AuthService, get_auth_service

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    if not token:
        raise _unauthorized("Not authenticated")
    user = auth_service.validate_token(token)
    if not user:
        raise _unauthorized("Could not validate credentials")
    return user


def get_optional_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> Optional[User]:
    """Return user if token is valid, otherwise None (no 401)."""
    if not token:
        return None
    return auth_service.validate_token(token)


RoleInput = Union[UserRole, str]


def require_roles(*roles: RoleInput):
    """
    Dependency factory that enforces role membership and returns ``current_user``.

    Usage:
        current_user: User = Depends(require_roles(UserRole.TEACHER, UserRole.ADMIN))
    """

    def _dep(current_user: User = Depends(get_current_user)) -> User:
        if not has_role(current_user, *roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized"
            )
        return current_user

    return _dep


def require_teacher_or_admin(
    current_user: User = Depends(require_roles(UserRole.TEACHER, UserRole.ADMIN))
) -> User:
    return current_user


def require_admin(current_user: User = Depends(require_roles(UserRole.ADMIN))) -> User:
    return current_user
