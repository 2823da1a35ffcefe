"""
Role normalization helpers (backend).

Canonical contract:
- Internal (DB/runtime): roles are represented by ``UserRole``.
- API boundaries: roles are serialized as lowercase strings: "student" | "teacher" | "admin".

Reading tolerates role objects with ``.value`` and enum-ish strings such as
"UserRole.ADMIN"; writing always emits the canonical lowercase string.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from .models import UserRole

RoleLike = Union[str, UserRole, Any]

_ROLE_VALUES = {role.value for role in UserRole}


def normalize_role(role: RoleLike) -> str:
    """Return canonical lowercase role string, or "" if missing."""
    if role is None:
        return ""

    if isinstance(role, UserRole):
        return role.value

    if hasattr(role, "value"):
        role = getattr(role, "value", role)

    raw = str(role).strip()
    if not raw:
        return ""

    lowered = raw.lower()
    if lowered in _ROLE_VALUES:
        return lowered

    # Enum-ish string representations like "UserRole.ADMIN"
    if "." in lowered:
        tail = lowered.split(".")[-1].strip()
        if tail in _ROLE_VALUES:
            return tail

    return lowered


def role_str(user_or_role: Any) -> str:
    """Accept a user-like object (with ``.role``) or a role value."""
    if hasattr(user_or_role, "role"):
        return normalize_role(getattr(user_or_role, "role", None))
    return normalize_role(user_or_role)


def has_role(user_or_role: Any, *roles: Union[UserRole, str]) -> bool:
    """Return True if the user/role matches any of the given roles."""
    current = role_str(user_or_role)
    if not current:
        return False
    allowed = {normalize_role(r) for r in roles}
    return current in allowed


def is_admin(user_or_role: Any) -> bool:
    return has_role(user_or_role, UserRole.ADMIN)


def can_manage(user: Any, owner_id: Optional[int]) -> bool:
    """Owner-or-admin rule shared by content and quiz mutations."""
    if user is None:
        return False
    return is_admin(user) or (owner_id is not None and owner_id == user.id)
