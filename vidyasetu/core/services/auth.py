"""
Authentication service for VidyaSetu
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import jwt

from ..exceptions import AuthenticationError, ConflictError, ValidationError
from ..models import User, UserRole, utcnow
from ..security import hash_password, verify_password
from .database import get_db_service
from .logging import get_logging_service
from .settings_config_service import get_settings_service

SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{}|;:,.<>?"


def user_to_dict(user: User) -> Dict[str, Any]:
    """Public representation of a user; never includes the password hash."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value if user.role else None,
        "grade": user.grade,
        "school": user.school,
        "location": user.location,
        "is_active": user.is_active,
        "created_at": user.created_at.isoformat() if user.created_at else None,
        "last_login": user.last_login.isoformat() if user.last_login else None,
    }


class AuthService:
    """Authentication and authorization service"""

    def __init__(self):
        from ..security_utils import get_or_create_jwt_secret

        self.jwt_secret = get_or_create_jwt_secret()
        self.jwt_algorithm = "HS256"
        self.token_expiry_minutes = get_settings_service().getint(
            "security", "token_expiry_minutes", 10080
        )
        self.logging = get_logging_service()

    @property
    def db_service(self):
        # Tests replace the global DatabaseService between runs
        return get_db_service()

    def register_user(
        self,
        name: str,
        email: str,
        password: str,
        role: UserRole = UserRole.STUDENT,
        grade: Optional[str] = None,
        school: Optional[str] = None,
        location: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Register a new user and return ``{"user", "token"}``"""
        if not name or not name.strip():
            raise ValidationError.for_field("name", "Name is required")
        if not self.validate_password(password):
            raise ValidationError.for_field(
                "password",
                "Password must be at least 8 characters and contain uppercase, "
                "lowercase, digit, and special character",
            )

        email = email.strip().lower()
        with self.db_service.get_session() as session:
            if session.query(User).filter_by(email=email).first():
                raise ConflictError.for_field("email", "Email already exists")

            user = User(
                name=name.strip(),
                email=email,
                password_hash=hash_password(password),
                role=role,
                grade=grade,
                school=school,
                location=location,
            )
            session.add(user)
            session.commit()
            session.refresh(user)

            self.logging.log_auth_event(
                "register", user_id=user.id, email=email, role=role.value
            )
            return {"user": user_to_dict(user), "token": self._generate_jwt_token(user)}

    def login_user(self, email: str, password: str) -> Dict[str, Any]:
        """Authenticate user and return JWT token."""
        email = (email or "").strip().lower()
        with self.db_service.get_session() as session:
            user = session.query(User).filter_by(email=email).first()
            if not user or not verify_password(password, user.password_hash):
                self.logging.log_auth_event(
                    "login", email=email, success=False, reason="bad_credentials"
                )
                raise AuthenticationError("Invalid email or password")

            if not user.is_active:
                self.logging.log_auth_event(
                    "login", user_id=user.id, email=email, success=False, reason="inactive"
                )
                raise AuthenticationError("Account is deactivated")

            user.last_login = utcnow()
            session.commit()
            session.refresh(user)

            self.logging.log_auth_event("login", user_id=user.id, email=email)
            return {
                "user": user_to_dict(user),
                "token": self._generate_jwt_token(user),
                "expires_at": (
                    datetime.now(timezone.utc)
                    + timedelta(minutes=self.token_expiry_minutes)
                ).isoformat(),
            }

    def validate_token(self, token: str) -> Optional[User]:
        """Validate JWT token and return the active user it names"""
        try:
            # Tokens minted without an expiry are rejected outright
            payload = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[self.jwt_algorithm],
                options={"require": ["exp"]},
            )
        except jwt.InvalidTokenError:
            return None

        user_id = payload.get("user_id")
        if not user_id:
            return None

        with self.db_service.get_session() as session:
            return session.query(User).filter_by(id=user_id, is_active=True).first()

    def _generate_jwt_token(self, user: User) -> str:
        """Generate JWT token for user"""
        now = datetime.now(timezone.utc)
        payload = {
            "user_id": user.id,
            "email": user.email,
            "role": user.role.value if user.role else "unknown",
            "exp": now + timedelta(minutes=self.token_expiry_minutes),
            "iat": now,
        }
        return jwt.encode(payload, self.jwt_secret, algorithm=self.jwt_algorithm)

    def validate_password(self, password: str) -> bool:
        """Validate password strength"""
        if not password or len(password) < 8:
            return False
        if not any(c.isupper() for c in password):
            return False
        if not any(c.islower() for c in password):
            return False
        if not any(c.isdigit() for c in password):
            return False
        if not any(c in SPECIAL_CHARACTERS for c in password):
            return False
        return True

    def update_profile(
        self,
        user_id: int,
        name: Optional[str] = None,
        email: Optional[str] = None,
        grade: Optional[str] = None,
        school: Optional[str] = None,
        location: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Update the caller's own profile fields"""
        with self.db_service.get_session() as session:
            user = session.query(User).filter_by(id=user_id, is_active=True).first()
            if not user:
                raise AuthenticationError("User not found")

            if name is not None:
                if not name.strip():
                    raise ValidationError.for_field("name", "Name cannot be empty")
                user.name = name.strip()

            if email is not None:
                email = email.strip().lower()
                existing = (
                    session.query(User)
                    .filter(User.email == email, User.id != user_id)
                    .first()
                )
                if existing:
                    raise ConflictError.for_field("email", "Email already in use")
                user.email = email

            if grade is not None:
                user.grade = grade.strip() or None
            if school is not None:
                user.school = school.strip() or None
            if location is not None:
                user.location = location.strip() or None

            session.commit()
            session.refresh(user)

            self.logging.log_auth_event(
                "profile_update",
                user_id=user_id,
                updated_fields=[
                    f
                    for f, v in [
                        ("name", name),
                        ("email", email),
                        ("grade", grade),
                        ("school", school),
                        ("location", location),
                    ]
                    if v is not None
                ],
            )
            return user_to_dict(user)


# Global auth service instance
_auth_service: Optional[AuthService] = None


def get_auth_service() -> AuthService:
    """Get the global authentication service instance"""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
