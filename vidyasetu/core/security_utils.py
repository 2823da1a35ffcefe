"""
Security utilities for VidyaSetu

This module provides centralized key management for:
- The Fernet key used to encrypt quiz answer keys at rest
- The JWT signing secret

Both values come from the environment when set (VIDYASETU_ENCRYPTION_KEY,
VIDYASETU_JWT_SECRET); otherwise they are generated once and persisted under
~/.vidyasetu with owner-only permissions.
"""

import os
import logging
import secrets
from pathlib import Path

from cryptography.fernet import Fernet

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


SECURITY_DIR = Path(os.getenv("VIDYASETU_SECURITY_DIR", Path.home() / ".vidyasetu"))
ENCRYPTION_KEY_FILE = SECURITY_DIR / "encryption.key"
JWT_SECRET_FILE = SECURITY_DIR / "jwt.secret"


def _restrict_permissions(path: Path) -> None:
    try:
        os.chmod(path, 0o600)
    except OSError as e:
        logger.debug(f"Cannot set file permissions on {path}: {e}")


def get_or_create_encryption_key() -> bytes:
    """
    Get or create the persistent Fernet key.

    Returns:
        bytes: The encryption key

    Raises:
        ConfigurationError: If the key supplied through the environment is not
            a valid Fernet key
    """
    env_key = os.getenv("VIDYASETU_ENCRYPTION_KEY")
    if env_key:
        key = env_key.encode()
        try:
            Fernet(key)
        except ValueError as e:
            raise ConfigurationError(f"VIDYASETU_ENCRYPTION_KEY is invalid: {e}")
        return key

    SECURITY_DIR.mkdir(parents=True, exist_ok=True)

    if ENCRYPTION_KEY_FILE.exists():
        with open(ENCRYPTION_KEY_FILE, "rb") as f:
            return f.read().strip()

    key = Fernet.generate_key()
    with open(ENCRYPTION_KEY_FILE, "wb") as f:
        f.write(key)
    _restrict_permissions(ENCRYPTION_KEY_FILE)

    return key


def get_or_create_jwt_secret() -> str:
    """
    Get or create the persistent JWT secret.

    Returns:
        str: The JWT secret
    """
    env_secret = os.getenv("VIDYASETU_JWT_SECRET")
    if env_secret:
        return env_secret

    SECURITY_DIR.mkdir(parents=True, exist_ok=True)

    if JWT_SECRET_FILE.exists():
        with open(JWT_SECRET_FILE, "r") as f:
            return f.read().strip()

    secret = secrets.token_urlsafe(32)
    with open(JWT_SECRET_FILE, "w") as f:
        f.write(secret)
    _restrict_permissions(JWT_SECRET_FILE)

    return secret
