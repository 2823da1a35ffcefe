"""
Password hashing helpers.

AuthService, the user seeding script and the test fixtures all hash through
these two functions so there is exactly one bcrypt code path.
"""

import bcrypt


def hash_password(password: str) -> str:
    """Return a bcrypt hash for ``password`` as text suitable for storage."""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check ``password`` against a stored hash; malformed hashes never match."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False
