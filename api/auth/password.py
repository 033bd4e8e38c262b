"""
Password Hashing

bcrypt hashing for user credentials.
"""

import bcrypt

MIN_PASSWORD_LENGTH = 6

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


def _to_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash a plain-text password."""
    return bcrypt.hashpw(_to_bytes(password), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain-text password against a stored hash."""
    try:
        return bcrypt.checkpw(_to_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False
