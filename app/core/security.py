"""Password hashing and secret-comparison helpers."""

import hashlib
import hmac
import secrets
import string

import bcrypt as _bcrypt

from app.core.config import settings

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > BCRYPT_MAX_BYTES:
        password_bytes = password_bytes[:BCRYPT_MAX_BYTES]
    return password_bytes


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a bcrypt hash.

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password from database

    Returns:
        True if password matches, False otherwise (including malformed hashes)
    """
    try:
        return _bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def get_password_hash(password: str, rounds: int | None = None) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password
        rounds: bcrypt cost factor, defaults to BCRYPT_ROUNDS

    Returns:
        Hashed password
    """
    salt = _bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return _bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def hash_refresh_token(token: str) -> str:
    """SHA-256 hex digest of a signed refresh token, as persisted."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def constant_time_compare(a: str, b: str) -> bool:
    """Compare two secrets without leaking where they differ."""
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def generate_secure_password(length: int = 16) -> str:
    """
    Generate a random password containing every character class.

    Args:
        length: Desired length, raised to 8 if smaller

    Returns:
        Random password
    """
    length = max(length, 8)
    pools = [string.ascii_lowercase, string.ascii_uppercase, string.digits, "!@#$%^&*()-_=+"]
    alphabet = "".join(pools)

    chars = [secrets.choice(pool) for pool in pools]
    chars.extend(secrets.choice(alphabet) for _ in range(length - len(pools)))

    # Shuffle so the guaranteed classes are not always up front
    for i in range(len(chars) - 1, 0, -1):
        j = secrets.randbelow(i + 1)
        chars[i], chars[j] = chars[j], chars[i]
    return "".join(chars)
