"""
Security utilities: session secrets, password hashing and constant-time comparison.
"""

import hashlib
import logging
import secrets
from typing import Optional, Tuple

import bcrypt

from participium.core.settings import settings

logger = logging.getLogger(__name__)

SESSION_TOKEN_SEPARATOR = "."


def generate_session_secret() -> str:
    """
    Generate the random half of a session token.

    token_urlsafe never emits the "." separator, so the compound
    "<sessionId>.<secret>" token always splits into exactly two parts.
    """
    return secrets.token_urlsafe(24)


def hash_secret(secret: str) -> str:
    """One-way SHA-256 of a session secret, as lowercase hex."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def constant_time_equal(a_string: str, b_string: str) -> bool:
    """
    Compare two strings without leaking the position of the first difference.

    Returns False immediately on length mismatch; otherwise every byte is
    inspected and differences are XOR-accumulated.
    """
    a = a_string.encode("utf-8")
    b = b_string.encode("utf-8")
    if len(a) != len(b):
        return False

    result = 0
    for x, y in zip(a, b):
        result |= x ^ y
    return result == 0


def build_session_token(session_id: str, secret: str) -> str:
    return f"{session_id}{SESSION_TOKEN_SEPARATOR}{secret}"


def split_session_token(token: Optional[str]) -> Optional[Tuple[str, str]]:
    """
    Split "<sessionId>.<secret>" into its parts.

    Returns None when the token is missing or does not have exactly two
    dot-separated parts. Either part may be empty; an empty session id
    never matches a stored session and an empty secret never matches its hash.
    """
    if not token:
        return None
    parts = token.split(SESSION_TOKEN_SEPARATOR)
    if len(parts) != 2:
        return None
    return parts[0], parts[1]


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """Check a password against a stored bcrypt hash."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError as e:
        logger.warning(f"Stored password hash is malformed: {e}")
        return False
