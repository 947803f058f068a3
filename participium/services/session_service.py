"""
Session Service - cookie sessions stored in Firestore.

A session token is "<sessionId>.<secret>". Only the SHA-256 of the secret
is persisted; the plaintext secret lives in the client cookie alone.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional, Tuple
import logging

from participium.config.firebase import get_db
from participium.core.settings import settings
from participium.services.user_service import get_user_service, public_user
from participium.utils.firestore_helpers import get_document, parse_timestamp, utcnow
from participium.utils.security import (
    build_session_token,
    constant_time_equal,
    generate_session_secret,
    hash_secret,
    split_session_token,
)

logger = logging.getLogger(__name__)


class SessionFailure(str, Enum):
    """Why a token did not resolve to a user. Values are the 401 messages."""
    MISSING = "No session token"
    MALFORMED = "Invalid session token format"
    INVALID_OR_EXPIRED = "Invalid or expired session"
    BAD_SECRET = "Invalid session secret"


@dataclass
class SessionResolution:
    user: Optional[Dict] = None
    session: Optional[Dict] = None
    failure: Optional[SessionFailure] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


def public_session(session: Optional[Dict]) -> Optional[Dict]:
    """Copy of a session dict without the stored secret hash."""
    if session is None:
        return None
    return {key: value for key, value in session.items() if key != "hashed_secret"}


def is_session_expired(session: Dict, now: Optional[datetime] = None) -> bool:
    """
    A session expires when it has not been touched for longer than
    SESSION_EXPIRES_IN_SECONDS. A missing updated_at counts as expired.
    """
    updated_at = parse_timestamp(session.get("updated_at"))
    if updated_at is None:
        return True
    now = now or utcnow()
    return (now - updated_at).total_seconds() > settings.SESSION_EXPIRES_IN_SECONDS


class SessionService:
    """
    Service for session creation, resolution and invalidation.
    """

    def __init__(self):
        self.db = get_db()

    def create_session(self, user_id: str, ip_address: Optional[str] = None,
                       user_agent: Optional[str] = None) -> Tuple[str, Dict]:
        """
        Create a session for a user.

        Returns:
            (token, session) where token is the cookie value and session is
            the stored record without its hash.
        """
        secret = generate_session_secret()
        now = utcnow()

        session_ref = self.db.collection("sessions").document()
        session_data = {
            "user_id": user_id,
            "hashed_secret": hash_secret(secret),
            "expires_at": now + timedelta(seconds=settings.SESSION_EXPIRES_IN_SECONDS),
            "created_at": now,
            "updated_at": now,
            "ip_address": ip_address,
            "user_agent": user_agent,
        }
        session_ref.set(session_data)

        logger.info(f"Session created for user {user_id}")
        session_data["id"] = session_ref.id
        return build_session_token(session_ref.id, secret), public_session(session_data)

    def resolve(self, token: Optional[str], now: Optional[datetime] = None) -> SessionResolution:
        """
        Resolve a session token to its user and session.

        Never raises for a bad token; the reason is reported in
        SessionResolution.failure. Store errors do propagate.
        """
        if not token:
            return SessionResolution(failure=SessionFailure.MISSING)

        parts = split_session_token(token)
        if parts is None:
            return SessionResolution(failure=SessionFailure.MALFORMED)
        session_id, secret = parts

        session = get_document(self.db, "sessions", session_id)
        if session is None or is_session_expired(session, now):
            return SessionResolution(failure=SessionFailure.INVALID_OR_EXPIRED)

        user = get_user_service().get_user_with_relations(session.get("user_id"))
        if user is None:
            return SessionResolution(failure=SessionFailure.INVALID_OR_EXPIRED)

        if not constant_time_equal(hash_secret(secret), session.get("hashed_secret") or ""):
            return SessionResolution(failure=SessionFailure.BAD_SECRET)

        return SessionResolution(user=public_user(user), session=public_session(session))

    def refresh_session(self, session_id: str) -> Dict:
        """Slide the expiry window of an existing session."""
        now = utcnow()
        session_ref = self.db.collection("sessions").document(session_id)
        session_ref.update({
            "updated_at": now,
            "expires_at": now + timedelta(seconds=settings.SESSION_EXPIRES_IN_SECONDS),
        })
        return public_session(get_document(self.db, "sessions", session_id))

    def delete_session(self, session_id: str) -> None:
        self.db.collection("sessions").document(session_id).delete()
        logger.info(f"Session deleted: {session_id}")


# Global service instance (singleton pattern)
_session_service = None


def get_session_service() -> SessionService:
    """
    Get or create SessionService singleton instance.

    Returns:
        SessionService: The global session service instance
    """
    global _session_service
    if _session_service is None:
        _session_service = SessionService()
    return _session_service
