"""
Telegram Link Service - one-time codes that tie a Telegram account to a
citizen profile.

The bot asks for a code on behalf of a Telegram user; the citizen then
enters it while logged in to the web app. Codes are 6 digits, valid for
15 minutes and usable once.
"""

from datetime import datetime, timedelta
from typing import Dict, Optional
import logging
import secrets

from participium.config.firebase import get_db
from participium.core.exceptions import BadRequestError, NotFoundError
from participium.services.user_service import get_user_service, public_user
from participium.utils.firestore_helpers import doc_to_dict, get_document, parse_timestamp, utcnow, where_filter

logger = logging.getLogger(__name__)

LINK_CODE_LENGTH = 6
LINK_CODE_EXPIRY_MINUTES = 15
MAX_CODE_ATTEMPTS = 5


class TelegramLinkService:
    """
    Service for Telegram account linking.
    """

    def __init__(self):
        self.db = get_db()

    def generate_link_code(self, telegram_id: str, telegram_username: Optional[str],
                           now: Optional[datetime] = None) -> str:
        """
        Issue a link code for a Telegram account that is not linked yet.

        Raises:
            BadRequestError: the Telegram account already belongs to a profile
        """
        if self.is_linked(telegram_id):
            raise BadRequestError("This Telegram account is already linked to a user account")

        now = now or utcnow()

        for _ in range(MAX_CODE_ATTEMPTS):
            code = f"{secrets.randbelow(10 ** LINK_CODE_LENGTH):0{LINK_CODE_LENGTH}d}"
            if get_document(self.db, "telegram_link_codes", code) is None:
                break
        else:
            raise RuntimeError("Could not allocate a free Telegram link code")

        self.db.collection("telegram_link_codes").document(code).set({
            "telegram_id": str(telegram_id),
            "telegram_username": telegram_username,
            "expires_at": now + timedelta(minutes=LINK_CODE_EXPIRY_MINUTES),
            "used": False,
            "user_id": None,
            "created_at": now,
        })
        logger.info(f"Telegram link code issued for Telegram user {telegram_id}")
        return code

    def link_account(self, code: str, user_id: str, now: Optional[datetime] = None) -> Dict:
        """
        Redeem a link code for the given user and return the updated profile.

        Raises:
            NotFoundError: unknown code or missing profile
            BadRequestError: expired or used code, or profile already linked
        """
        link_code = get_document(self.db, "telegram_link_codes", code)
        if link_code is None:
            raise NotFoundError("Invalid link code")

        now = now or utcnow()
        expires_at = parse_timestamp(link_code.get("expires_at"))
        if expires_at is None or expires_at < now:
            raise BadRequestError("Link code has expired")
        if link_code.get("used"):
            raise BadRequestError("Link code has already been used")

        profile = get_document(self.db, "profiles", user_id)
        if profile is None:
            raise NotFoundError("User profile not found")
        if profile.get("telegram_id"):
            raise BadRequestError("Your account is already linked to a Telegram account")

        profile_data = {
            "telegram_id": link_code["telegram_id"],
            "telegram_username": link_code.get("telegram_username"),
            "telegram_linked_at": now,
            "updated_at": now,
        }
        self.db.collection("profiles").document(user_id).update(profile_data)
        self.db.collection("telegram_link_codes").document(code).update({"used": True, "user_id": user_id})

        logger.info(f"User {user_id} linked to Telegram user {link_code['telegram_id']}")
        profile.update(profile_data)
        return profile

    def _linked_profile(self, telegram_id: str) -> Optional[Dict]:
        query = where_filter(self.db.collection("profiles"), "telegram_id", "==", str(telegram_id)).limit(1)
        docs = list(query.stream())
        return doc_to_dict(docs[0]) if docs else None

    def get_linked_user(self, telegram_id: str) -> Optional[Dict]:
        """Public user behind a Telegram account, or None when not linked."""
        profile = self._linked_profile(telegram_id)
        if profile is None:
            return None
        return public_user(get_user_service().get_user_with_relations(profile.get("user_id")))

    def get_user_id(self, telegram_id: str) -> Optional[str]:
        profile = self._linked_profile(telegram_id)
        return profile.get("user_id") if profile else None

    def is_linked(self, telegram_id: str) -> bool:
        return self._linked_profile(telegram_id) is not None


# Global service instance (singleton pattern)
_telegram_link_service = None


def get_telegram_link_service() -> TelegramLinkService:
    """Get or create TelegramLinkService singleton."""
    global _telegram_link_service
    if _telegram_link_service is None:
        _telegram_link_service = TelegramLinkService()
    return _telegram_link_service
