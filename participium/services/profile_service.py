"""
Profile Service - citizen profiles (telegram username, notification
preferences, profile picture) and the user fields editable with them.
"""

from typing import Dict, Optional, Tuple
import logging
import secrets

from participium.config.firebase import get_db
from participium.core.exceptions import ConflictError, NotFoundError, StorageError
from participium.models.user import ProfileUpdate
from participium.services.storage_service import get_storage_service
from participium.services.user_service import get_user_service, public_user
from participium.utils.firestore_helpers import get_document, utcnow
from participium.utils.uploads import sanitize_filename

logger = logging.getLogger(__name__)

# (filename, content_type, data)
PictureUpload = Tuple[str, str, bytes]


class ProfileService:
    """
    Service for reading and updating citizen profiles.
    """

    def __init__(self):
        self.db = get_db()
        self.users = get_user_service()

    def get_profile(self, user_id: str) -> Dict:
        """Profile with the public user (role and office embedded)."""
        profile = get_document(self.db, "profiles", user_id)
        user = self.users.get_user_with_relations(user_id)
        if profile is None or user is None:
            raise NotFoundError("User not found")
        profile["user"] = public_user(user)
        return profile

    def update_profile(self, user_id: str, request: ProfileUpdate,
                       picture: Optional[PictureUpload] = None) -> Dict:
        """
        Apply a profile update.

        Raises:
            NotFoundError: missing profile or user
            ConflictError: username or e-mail taken by another account
        """
        profile = get_document(self.db, "profiles", user_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        user = self.users.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")

        profile_data = {}
        if request.telegram_username is not None:
            profile_data["telegram_username"] = request.telegram_username or None
        if request.email_notifications_enabled is not None:
            profile_data["email_notifications_enabled"] = request.email_notifications_enabled

        if picture is not None:
            profile_data["profile_picture_url"] = self._replace_picture(
                user_id, picture, profile.get("profile_picture_url")
            )

        user_data = {}
        if request.username and request.username != user.get("username"):
            if self.users.get_user_by_username(request.username):
                raise ConflictError("Username already in use")
            user_data["username"] = request.username

        if request.email and request.email != user.get("email"):
            if self.users.get_user_by_email(request.email):
                raise ConflictError("Email already in use")
            user_data["email"] = request.email

        for field in ("first_name", "last_name"):
            value = getattr(request, field)
            if value and value != user.get(field):
                user_data[field] = value

        if user_data:
            self.users.update_user(user_id, user_data)
        if profile_data:
            profile_data["updated_at"] = utcnow()
            self.db.collection("profiles").document(user_id).update(profile_data)
            logger.info(f"Profile updated for user {user_id}: {sorted(profile_data)}")

        return self.get_profile(user_id)

    def _replace_picture(self, user_id: str, picture: PictureUpload, old_url: Optional[str]) -> str:
        filename, content_type, data = picture
        storage = get_storage_service()
        path = f"profile-pictures/{user_id}/{secrets.token_hex(8)}-{sanitize_filename(filename)}"
        url = storage.upload_file(path, data, content_type)

        old_path = storage.path_from_url(old_url) if old_url else None
        if old_path:
            try:
                storage.delete_file(old_path)
            except StorageError:
                logger.warning(f"Old profile picture {old_path} could not be deleted")
        return url


# Global service instance (singleton pattern)
_profile_service = None


def get_profile_service() -> ProfileService:
    """Get or create ProfileService singleton."""
    global _profile_service
    if _profile_service is None:
        _profile_service = ProfileService()
    return _profile_service
