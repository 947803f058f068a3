"""
Notification Service - per-user notifications about report activity.
"""

from typing import Dict, List, Optional
import logging

from firebase_admin import firestore

from participium.config.firebase import get_db
from participium.core.exceptions import NotFoundError
from participium.utils.firestore_helpers import doc_to_dict, get_document, utcnow, where_filter

logger = logging.getLogger(__name__)

STATUS_CHANGED = "report_status_changed"
NEW_MESSAGE = "report_new_message"


class NotificationService:
    """Service for creating, listing and acknowledging notifications."""

    def __init__(self):
        self.db = get_db()

    def create_notification(self, user_id: str, notification_type: str, message: str,
                            report_id: Optional[str] = None) -> Dict:
        notification_ref = self.db.collection("notifications").document()
        notification_data = {
            "user_id": user_id,
            "type": notification_type,
            "message": message,
            "report_id": report_id,
            "read": False,
            "created_at": utcnow(),
        }
        notification_ref.set(notification_data)
        logger.info(f"Notification {notification_type} created for user {user_id}")
        notification_data["id"] = notification_ref.id
        return notification_data

    def list_for_user(self, user_id: str, only_unread: bool = False) -> List[Dict]:
        """Notifications of a user, newest first."""
        query = where_filter(self.db.collection("notifications"), "user_id", "==", user_id)
        if only_unread:
            query = where_filter(query, "read", "==", False)
        query = query.order_by("created_at", direction=firestore.Query.DESCENDING)
        return [doc_to_dict(doc) for doc in query.stream()]

    def mark_as_read(self, notification_id: str, user_id: str) -> Dict:
        notification = get_document(self.db, "notifications", notification_id)
        if notification is None or notification.get("user_id") != user_id:
            raise NotFoundError("Notification not found")

        self.db.collection("notifications").document(notification_id).update({"read": True})
        notification["read"] = True
        return notification

    def notify_status_change(self, report: Dict, new_status: str) -> Optional[Dict]:
        """Tell the reporter that a report moved to a new status."""
        reporter_id = report.get("user_id")
        if not reporter_id:
            return None
        status_label = new_status.replace("_", " ")
        return self.create_notification(
            reporter_id,
            STATUS_CHANGED,
            f'Your report "{report.get("title", "")}" is now {status_label}',
            report_id=report.get("id"),
        )


# Global service instance (singleton pattern)
_notification_service = None


def get_notification_service() -> NotificationService:
    """Get or create NotificationService singleton."""
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService()
    return _notification_service
