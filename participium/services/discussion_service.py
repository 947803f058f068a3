"""
Discussion Service - comments and messages attached to reports.

- comments: internal notes between municipal staff
- messages: conversation between the reporter and the staff handling it
"""

from typing import Dict, List
import logging

from participium.config.firebase import get_db
from participium.core.exceptions import ForbiddenError
from participium.services.notification_service import NEW_MESSAGE, get_notification_service
from participium.services.report_service import get_report_service, role_name
from participium.services.taxonomy_service import CITIZEN_ROLE
from participium.services.user_service import get_user_service
from participium.utils.firestore_helpers import doc_to_dict, parse_timestamp, utcnow, where_filter

logger = logging.getLogger(__name__)

COMMENTS = "comments"
MESSAGES = "messages"


class DiscussionService:
    """Service for the two per-report discussion threads."""

    def __init__(self):
        self.db = get_db()
        self.reports = get_report_service()
        self.users = get_user_service()
        self.notifications = get_notification_service()

    def _list(self, collection: str, report_id: str) -> List[Dict]:
        """Entries of a thread, oldest first, with their author embedded."""
        query = where_filter(self.db.collection(collection), "report_id", "==", report_id)
        entries = [doc_to_dict(doc) for doc in query.stream()]
        entries.sort(key=lambda e: parse_timestamp(e.get("created_at")) or utcnow())

        authors = self.users.get_public_users(entry.get("user_id") for entry in entries)
        for entry in entries:
            entry["user"] = authors.get(entry.get("user_id"))
        return entries

    def _add(self, collection: str, report_id: str, user: Dict, content: str) -> Dict:
        entry_ref = self.db.collection(collection).document()
        entry_data = {
            "report_id": report_id,
            "user_id": user["id"],
            "content": content,
            "created_at": utcnow(),
        }
        entry_ref.set(entry_data)
        logger.info(f"New entry in {collection} for report {report_id} by {user['id']}")

        entry_data["id"] = entry_ref.id
        entry_data["user"] = user
        return entry_data

    # Comments

    def get_comments(self, report_id: str, viewer: Dict) -> List[Dict]:
        self.reports.find_one(report_id, viewer)
        return self._list(COMMENTS, report_id)

    def add_comment(self, report_id: str, user: Dict, content: str) -> Dict:
        self.reports.find_one(report_id, user)
        return self._add(COMMENTS, report_id, user, content)

    # Messages

    def _check_message_access(self, report: Dict, viewer: Dict) -> None:
        """Citizens only take part in the thread of their own reports."""
        if role_name(viewer) == CITIZEN_ROLE and report.get("user_id") != viewer["id"]:
            raise ForbiddenError("You can only exchange messages on your own reports")

    def get_messages(self, report_id: str, viewer: Dict) -> List[Dict]:
        report = self.reports.find_one(report_id, viewer)
        self._check_message_access(report, viewer)
        return self._list(MESSAGES, report_id)

    def add_message(self, report_id: str, user: Dict, content: str) -> Dict:
        """
        Post a message and notify the other side: the assigned officer when
        the reporter writes, the reporter otherwise.
        """
        report = self.reports.find_one(report_id, user)
        self._check_message_access(report, user)
        message = self._add(MESSAGES, report_id, user, content)

        # find_one hides the reporter of anonymous reports from some viewers
        reporter_id = self.reports.get_report(report_id).get("user_id")
        if user["id"] == reporter_id:
            recipient_id = report.get("assigned_officer_id")
        else:
            recipient_id = reporter_id

        if recipient_id and recipient_id != user["id"]:
            self.notifications.create_notification(
                recipient_id,
                NEW_MESSAGE,
                f'New message on report "{report.get("title", "")}"',
                report_id=report_id,
            )
        return message


# Global service instance (singleton pattern)
_discussion_service = None


def get_discussion_service() -> DiscussionService:
    """Get or create DiscussionService singleton."""
    global _discussion_service
    if _discussion_service is None:
        _discussion_service = DiscussionService()
    return _discussion_service
