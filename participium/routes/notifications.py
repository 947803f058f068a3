"""
Notification endpoints for the current user.
"""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query

from participium.core.guards import require_session
from participium.models.base import ok
from participium.services.notification_service import get_notification_service

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("")
async def list_notifications(
    unread: Optional[str] = Query(None),
    user: Dict = Depends(require_session),
):
    """Caller's notifications, newest first. ?unread=1 or ?unread=true for unread only."""
    only_unread = (unread or "").lower() in ("1", "true")
    return ok(get_notification_service().list_for_user(user["id"], only_unread))


@router.patch("/{notification_id}/read")
async def mark_notification_read(notification_id: str, user: Dict = Depends(require_session)):
    return ok(get_notification_service().mark_as_read(notification_id, user["id"]))
