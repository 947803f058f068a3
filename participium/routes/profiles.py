"""
Citizen profile endpoints.
"""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from pydantic import ValidationError

from participium.core.exceptions import BadRequestError, ForbiddenError, ParticipiumError
from participium.core.guards import require_session
from participium.models.base import ok
from participium.models.user import ProfileUpdate, TelegramLinkRequest
from participium.services.profile_service import get_profile_service
from participium.services.telegram_link_service import get_telegram_link_service
from participium.utils.uploads import validate_image
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles", tags=["Profiles"])


@router.get("/profile/me")
async def get_my_profile(user: Dict = Depends(require_session)):
    return ok(get_profile_service().get_profile(user["id"]))


@router.patch("/profile/me")
async def update_my_profile(
    request: Request,
    telegram_username: Optional[str] = Form(None),
    email_notifications_enabled: Optional[bool] = Form(None),
    email: Optional[str] = Form(None),
    username: Optional[str] = Form(None),
    first_name: Optional[str] = Form(None),
    last_name: Optional[str] = Form(None),
    profile_picture: Optional[UploadFile] = File(None),
    user: Dict = Depends(require_session),
):
    """
    Update the caller's profile (multipart form).

    Only citizens have a profile; municipal accounts get 403.
    An empty telegram_username unlinks it; leaving the field out keeps it.
    """
    if (user.get("role") or {}).get("is_municipal"):
        raise ForbiddenError("Municipality users cannot update their profile")

    # Form() maps an empty field to None, the same as a missing one
    form = await request.form()
    if telegram_username is None and "telegram_username" in form and not form["telegram_username"]:
        telegram_username = ""

    try:
        update = ProfileUpdate(
            telegram_username=telegram_username,
            email_notifications_enabled=email_notifications_enabled,
            email=email or None,
            username=username or None,
            first_name=first_name or None,
            last_name=last_name or None,
        )
    except ValidationError as e:
        raise BadRequestError("; ".join(error["msg"] for error in e.errors()))

    try:
        picture = None
        if profile_picture is not None and profile_picture.filename:
            data = await profile_picture.read()
            validate_image(profile_picture.filename, profile_picture.content_type, len(data))
            picture = (profile_picture.filename, profile_picture.content_type, data)

        return ok(get_profile_service().update_profile(user["id"], update, picture))

    except (HTTPException, ParticipiumError):
        raise
    except Exception as e:
        logger.error(f"Profile update failed for {user['id']}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Profile update failed"
        )


@router.post("/telegram/link")
async def link_telegram_account(payload: TelegramLinkRequest, user: Dict = Depends(require_session)):
    """Redeem a code issued by the Telegram bot and link that account to the caller."""
    try:
        get_telegram_link_service().link_account(payload.code, user["id"])
        return ok(get_profile_service().get_profile(user["id"]))

    except (HTTPException, ParticipiumError):
        raise
    except Exception as e:
        logger.error(f"Telegram link failed for {user['id']}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Telegram link failed"
        )
