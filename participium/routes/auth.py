"""
Authentication endpoints - username/password login with cookie sessions.

The session cookie holds "<sessionId>.<secret>"; see services/session_service.py.
"""

from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from participium.core.exceptions import ParticipiumError
from participium.core.guards import require_session
from participium.core.settings import settings
from participium.models.base import ok
from participium.models.user import LoginRequest, RegisterRequest, VerifyEmailRequest
from participium.services.auth_service import get_auth_service
from participium.services.session_service import get_session_service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_EXPIRES_IN_SECONDS,
        httponly=settings.COOKIE_HTTP_ONLY,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAME_SITE,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        httponly=settings.COOKIE_HTTP_ONLY,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAME_SITE,
        path="/",
    )


def _start_session(request: Request, response: Response, user: Dict) -> Dict:
    token, session = get_session_service().create_session(
        user_id=user["id"],
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    set_session_cookie(response, token)
    return {"user": user, "session": session}


@router.post("/login")
async def login(payload: LoginRequest, request: Request, response: Response):
    """
    Log in with username and password.

    Sets the session cookie and returns the user with its session.
    """
    try:
        user = get_auth_service().validate_user(payload.username, payload.password)
        logger.info(f"User logged in: {user['id']}")
        return ok(_start_session(request, response, user))

    except (HTTPException, ParticipiumError):
        raise
    except Exception as e:
        logger.error(f"Login failed: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Login failed"
        )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest):
    """
    Register a citizen account.

    The account must be activated with the code e-mailed to the user.
    """
    try:
        user = await get_auth_service().register(payload)
        logger.info(f"Citizen registered: {user['id']}")
        return ok({"message": "Registration successful. Check your email for the verification code."})

    except (HTTPException, ParticipiumError):
        raise
    except Exception as e:
        logger.error(f"Registration failed: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Registration failed"
        )


@router.post("/verify-email")
async def verify_email(payload: VerifyEmailRequest, request: Request, response: Response):
    """
    Confirm the e-mail verification code and log the user in.
    """
    try:
        user = get_auth_service().verify_email(payload.email, payload.code)
        return ok(_start_session(request, response, user))

    except (HTTPException, ParticipiumError):
        raise
    except Exception as e:
        logger.error(f"E-mail verification failed: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="E-mail verification failed"
        )


@router.post("/logout")
async def logout(request: Request, response: Response, user: Dict = Depends(require_session)):
    """Delete the current session and clear the cookie."""
    get_session_service().delete_session(request.state.session["id"])
    clear_session_cookie(response)
    logger.info(f"User logged out: {user['id']}")
    return {"success": True}


@router.post("/refresh")
async def refresh(request: Request, response: Response, user: Dict = Depends(require_session)):
    """
    Extend the current session and re-issue the cookie with a fresh max-age.
    """
    session = get_session_service().refresh_session(request.state.session["id"])
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    set_session_cookie(response, token)
    return ok({"user": user, "session": session})


@router.get("/me")
async def get_current_user(user: Dict = Depends(require_session)):
    """Current user with role and office."""
    return ok(user)
