"""
Session guards used as FastAPI dependencies.

- optional_session: public endpoints. Resolves the caller when it can and
  falls back to an anonymous (None) identity otherwise. Never raises.
- require_session: protected endpoints. Every failure is a 401.
- require_roles: protected endpoints limited to some roles. 403 otherwise.

All three store the result on request.state.user and request.state.session.
"""

from typing import Callable, Dict, Optional
import logging

from fastapi import Depends, Request

from participium.core.exceptions import ForbiddenError, UnauthorizedError
from participium.core.settings import settings
from participium.services.session_service import SessionResolution, get_session_service

logger = logging.getLogger(__name__)


def _attach(request: Request, resolution: SessionResolution) -> None:
    request.state.user = resolution.user
    request.state.session = resolution.session


def get_session_token(request: Request) -> Optional[str]:
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


def optional_session(request: Request) -> Optional[Dict]:
    """
    Resolve the caller or treat it as anonymous.

    Missing, malformed, unknown, expired and tampered tokens all yield None,
    and so does a failing session lookup.
    """
    try:
        resolution = get_session_service().resolve(get_session_token(request))
    except Exception as e:
        logger.warning(f"Session lookup failed, continuing as anonymous: {e}")
        resolution = SessionResolution()

    if not resolution.is_authenticated:
        resolution = SessionResolution()
    _attach(request, resolution)
    return resolution.user


def require_session(request: Request) -> Dict:
    """Resolve the caller or reject the request with 401."""
    resolution = get_session_service().resolve(get_session_token(request))
    if not resolution.is_authenticated:
        _attach(request, SessionResolution())
        raise UnauthorizedError(resolution.failure.value)

    _attach(request, resolution)
    return resolution.user


def has_role(user: Optional[Dict], *roles: str) -> bool:
    """True when no roles are required or the user holds one of them."""
    if not roles:
        return True
    if not user:
        return False
    role = user.get("role") or {}
    return role.get("name") in roles


def require_roles(*roles: str) -> Callable[..., Dict]:
    """
    Build a dependency that requires a session and one of the given roles.

    Usage:
        @router.get("/", dependencies=[Depends(require_roles(ADMIN_ROLE))])
    """

    def dependency(user: Dict = Depends(require_session)) -> Dict:
        if not has_role(user, *roles):
            raise ForbiddenError()
        return user

    return dependency
