"""
Auth Service - password login, citizen registration and e-mail verification.
"""

from typing import Dict
import logging

from participium.core.exceptions import ForbiddenError, UnauthorizedError
from participium.models.user import RegisterRequest
from participium.services.email_service import get_email_service
from participium.services.otp_service import get_otp_service
from participium.services.taxonomy_service import CITIZEN_ROLE
from participium.services.user_service import get_user_service, public_user
from participium.utils.security import verify_password

logger = logging.getLogger(__name__)


class AuthService:
    """
    Service for credential checks and account activation.
    """

    def __init__(self):
        self.users = get_user_service()
        self.otp = get_otp_service()
        self.email = get_email_service()

    def validate_user(self, username: str, password: str) -> Dict:
        """
        Check username/password and return the public user with relations.

        Raises:
            UnauthorizedError: unknown username or wrong password
            ForbiddenError: citizen whose e-mail is not verified yet
        """
        user = self.users.get_user_by_username(username)
        if user is None or not verify_password(password, user.get("password_hash")):
            logger.info(f"Failed login for username {username}")
            raise UnauthorizedError("Invalid username or password")

        user = self.users.get_user_with_relations(user["id"])
        role_name = (user.get("role") or {}).get("name")
        if role_name == CITIZEN_ROLE and not user.get("is_email_verified"):
            raise ForbiddenError("Email not verified. Please verify your email before logging in.")

        return public_user(user)

    async def register(self, request: RegisterRequest) -> Dict:
        """
        Create an unverified citizen and e-mail the verification code.
        """
        code = self.otp.generate_otp()
        user = self.users.create_citizen(
            email=request.email,
            username=request.username,
            first_name=request.first_name,
            last_name=request.last_name,
            password=request.password,
            verification_code=code,
            code_expiry=self.otp.expiry_from(),
        )
        await self.email.send_verification_code(request.email, code, self.otp.OTP_EXPIRY_MINUTES)
        return public_user(user)

    def verify_email(self, email: str, code: str) -> Dict:
        """
        Confirm the verification code and activate the account.

        Raises:
            ConflictError: see OTPService.check_code
        """
        user = self.users.get_user_by_email(email)
        self.otp.check_code(user, code)

        verified = self.users.update_user(user["id"], {
            "is_email_verified": True,
            "email_verification_code": None,
            "email_verification_code_expiry": None,
        })
        logger.info(f"E-mail verified for user {user['id']}")
        return public_user(verified)


# Global service instance (singleton pattern)
_auth_service = None


def get_auth_service() -> AuthService:
    """Get or create AuthService singleton."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
