"""
OTP Service - e-mail verification codes for citizen registration.

Codes are stored on the user document and expire after 30 minutes.
"""

from datetime import datetime, timedelta
from typing import Dict, Optional
import logging
import secrets

from participium.core.exceptions import ConflictError
from participium.utils.firestore_helpers import parse_timestamp, utcnow

logger = logging.getLogger(__name__)


class OTPService:
    """
    Generation and checking of verification codes.
    """

    OTP_LENGTH = 6
    OTP_EXPIRY_MINUTES = 30

    def generate_otp(self) -> str:
        """
        Generate a random 6-digit code (leading zeros kept).
        """
        return f"{secrets.randbelow(10 ** self.OTP_LENGTH):0{self.OTP_LENGTH}d}"

    def expiry_from(self, now: Optional[datetime] = None) -> datetime:
        return (now or utcnow()) + timedelta(minutes=self.OTP_EXPIRY_MINUTES)

    def check_code(self, user: Optional[Dict], code: str, now: Optional[datetime] = None) -> None:
        """
        Validate a verification code against a user record.

        Raises:
            ConflictError: unknown user, already verified, no code,
                expired code or wrong code
        """
        if user is None:
            raise ConflictError("User not found")
        if user.get("is_email_verified"):
            raise ConflictError("Email already verified")

        stored_code = user.get("email_verification_code")
        if not stored_code:
            raise ConflictError("No verification code found")

        expiry = parse_timestamp(user.get("email_verification_code_expiry"))
        if expiry is None or expiry < (now or utcnow()):
            raise ConflictError("Verification code has expired")

        if not secrets.compare_digest(stored_code, code):
            logger.info(f"Wrong verification code for user {user.get('id')}")
            raise ConflictError("Invalid verification code")


# Global service instance (singleton pattern)
_otp_service = None


def get_otp_service() -> OTPService:
    """
    Get or create OTPService singleton instance.

    Returns:
        OTPService: The global OTP service instance
    """
    global _otp_service
    if _otp_service is None:
        _otp_service = OTPService()
    return _otp_service
