"""
User models for authentication, municipality staff management and profiles.
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class LoginRequest(BaseModel):
    """Username/password login."""
    username: str = Field(..., min_length=6, max_length=30)
    password: str = Field(..., min_length=6, max_length=30)


class RegisterRequest(BaseModel):
    """Citizen self-registration."""
    email: EmailStr
    username: str = Field(..., min_length=6, max_length=30)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6, max_length=30)


class VerifyEmailRequest(BaseModel):
    """E-mail verification with the code sent at registration."""
    email: EmailStr
    code: str = Field(..., min_length=4, max_length=10)


class MunicipalityUserCreate(BaseModel):
    """Admin request to create a municipal staff account."""
    email: EmailStr
    username: str = Field(..., min_length=6, max_length=30)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6, max_length=30)
    role_id: str = Field(..., min_length=1)
    office_id: Optional[str] = None


class MunicipalityUserUpdate(BaseModel):
    """Admin request to update a municipal staff account. All fields optional."""
    email: Optional[EmailStr] = None
    username: Optional[str] = Field(None, min_length=6, max_length=30)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role_id: Optional[str] = None
    office_id: Optional[str] = None


class OfficeRoleAssignment(BaseModel):
    """Admin request to give a staff member a role in an additional office."""
    office_id: str = Field(..., min_length=1)
    role_id: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    """
    Citizen profile update (sent as multipart form fields).

    An empty telegram_username clears the linked username.
    """
    telegram_username: Optional[str] = Field(
        None,
        pattern=r"^(@\w{4,31})?$",
        description="Must start with @ and contain 5-32 alphanumeric characters or underscores",
    )
    email_notifications_enabled: Optional[bool] = None
    email: Optional[EmailStr] = None
    username: Optional[str] = Field(None, min_length=6, max_length=30)
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class TelegramLinkRequest(BaseModel):
    """Code shown by the Telegram bot, entered by the logged-in citizen."""
    code: str = Field(..., pattern=r"^[0-9]{6}$", description="Code must be a 6-digit number")
