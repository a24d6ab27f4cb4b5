from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field, field_validator

from app.schemas.common import CamelModel
from app.schemas.user import UserRead
from app.utils.validators import normalize_email, validate_gemini_api_key, validate_name


class RegisterRequest(CamelModel):
    """Email/password registration request"""
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str
    gemini_api_key: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v):
        return normalize_email(v)

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return validate_name(v)

    @field_validator("gemini_api_key")
    @classmethod
    def check_api_key(cls, v):
        return validate_gemini_api_key(v)


class LoginRequest(CamelModel):
    """Email/password login request"""
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v):
        return normalize_email(v)


class RefreshTokenRequest(CamelModel):
    """Refresh token may also arrive as a cookie, so it is optional here."""
    refresh_token: Optional[str] = None


class TokenData(CamelModel):
    access_token: str
    refresh_token: str
    expires_in: str


class AuthData(TokenData):
    user: UserRead


class SessionRead(CamelModel):
    id: str
    created_at: datetime
    expires_at: datetime
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    is_current: bool = False


class SessionList(CamelModel):
    sessions: List[SessionRead]
