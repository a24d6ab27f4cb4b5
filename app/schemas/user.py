"""User request/response schemas."""
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from app.schemas.common import CamelModel
from app.utils.validators import normalize_email, validate_gemini_api_key, validate_name


class UserRead(CamelModel):
    id: int
    email: str
    name: str
    avatar: Optional[str] = None
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None


class UserChatProfile(UserRead):
    """Profile including the Gemini key the browser uses for LLM calls."""
    gemini_api_key: Optional[str] = None


class ProfileUpdateRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    avatar: Optional[str] = Field(None, max_length=2048)
    gemini_api_key: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return validate_name(v) if v is not None else v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v):
        return normalize_email(v) if v is not None else v

    @field_validator("gemini_api_key")
    @classmethod
    def check_api_key(cls, v):
        return validate_gemini_api_key(v)
