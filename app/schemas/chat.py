from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from app.schemas.common import CamelModel


def _check_text(v: str) -> str:
    v = v.strip()
    if not 1 <= len(v) <= 5000:
        raise ValueError("Message text must be between 1 and 5000 characters")
    return v


def _check_title(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not 1 <= len(v) <= 100:
        raise ValueError("Title must be between 1 and 100 characters")
    return v


class MessageIn(CamelModel):
    id: Optional[str] = Field(None, max_length=64)
    text: str
    is_user: bool = True
    timestamp: Optional[datetime] = None

    @field_validator("text")
    @classmethod
    def strip_text(cls, v):
        return _check_text(v)


class MessageOut(CamelModel):
    id: str
    text: str
    is_user: bool
    timestamp: datetime


class ChatCreate(CamelModel):
    title: Optional[str] = None
    messages: Optional[List[MessageIn]] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v):
        return _check_title(v)


class ChatUpdate(CamelModel):
    title: Optional[str] = None
    is_archived: Optional[bool] = None
    messages: Optional[List[MessageIn]] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v):
        return _check_title(v)


class AddMessageRequest(CamelModel):
    text: str
    is_user: bool = True

    @field_validator("text")
    @classmethod
    def strip_text(cls, v):
        return _check_text(v)


class ChatRead(CamelModel):
    id: str
    title: str
    is_archived: bool
    messages: List[MessageOut]
    created_at: datetime
    updated_at: datetime


class ChatSummary(CamelModel):
    id: str
    title: str
    message_count: int
    last_message: Optional[MessageOut] = None
    is_archived: bool
    created_at: datetime
    updated_at: datetime
