from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Boolean,
    Text,
    ForeignKey,
    Index,
)
from sqlalchemy.orm import relationship

from app.core.constants import DEFAULT_CHAT_TITLE
from app.core.database import Base
from app.models.base import TimestampMixin, UUIDMixin
from app.utils.helpers import utcnow


class Chat(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "chats"
    __table_args__ = (
        Index("ix_chats_user_archived", "user_id", "is_archived"),
    )

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=False, default=DEFAULT_CHAT_TITLE)
    is_archived = Column(Boolean, default=False, nullable=False)

    user = relationship("User", back_populates="chats")
    messages = relationship(
        "ChatMessage",
        back_populates="chat",
        cascade="all, delete-orphan",
        order_by="ChatMessage.position",
    )

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @property
    def last_message(self):
        return self.messages[-1] if self.messages else None


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    pk = Column(Integer, primary_key=True, index=True)
    chat_id = Column(String(36), ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)

    # Client-visible identifier, unique within its chat
    id = Column(String(64), nullable=False)
    text = Column(Text, nullable=False)
    is_user = Column(Boolean, default=True, nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)

    chat = relationship("Chat", back_populates="messages")
