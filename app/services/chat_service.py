import logging
import uuid
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from app.core.constants import (
    DEFAULT_CHAT_LIST_LIMIT, DEFAULT_CHAT_TITLE, MAX_CHAT_LIST_LIMIT, MAX_CHAT_MESSAGES,
)
from app.models.chat import Chat, ChatMessage
from app.schemas.chat import ChatCreate, ChatUpdate, MessageIn
from app.utils.errors import BadRequestError, NotFoundError, ValidationFailedError
from app.utils.helpers import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

TITLE_FROM_MESSAGE_LENGTH = 50


def _title_from_first_message(messages: List[ChatMessage]) -> Optional[str]:
    if not messages or not messages[0].is_user or not messages[0].text:
        return None
    text = messages[0].text
    title = text[:TITLE_FROM_MESSAGE_LENGTH].strip()
    if len(text) > TITLE_FROM_MESSAGE_LENGTH:
        title += "..."
    return title


class ChatService:

    @staticmethod
    def _parse_id(chat_id: str) -> str:
        try:
            return str(uuid.UUID(chat_id))
        except (ValueError, TypeError, AttributeError):
            raise BadRequestError("Invalid chat ID")

    @staticmethod
    def _build_messages(items: Iterable[MessageIn], start: int = 0) -> List[ChatMessage]:
        built = []
        for offset, item in enumerate(items):
            built.append(
                ChatMessage(
                    id=item.id or uuid.uuid4().hex,
                    text=item.text,
                    is_user=item.is_user,
                    timestamp=to_naive_utc(item.timestamp) or utcnow(),
                    position=start + offset,
                )
            )
        if start + len(built) > MAX_CHAT_MESSAGES:
            raise ValidationFailedError(
                [{"field": "messages", "message": f"Chat cannot have more than {MAX_CHAT_MESSAGES} messages"}]
            )
        return built

    # ---------------- Queries ----------------

    @staticmethod
    def get_owned(db: Session, user_id: int, chat_id: str) -> Chat:
        chat = (
            db.query(Chat)
            .filter(Chat.id == ChatService._parse_id(chat_id), Chat.user_id == user_id)
            .first()
        )
        if not chat:
            raise NotFoundError("Chat not found")
        return chat

    @staticmethod
    def list_user_chats(
        db: Session,
        user_id: int,
        archived: str = "false",
        limit: int = DEFAULT_CHAT_LIST_LIMIT,
    ) -> List[Chat]:
        """List chats newest-updated first.

        ``archived`` is ``"false"`` (default), ``"true"`` or ``"all"``; only
        the ``all`` listing honours ``limit``, capped at 100; a missing or
        non-positive limit means 50.
        """
        q = db.query(Chat).filter(Chat.user_id == user_id)
        if archived == "all":
            if not limit or limit < 1:
                limit = DEFAULT_CHAT_LIST_LIMIT
            limit = min(limit, MAX_CHAT_LIST_LIMIT)
            return q.order_by(Chat.updated_at.desc()).limit(limit).all()
        q = q.filter(Chat.is_archived == (archived == "true"))
        return q.order_by(Chat.updated_at.desc()).all()

    # ---------------- Mutations ----------------

    @staticmethod
    def create_chat(db: Session, user_id: int, payload: ChatCreate) -> Chat:
        messages = ChatService._build_messages(payload.messages or [])
        title = payload.title or DEFAULT_CHAT_TITLE
        if title == DEFAULT_CHAT_TITLE:
            title = _title_from_first_message(messages) or title

        chat = Chat(user_id=user_id, title=title, messages=messages)
        db.add(chat)
        db.commit()
        db.refresh(chat)
        logger.info("Created chat %s for user %s", chat.id, user_id)
        return chat

    @staticmethod
    def update_chat(db: Session, user_id: int, chat_id: str, payload: ChatUpdate) -> Chat:
        chat = ChatService.get_owned(db, user_id, chat_id)
        if payload.title is not None:
            chat.title = payload.title
        if payload.is_archived is not None:
            chat.is_archived = payload.is_archived
        if payload.messages is not None:
            chat.messages = ChatService._build_messages(payload.messages)
        chat.updated_at = utcnow()
        db.commit()
        db.refresh(chat)
        return chat

    @staticmethod
    def delete_chat(db: Session, user_id: int, chat_id: str) -> None:
        chat = ChatService.get_owned(db, user_id, chat_id)
        db.delete(chat)
        db.commit()
        logger.info("Deleted chat %s", chat_id)

    @staticmethod
    def add_message(db: Session, user_id: int, chat_id: str, text: str, is_user: bool = True) -> ChatMessage:
        chat = ChatService.get_owned(db, user_id, chat_id)
        [message] = ChatService._build_messages(
            [MessageIn(text=text, is_user=is_user)],
            start=len(chat.messages),
        )
        chat.messages.append(message)
        chat.updated_at = utcnow()
        db.commit()
        db.refresh(chat)
        return message

    @staticmethod
    def set_archived(db: Session, user_id: int, chat_id: str, archived: bool) -> Chat:
        chat = ChatService.get_owned(db, user_id, chat_id)
        chat.is_archived = archived
        chat.updated_at = utcnow()
        db.commit()
        db.refresh(chat)
        return chat

