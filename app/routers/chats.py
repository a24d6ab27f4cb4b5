from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.constants import Capability
from app.core.database import get_db
from app.dependencies.auth import get_current_user, require_capabilities
from app.models.chat import Chat
from app.models.user import User
from app.schemas.chat import AddMessageRequest, ChatCreate, ChatRead, ChatSummary, ChatUpdate, MessageOut
from app.services.chat_service import ChatService
from app.utils.helpers import format_response

router = APIRouter(
    prefix="/api/chats",
    tags=["chats"],
    dependencies=[Depends(require_capabilities(Capability.CHATS))],
)


def _chat(chat: Chat) -> dict:
    return ChatRead.model_validate(chat).dump()


@router.get("", status_code=200)
def list_chats(
    archived: str = Query("false", pattern="^(true|false|all)$"),
    limit: int = Query(50),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    chats = ChatService.list_user_chats(db, current_user.id, archived=archived, limit=limit)
    data = {
        "chats": [ChatSummary.model_validate(c).dump() for c in chats],
        "total": len(chats),
    }
    return format_response(data, "Chats retrieved successfully")


@router.post("", status_code=201)
def create_chat(
    payload: ChatCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    chat = ChatService.create_chat(db, current_user.id, payload)
    return format_response({"chat": _chat(chat)}, "Chat created successfully")


@router.get("/{chat_id}", status_code=200)
def get_chat(
    chat_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    chat = ChatService.get_owned(db, current_user.id, chat_id)
    return format_response({"chat": _chat(chat)}, "Chat retrieved successfully")


@router.put("/{chat_id}", status_code=200)
def update_chat(
    chat_id: str,
    payload: ChatUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    chat = ChatService.update_chat(db, current_user.id, chat_id, payload)
    return format_response({"chat": _chat(chat)}, "Chat updated successfully")


@router.delete("/{chat_id}", status_code=200)
def delete_chat(
    chat_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ChatService.delete_chat(db, current_user.id, chat_id)
    return format_response(None, "Chat deleted successfully")


@router.post("/{chat_id}/messages", status_code=201)
def add_message(
    chat_id: str,
    payload: AddMessageRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    message = ChatService.add_message(db, current_user.id, chat_id, payload.text, payload.is_user)
    data = {
        "chat": _chat(message.chat),
        "message": MessageOut.model_validate(message).dump(),
    }
    return format_response(data, "Message added successfully")


@router.post("/{chat_id}/archive", status_code=200)
def archive_chat(
    chat_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    chat = ChatService.set_archived(db, current_user.id, chat_id, True)
    return format_response({"chat": _chat(chat)}, "Chat archived successfully")


@router.post("/{chat_id}/unarchive", status_code=200)
def unarchive_chat(
    chat_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    chat = ChatService.set_archived(db, current_user.id, chat_id, False)
    return format_response({"chat": _chat(chat)}, "Chat unarchived successfully")
