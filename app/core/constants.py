"""Application constants: token kinds, capabilities, revocation reasons."""
from enum import Enum


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class Capability(str, Enum):
    PROFILE = "profile"
    CHATS = "chats"
    ADMIN = "admin"


# Every account holds these; nothing grants ADMIN yet.
DEFAULT_USER_CAPABILITIES = frozenset({Capability.PROFILE, Capability.CHATS})


class RevokeReason(str, Enum):
    LOGOUT = "logout"
    LOGOUT_ALL = "logout_all"
    USER_INACTIVE = "user_inactive"


ACCESS_COOKIE = "token"
REFRESH_COOKIE = "refreshToken"

DEFAULT_CHAT_TITLE = "New Chat"
MAX_CHAT_MESSAGES = 1000
DEFAULT_CHAT_LIST_LIMIT = 50
MAX_CHAT_LIST_LIMIT = 100
