"""Service layer package."""

__all__ = [
    "auth_service",
    "session_service",
    "user_service",
    "chat_service",
]
