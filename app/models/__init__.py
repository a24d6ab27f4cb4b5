"""Models package placeholder."""

__all__ = [
    "base",
    "user",
    "session",
    "chat",
]
