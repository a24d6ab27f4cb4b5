"""User session model mirroring the validity of issued access/refresh tokens."""
from sqlalchemy import Column, String, DateTime, Boolean, Integer, ForeignKey, Index
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin, UUIDMixin
from app.utils.helpers import utcnow


class UserSession(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "user_sessions"
    __table_args__ = (
        Index("ix_user_sessions_user_active", "user_id", "is_active"),
    )

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # SHA-256 digests of the bearer tokens; raw tokens are never stored
    token_hash = Column(String(64), nullable=False, unique=True)
    refresh_token_hash = Column(String(64), nullable=False, unique=True)

    expires_at = Column(DateTime, nullable=False, index=True)

    # Session metadata
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(512), nullable=True)

    # Revocation
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    revoked_at = Column(DateTime, nullable=True)
    revoked_reason = Column(String(50), nullable=True)

    user = relationship("User", back_populates="sessions")

    def is_expired(self) -> bool:
        return utcnow() >= self.expires_at

    def is_live(self) -> bool:
        return bool(self.is_active) and not self.is_expired()
