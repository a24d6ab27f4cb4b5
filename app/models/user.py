from sqlalchemy import Column, String, Boolean, DateTime, Text
from sqlalchemy.orm import relationship, validates
from app.core.database import Base
from app.models.base import IDMixin, TimestampMixin
from app.utils.validators import normalize_email


class User(IDMixin, TimestampMixin, Base):
    __tablename__ = "users"

    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(50), nullable=False)

    # Profile
    avatar = Column(Text, nullable=True)
    gemini_api_key = Column(String(64), nullable=True)

    # Account status
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    last_login = Column(DateTime, nullable=True)

    # Relationships
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")
    chats = relationship("Chat", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.email}>"

    @validates("email")
    def _normalize_email(self, key, value):
        return normalize_email(value) if value else value
