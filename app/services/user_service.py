import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.security import hash_password
from app.models.user import User
from app.utils.errors import ConflictError
from app.utils.helpers import utcnow
from app.utils.validators import normalize_email

logger = logging.getLogger(__name__)

EMAIL_TAKEN = "User already exists with this email"


class UserService:

    @staticmethod
    def get_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == normalize_email(email)).first()

    @staticmethod
    def create(
        db: Session,
        email: str,
        password: str,
        name: str,
        gemini_api_key: Optional[str] = None,
        avatar: Optional[str] = None,
    ) -> User:
        if UserService.get_by_email(db, email):
            raise ConflictError(EMAIL_TAKEN)

        user = User(
            email=email,
            password_hash=hash_password(password),
            name=name,
            gemini_api_key=gemini_api_key,
            avatar=avatar,
            is_active=True,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent registration for the same email
            db.rollback()
            raise ConflictError(EMAIL_TAKEN) from exc
        db.refresh(user)
        logger.info("Registered user %s", user.id)
        return user

    @staticmethod
    def update_profile(
        db: Session,
        user: User,
        name: Optional[str] = None,
        email: Optional[str] = None,
        avatar: Optional[str] = None,
        gemini_api_key: Optional[str] = None,
    ) -> User:
        if email is not None and normalize_email(email) != user.email:
            existing = UserService.get_by_email(db, email)
            if existing and existing.id != user.id:
                raise ConflictError("Email is already in use")
            user.email = email
        if name is not None:
            user.name = name
        if avatar is not None:
            user.avatar = avatar or None
        if gemini_api_key is not None:
            user.gemini_api_key = gemini_api_key

        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise ConflictError("Email is already in use") from exc
        db.refresh(user)
        return user

    @staticmethod
    def touch_last_login(db: Session, user: User) -> None:
        user.last_login = utcnow()
        db.commit()

    @staticmethod
    def set_active(db: Session, user: User, is_active: bool) -> User:
        user.is_active = is_active
        db.commit()
        db.refresh(user)
        logger.info("User %s is_active=%s", user.id, is_active)
        return user
