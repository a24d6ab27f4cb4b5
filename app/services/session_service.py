"""Persistence of authentication sessions.

A session row mirrors one issued access/refresh token pair. It lets the
server revoke tokens before their embedded expiry, which stateless JWTs
cannot do on their own.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.constants import RevokeReason
from app.core.security import hash_token
from app.models.session import UserSession
from app.utils.errors import ConflictError
from app.utils.helpers import utcnow

logger = logging.getLogger(__name__)


class SessionStore:

    @staticmethod
    def create(
        db: Session,
        user_id: int,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> UserSession:
        session = UserSession(
            user_id=user_id,
            token_hash=hash_token(access_token),
            refresh_token_hash=hash_token(refresh_token),
            expires_at=expires_at,
            user_agent=user_agent[:512] if user_agent else None,
            ip_address=ip_address,
        )
        db.add(session)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            logger.error("Session token collision for user %s", user_id, exc_info=exc)
            raise ConflictError("Session token collision") from exc
        db.refresh(session)
        logger.info("Created session %s for user %s", session.id, user_id)
        return session

    @staticmethod
    def _find_live(db: Session, column, token: str) -> Optional[UserSession]:
        return (
            db.query(UserSession)
            .filter(
                column == hash_token(token),
                UserSession.is_active == True,  # noqa: E712
                UserSession.expires_at > utcnow(),
            )
            .first()
        )

    @staticmethod
    def find_live_by_access_token(db: Session, token: str) -> Optional[UserSession]:
        return SessionStore._find_live(db, UserSession.token_hash, token)

    @staticmethod
    def find_live_by_refresh_token(db: Session, token: str) -> Optional[UserSession]:
        return SessionStore._find_live(db, UserSession.refresh_token_hash, token)

    @staticmethod
    def deactivate(db: Session, session: UserSession, reason: RevokeReason) -> None:
        session.is_active = False
        session.revoked_at = utcnow()
        session.revoked_reason = reason.value
        db.commit()
        logger.info("Deactivated session %s (%s)", session.id, reason.value)

    @staticmethod
    def deactivate_all_for_user(db: Session, user_id: int, reason: RevokeReason) -> int:
        now = utcnow()
        count = (
            db.query(UserSession)
            .filter(
                UserSession.user_id == user_id,
                UserSession.is_active == True,  # noqa: E712
            )
            .update(
                {
                    UserSession.is_active: False,
                    UserSession.revoked_at: now,
                    UserSession.revoked_reason: reason.value,
                    UserSession.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        db.commit()
        logger.info("Deactivated %s sessions for user %s (%s)", count, user_id, reason.value)
        return count

    @staticmethod
    def list_live_for_user(db: Session, user_id: int) -> List[UserSession]:
        return (
            db.query(UserSession)
            .filter(
                UserSession.user_id == user_id,
                UserSession.is_active == True,  # noqa: E712
                UserSession.expires_at > utcnow(),
            )
            .order_by(UserSession.created_at.desc())
            .all()
        )

    @staticmethod
    def rotate(
        db: Session,
        session: UserSession,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
    ) -> bool:
        """Swap in a new token pair with one compare-and-swap UPDATE.

        The row only changes if it still carries the refresh digest this
        request authenticated with. Returns False when a concurrent refresh
        or a revocation got there first.
        """
        updated = (
            db.query(UserSession)
            .filter(
                UserSession.id == session.id,
                UserSession.refresh_token_hash == session.refresh_token_hash,
                UserSession.is_active == True,  # noqa: E712
            )
            .update(
                {
                    UserSession.token_hash: hash_token(access_token),
                    UserSession.refresh_token_hash: hash_token(refresh_token),
                    UserSession.expires_at: expires_at,
                    UserSession.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
        )
        if not updated:
            db.rollback()
            logger.warning("Refresh lost the race for session %s", session.id)
            return False
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            logger.error("Session token collision on rotation %s", session.id, exc_info=exc)
            raise ConflictError("Session token collision") from exc
        db.refresh(session)
        logger.info("Rotated tokens for session %s", session.id)
        return True

    @staticmethod
    def cleanup(db: Session, retention_days: int = 30) -> int:
        """Delete expired sessions and inactive ones older than the retention window."""
        now = utcnow()
        cutoff = now - timedelta(days=retention_days)
        count = (
            db.query(UserSession)
            .filter(
                or_(
                    UserSession.expires_at < now,
                    and_(
                        UserSession.is_active == False,  # noqa: E712
                        UserSession.created_at < cutoff,
                    ),
                )
            )
            .delete(synchronize_session=False)
        )
        db.commit()
        logger.info("Removed %s stale sessions", count)
        return count

    @staticmethod
    def stats(db: Session) -> dict:
        now = utcnow()
        total = db.query(func.count(UserSession.id)).scalar() or 0
        active = (
            db.query(func.count(UserSession.id))
            .filter(UserSession.is_active == True, UserSession.expires_at > now)  # noqa: E712
            .scalar()
            or 0
        )
        expired = (
            db.query(func.count(UserSession.id))
            .filter(UserSession.expires_at < now)
            .scalar()
            or 0
        )
        return {
            "total_sessions": total,
            "active_sessions": active,
            "expired_sessions": expired,
        }
