import logging
from dataclasses import dataclass
from typing import NamedTuple, Optional

from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.constants import RevokeReason, TokenKind
from app.core.security import (
    TokenExpiredError, TokenInvalidError, TokenIssuer, TokenPair,
    user_id_from_claims, verify_password,
)
from app.models.session import UserSession
from app.models.user import User
from app.services.session_service import SessionStore
from app.services.user_service import UserService
from app.utils.errors import AuthenticationError, InvalidCredentialsError

logger = logging.getLogger(__name__)


class GateMessages(NamedTuple):
    missing: str
    invalid: str
    expired: str
    no_session: str
    inactive: str


ACCESS_MESSAGES = GateMessages(
    missing="Access denied. No token provided.",
    invalid="Invalid token.",
    expired="Token expired.",
    no_session="Invalid or expired session.",
    inactive="User account is inactive.",
)

REFRESH_MESSAGES = GateMessages(
    missing="Refresh token is required.",
    invalid="Invalid refresh token.",
    expired="Refresh token expired.",
    no_session="Invalid or expired refresh token.",
    inactive="User account is inactive.",
)

INVALID_LOGIN = "Invalid email or password"
ACCOUNT_DEACTIVATED = "Account is deactivated"


@dataclass
class AuthContext:
    """Identity attached to a request that passed a gate."""
    user: User
    session: UserSession
    token: str


@dataclass
class AuthResult:
    user: User
    session: UserSession
    tokens: TokenPair


class AuthService:
    """Login/logout/refresh and the per-request token gates.

    Takes its database session, configuration and token issuer explicitly
    so each piece can be swapped in tests.
    """

    def __init__(self, db: Session, settings: Settings, issuer: TokenIssuer):
        self.db = db
        self.settings = settings
        self.issuer = issuer

    # ---------------- Gates ----------------

    def _authenticate(self, token: Optional[str], kind: TokenKind, messages: GateMessages) -> AuthContext:
        if not token:
            raise AuthenticationError(messages.missing)

        try:
            claims = self.issuer.verify(token, kind)
        except TokenExpiredError:
            raise AuthenticationError(messages.expired)
        except TokenInvalidError:
            raise AuthenticationError(messages.invalid)

        if kind is TokenKind.ACCESS:
            session = SessionStore.find_live_by_access_token(self.db, token)
        else:
            session = SessionStore.find_live_by_refresh_token(self.db, token)
        if not session:
            raise AuthenticationError(messages.no_session)

        user_id = user_id_from_claims(claims)
        user = UserService.get_by_id(self.db, user_id) if user_id is not None else None
        if not user or not user.is_active:
            # Poison the session so later attempts stop at the session lookup
            SessionStore.deactivate(self.db, session, RevokeReason.USER_INACTIVE)
            logger.warning("Rejected %s token for inactive user %s", kind.value, user_id)
            raise AuthenticationError(messages.inactive)

        return AuthContext(user=user, session=session, token=token)

    def authenticate_access(self, token: Optional[str]) -> AuthContext:
        return self._authenticate(token, TokenKind.ACCESS, ACCESS_MESSAGES)

    def authenticate_refresh(self, token: Optional[str]) -> AuthContext:
        return self._authenticate(token, TokenKind.REFRESH, REFRESH_MESSAGES)

    def try_authenticate_access(self, token: Optional[str]) -> Optional[AuthContext]:
        """Optional gate: identity when the token checks out, otherwise None.

        Never raises for auth failures and never revokes anything.
        """
        if not token:
            return None
        try:
            claims = self.issuer.verify(token, TokenKind.ACCESS)
        except (TokenExpiredError, TokenInvalidError):
            return None
        session = SessionStore.find_live_by_access_token(self.db, token)
        if not session:
            return None
        user_id = user_id_from_claims(claims)
        user = UserService.get_by_id(self.db, user_id) if user_id is not None else None
        if not user or not user.is_active:
            return None
        return AuthContext(user=user, session=session, token=token)

    # ---------------- Lifecycle ----------------

    def _open_session(self, user: User, user_agent: Optional[str], ip_address: Optional[str]) -> AuthResult:
        tokens = self.issuer.issue(user.id)
        session = SessionStore.create(
            self.db,
            user_id=user.id,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_at=self.issuer.expires_at(TokenKind.REFRESH),
            user_agent=user_agent,
            ip_address=ip_address,
        )
        UserService.touch_last_login(self.db, user)
        return AuthResult(user=user, session=session, tokens=tokens)

    def register(
        self,
        email: str,
        password: str,
        name: str,
        gemini_api_key: Optional[str] = None,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> AuthResult:
        user = UserService.create(
            self.db,
            email=email,
            password=password,
            name=name,
            gemini_api_key=gemini_api_key,
        )
        return self._open_session(user, user_agent, ip_address)

    def login(
        self,
        email: str,
        password: str,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> AuthResult:
        user = UserService.get_by_email(self.db, email)
        if not user:
            raise InvalidCredentialsError(INVALID_LOGIN)

        if not user.is_active:
            logger.info("Login attempt for deactivated user %s", user.id)
            if self.settings.LOGIN_REVEAL_INACTIVE:
                raise InvalidCredentialsError(ACCOUNT_DEACTIVATED)
            raise InvalidCredentialsError(INVALID_LOGIN)

        if not verify_password(password, user.password_hash):
            raise InvalidCredentialsError(INVALID_LOGIN)

        return self._open_session(user, user_agent, ip_address)

    def logout(self, ctx: AuthContext) -> None:
        SessionStore.deactivate(self.db, ctx.session, RevokeReason.LOGOUT)

    def logout_all(self, user: User) -> int:
        return SessionStore.deactivate_all_for_user(self.db, user.id, RevokeReason.LOGOUT_ALL)

    def refresh(self, ctx: AuthContext) -> TokenPair:
        """Rotate the pair held by the refresh-gated session.

        The old access and refresh tokens stop matching the session as soon
        as the update lands.
        """
        tokens = self.issuer.issue(ctx.user.id)
        rotated = SessionStore.rotate(
            self.db,
            ctx.session,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_at=self.issuer.expires_at(TokenKind.REFRESH),
        )
        if not rotated:
            raise AuthenticationError(REFRESH_MESSAGES.no_session)
        return tokens
