from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
import secrets
import hashlib

from app.core.config import Settings
from app.core.constants import TokenKind
from app.utils.helpers import parse_duration_ms

pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
)


def hash_password(password: str) -> str:
    if not password or not isinstance(password, str):
        raise ValueError("Password must be a non-empty string")
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not plain_password or not hashed_password:
        return False
    if not isinstance(plain_password, str):
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenInvalidError(TokenError):
    """Malformed token, bad signature, or wrong token kind."""


class TokenExpiredError(TokenError):
    """Signature is valid but the token is past its `exp`."""


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenIssuer:
    """Signs and verifies access and refresh JWTs.

    Each kind has its own secret and lifetime, taken from the `Settings`
    passed in at construction. Holds no other state.
    """

    def __init__(self, settings: Settings):
        self.algorithm = settings.JWT_ALGORITHM
        self._secrets = {
            TokenKind.ACCESS: settings.JWT_SECRET,
            TokenKind.REFRESH: settings.JWT_REFRESH_SECRET,
        }
        self._ttl_ms = {
            TokenKind.ACCESS: parse_duration_ms(settings.JWT_EXPIRE),
            TokenKind.REFRESH: parse_duration_ms(settings.JWT_REFRESH_EXPIRE),
        }

    def ttl(self, kind: TokenKind) -> timedelta:
        return timedelta(milliseconds=self._ttl_ms[kind])

    def expires_at(self, kind: TokenKind, now: Optional[datetime] = None) -> datetime:
        """Naive UTC instant at which a token of `kind` minted `now` expires."""
        now = now or datetime.now(timezone.utc).replace(tzinfo=None)
        return now + self.ttl(kind)

    def issue_token(self, user_id: int, kind: TokenKind, ttl_ms: Optional[int] = None) -> str:
        now = datetime.now(timezone.utc)
        ttl = timedelta(milliseconds=self._ttl_ms[kind] if ttl_ms is None else ttl_ms)
        payload = {
            "sub": str(user_id),
            "type": kind.value,
            "iat": now,
            "exp": now + ttl,
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(payload, self._secrets[kind], algorithm=self.algorithm)

    def issue(self, user_id: int) -> TokenPair:
        return TokenPair(
            access_token=self.issue_token(user_id, TokenKind.ACCESS),
            refresh_token=self.issue_token(user_id, TokenKind.REFRESH),
        )

    def verify(self, token: str, kind: TokenKind) -> Dict[str, Any]:
        try:
            payload = jwt.decode(
                token,
                self._secrets[kind],
                algorithms=[self.algorithm],
            )
        except ExpiredSignatureError as exc:
            raise TokenExpiredError(str(exc)) from exc
        except JWTError as exc:
            raise TokenInvalidError(str(exc)) from exc

        if payload.get("type") != kind.value or not payload.get("sub"):
            raise TokenInvalidError("Unexpected token payload")
        return payload


def user_id_from_claims(claims: Dict[str, Any]) -> Optional[int]:
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        return None
