from typing import Optional

from fastapi import Body, Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.constants import ACCESS_COOKIE, REFRESH_COOKIE, Capability, DEFAULT_USER_CAPABILITIES
from app.core.database import get_db
from app.core.security import TokenIssuer
from app.models.user import User
from app.schemas.auth import RefreshTokenRequest
from app.services.auth_service import AuthContext, AuthService
from app.utils.errors import AuthenticationError, PermissionDeniedError

security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_auth_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> AuthService:
    return AuthService(db, settings, issuer)


def extract_access_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    """Bearer header first, then the `token` cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(ACCESS_COOKIE)


def get_current_auth(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthContext:
    """Require a live access token; attaches the context to `request.state.auth`."""
    ctx = auth_service.authenticate_access(extract_access_token(request, credentials))
    request.state.auth = ctx
    return ctx


def get_optional_auth(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service),
) -> Optional[AuthContext]:
    """Like `get_current_auth` but yields None instead of rejecting."""
    ctx = auth_service.try_authenticate_access(extract_access_token(request, credentials))
    request.state.auth = ctx
    return ctx


def get_refresh_auth(
    request: Request,
    payload: Optional[RefreshTokenRequest] = Body(None),
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthContext:
    """Require a live refresh token from the JSON body or the `refreshToken` cookie."""
    token = payload.refresh_token if payload and payload.refresh_token else None
    if not token:
        token = request.cookies.get(REFRESH_COOKIE)
    ctx = auth_service.authenticate_refresh(token)
    request.state.auth = ctx
    return ctx


def get_current_user(ctx: AuthContext = Depends(get_current_auth)) -> User:
    return ctx.user


def user_capabilities(user: User) -> frozenset:
    return DEFAULT_USER_CAPABILITIES


def authorize(ctx: Optional[AuthContext], required) -> AuthContext:
    """Allow iff an identity is attached and holds every required capability."""
    if ctx is None:
        raise AuthenticationError("Access denied. Authentication required.")
    if not frozenset(required) <= user_capabilities(ctx.user):
        raise PermissionDeniedError("Access denied. Insufficient permissions.")
    return ctx


def require_capabilities(*required: Capability):
    """Dependency factory running `authorize` after the access gate."""

    def checker(ctx: AuthContext = Depends(get_current_auth)) -> AuthContext:
        return authorize(ctx, required)

    return checker
