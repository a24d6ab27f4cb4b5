from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.constants import ACCESS_COOKIE, REFRESH_COOKIE, Capability, TokenKind
from app.core.database import get_db
from app.core.security import TokenIssuer, TokenPair
from app.dependencies.auth import (
    get_auth_service, get_current_auth, get_refresh_auth, get_token_issuer,
    require_capabilities,
)
from app.dependencies.rate_limit import rate_limit
from app.schemas.auth import AuthData, LoginRequest, RegisterRequest, SessionList, SessionRead, TokenData
from app.schemas.user import ProfileUpdateRequest, UserChatProfile, UserRead
from app.services.auth_service import AuthContext, AuthResult, AuthService
from app.services.session_service import SessionStore
from app.services.user_service import UserService
from app.utils.helpers import format_response, get_client_ip, get_user_agent

router = APIRouter(prefix="/api/auth", tags=["authentication"])


def _set_auth_cookies(response: Response, tokens: TokenPair, settings: Settings, issuer: TokenIssuer) -> None:
    secure = settings.is_production
    samesite = "strict" if secure else "lax"
    for name, value, kind in (
        (ACCESS_COOKIE, tokens.access_token, TokenKind.ACCESS),
        (REFRESH_COOKIE, tokens.refresh_token, TokenKind.REFRESH),
    ):
        response.set_cookie(
            name,
            value,
            max_age=int(issuer.ttl(kind).total_seconds()),
            httponly=True,
            secure=secure,
            samesite=samesite,
        )


def _clear_auth_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_COOKIE)
    response.delete_cookie(REFRESH_COOKIE)


def _auth_payload(result: AuthResult, settings: Settings) -> dict:
    return AuthData(
        user=UserRead.model_validate(result.user),
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        expires_in=settings.JWT_EXPIRE,
    ).dump()


@router.post("/register", status_code=201)
def register(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    issuer: TokenIssuer = Depends(get_token_issuer),
    _: None = Depends(rate_limit),
):
    """
    Register with email/password
    - Create user
    - Open a session and return both tokens
    """
    result = auth_service.register(
        email=payload.email,
        password=payload.password,
        name=payload.name,
        gemini_api_key=payload.gemini_api_key,
        user_agent=get_user_agent(request),
        ip_address=get_client_ip(request),
    )
    _set_auth_cookies(response, result.tokens, auth_service.settings, issuer)
    return format_response(_auth_payload(result, auth_service.settings), "User registered successfully")


@router.post("/login", status_code=200)
def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    issuer: TokenIssuer = Depends(get_token_issuer),
    _: None = Depends(rate_limit),
):
    """
    Email/password login
    - Verify credentials
    - Return JWT tokens
    """
    result = auth_service.login(
        email=payload.email,
        password=payload.password,
        user_agent=get_user_agent(request),
        ip_address=get_client_ip(request),
    )
    _set_auth_cookies(response, result.tokens, auth_service.settings, issuer)
    return format_response(_auth_payload(result, auth_service.settings), "Login successful")


@router.post("/logout", status_code=200)
def logout(
    response: Response,
    ctx: AuthContext = Depends(get_current_auth),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Logout user (revoke current session only)"""
    auth_service.logout(ctx)
    _clear_auth_cookies(response)
    return format_response(None, "Logout successful")


@router.post("/logout-all", status_code=200)
def logout_all(
    response: Response,
    ctx: AuthContext = Depends(get_current_auth),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Revoke every active session of the current user."""
    count = auth_service.logout_all(ctx.user)
    _clear_auth_cookies(response)
    return format_response({"count": count}, "Logged out from all devices")


@router.post("/refresh", status_code=200)
def refresh_tokens(
    response: Response,
    ctx: AuthContext = Depends(get_refresh_auth),
    auth_service: AuthService = Depends(get_auth_service),
    issuer: TokenIssuer = Depends(get_token_issuer),
    _: None = Depends(rate_limit),
):
    """Exchange a valid refresh token for a new access + refresh token pair (rotation)."""
    tokens = auth_service.refresh(ctx)
    _set_auth_cookies(response, tokens, auth_service.settings, issuer)
    data = TokenData(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=auth_service.settings.JWT_EXPIRE,
    ).dump()
    return format_response(data, "Token refreshed successfully")


@router.get("/me", status_code=200)
def me(ctx: AuthContext = Depends(get_current_auth)):
    user = UserRead.model_validate(ctx.user).dump()
    return format_response({"user": user}, "User data retrieved successfully")


@router.get("/sessions", status_code=200)
def list_sessions(
    ctx: AuthContext = Depends(get_current_auth),
    db: Session = Depends(get_db),
):
    sessions = [
        SessionRead(
            id=s.id,
            created_at=s.created_at,
            expires_at=s.expires_at,
            user_agent=s.user_agent,
            ip_address=s.ip_address,
            is_current=s.id == ctx.session.id,
        )
        for s in SessionStore.list_live_for_user(db, ctx.user.id)
    ]
    return format_response(SessionList(sessions=sessions).dump(), "Sessions retrieved successfully")


@router.put("/profile", status_code=200)
def update_profile(
    payload: ProfileUpdateRequest,
    ctx: AuthContext = Depends(require_capabilities(Capability.PROFILE)),
    db: Session = Depends(get_db),
):
    user = UserService.update_profile(
        db,
        ctx.user,
        name=payload.name,
        email=payload.email,
        avatar=payload.avatar,
        gemini_api_key=payload.gemini_api_key,
    )
    return format_response({"user": UserRead.model_validate(user).dump()}, "Profile updated successfully")


@router.get("/profile/chat", status_code=200)
def profile_for_chat(
    ctx: AuthContext = Depends(require_capabilities(Capability.PROFILE, Capability.CHATS)),
):
    """Profile including the Gemini API key, for the chat page."""
    user = UserChatProfile.model_validate(ctx.user).dump()
    return format_response({"user": user}, "Profile retrieved successfully")
