from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.core.config import Settings
from app.core.database import check_database
from app.dependencies.auth import get_optional_auth, get_settings
from app.services.auth_service import AuthContext
from app.utils.helpers import format_response, utcnow

API_VERSION = "1.0.0"

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health(request: Request, settings: Settings = Depends(get_settings)):
    """Liveness plus a database round trip."""
    db_ok = check_database(request.app.state.engine)
    data = {
        "status": "OK" if db_ok else "DEGRADED",
        "database": "connected" if db_ok else "unavailable",
        "environment": settings.ENV,
        "timestamp": utcnow().isoformat() + "Z",
    }
    if not db_ok:
        return JSONResponse(status_code=503, content=format_response(data, "Service degraded", success=False))
    return format_response(data, "Server is running")


@router.get("")
def api_info(
    settings: Settings = Depends(get_settings),
    ctx: Optional[AuthContext] = Depends(get_optional_auth),
):
    data = {
        "name": settings.APP_NAME,
        "version": API_VERSION,
        "authenticated": ctx is not None,
        "endpoints": {
            "auth": "/api/auth",
            "chats": "/api/chats",
            "health": "/api/health",
        },
    }
    return format_response(data, f"{settings.APP_NAME} API")
