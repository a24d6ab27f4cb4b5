from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from sqlalchemy.engine import Engine

from app.core.config import Settings, settings as default_settings
from app.core.database import Base, create_db_engine, create_session_factory
from app.core.logger import setup_logging
from app.core.security import TokenIssuer
from app.middleware.cors import configure_cors
from app.middleware.error_handler import register_exception_handlers
from app.middleware.logging import RequestLoggerMiddleware

# Routers
from app.routers import auth as auth_router
from app.routers import chats as chats_router
from app.routers import health as health_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    # SQLite has no migration step in development; create tables on startup
    if app.state.settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=app.state.engine)
    yield
    if app.state.owns_engine:
        app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    The database engine is built from ``settings`` unless one is passed in.
    """
    settings = settings or default_settings
    setup_logging(settings.LOG_LEVEL)
    description = (
        "DSA Brother Bot API.\n\n"
        "This service provides authentication, session management and chat history endpoints."
    )

    openapi_tags = [
        {"name": "authentication", "description": "Register, login, token refresh, sessions and profile."},
        {"name": "chats", "description": "Chat history owned by the signed-in user."},
        {"name": "health", "description": "Health checks and service status endpoints."},
    ]

    app = FastAPI(
        title="DSA Brother Bot API",
        version="1.0.0",
        description=description,
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.token_issuer = TokenIssuer(settings)
    app.state.owns_engine = engine is None
    app.state.engine = engine if engine is not None else create_db_engine(settings)
    app.state.session_factory = create_session_factory(app.state.engine)

    # Middleware
    configure_cors(app, settings)
    app.add_middleware(RequestLoggerMiddleware)

    # Exception handlers
    register_exception_handlers(app)

    # Include routers
    app.include_router(health_router.router)
    app.include_router(auth_router.router)
    app.include_router(chats_router.router)

    return app


app = create_app()
