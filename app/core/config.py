import os
import logging
from typing import Optional, List
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEV_JWT_SECRET = "fallback-secret-for-development"
DEV_JWT_REFRESH_SECRET = "fallback-refresh-secret-for-development"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings:
    """Process-wide configuration, read from the environment once.

    Build a single instance at startup and hand it to the components that
    need it (`create_app` stores it on `app.state.settings`).
    """

    def __init__(self, **overrides):
        self.ENV: str = os.getenv("ENV", "development")
        self.APP_NAME: str = os.getenv("APP_NAME", "DSA Brother Bot")
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

        # Database
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./dsa_brother_bot.db")
        self.DATABASE_ECHO: bool = _env_bool("DATABASE_ECHO", "False")
        self.DATABASE_POOL_SIZE: int = int(os.getenv("DATABASE_POOL_SIZE", 20))
        self.DATABASE_MAX_OVERFLOW: int = int(os.getenv("DATABASE_MAX_OVERFLOW", 10))

        # JWT / Security
        self.JWT_SECRET: Optional[str] = os.getenv("JWT_SECRET")
        self.JWT_REFRESH_SECRET: Optional[str] = os.getenv("JWT_REFRESH_SECRET")
        self.JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE: str = os.getenv("JWT_EXPIRE", "15m")
        self.JWT_REFRESH_EXPIRE: str = os.getenv("JWT_REFRESH_EXPIRE", "7d")

        # Login reports "Account is deactivated" for inactive users when true
        self.LOGIN_REVEAL_INACTIVE: bool = _env_bool("LOGIN_REVEAL_INACTIVE", "True")

        # Sessions
        self.SESSION_RETENTION_DAYS: int = int(os.getenv("SESSION_RETENTION_DAYS", 30))

        # Frontend / CORS
        self.FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:5173")
        self.BACKEND_CORS_ORIGINS: Optional[str] = os.getenv("BACKEND_CORS_ORIGINS")

        # Rate Limiting
        self.RATE_LIMIT_ENABLED: bool = _env_bool("RATE_LIMIT_ENABLED", "True")
        self.RATE_LIMIT_REQUESTS: int = int(os.getenv("RATE_LIMIT_REQUESTS", 100))
        self.RATE_LIMIT_PERIOD_SECONDS: int = int(os.getenv("RATE_LIMIT_PERIOD_SECONDS", 900))

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)

        self._validate()

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    @property
    def cors_origins(self) -> List[str]:
        origins = [self.FRONTEND_URL] if self.FRONTEND_URL else []
        if self.BACKEND_CORS_ORIGINS:
            origins.extend(o.strip() for o in self.BACKEND_CORS_ORIGINS.split(",") if o.strip())
        return origins

    def _validate(self) -> None:
        missing = [
            name for name in ("JWT_SECRET", "JWT_REFRESH_SECRET")
            if not getattr(self, name)
        ]
        if not missing:
            return
        if self.is_production:
            raise RuntimeError(
                "Missing required environment variables: " + ", ".join(missing)
            )
        logger.warning(
            "Missing %s; using development fallback secrets", ", ".join(missing)
        )
        if not self.JWT_SECRET:
            self.JWT_SECRET = DEV_JWT_SECRET
        if not self.JWT_REFRESH_SECRET:
            self.JWT_REFRESH_SECRET = DEV_JWT_REFRESH_SECRET


settings = Settings()
