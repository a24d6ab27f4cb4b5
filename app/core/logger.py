"""Logging setup shared by the API server and the CLI."""
import logging
import logging.config
from typing import Optional

_configured = False


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging once; later calls only adjust the level."""
    global _configured
    if level is None:
        from app.core.config import settings
        level = settings.LOG_LEVEL
    level = level.upper()

    if _configured:
        logging.getLogger().setLevel(level)
        return

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
        },
        "root": {"handlers": ["console"], "level": level},
        "loggers": {
            "uvicorn.access": {"level": "WARNING"},
            "sqlalchemy.engine": {"level": "WARNING"},
        },
    })
    _configured = True
