"""Small CLI helpers wired to project scripts for developer convenience.

Usage (from project root):
  runserver --host=0.0.0.0 --port=8000 --no-reload
  run-tests
  migrate                 # defaults to `alembic upgrade head`
  init-env                # copies .env.example -> .env if missing
  cleanup-sessions        # deletes expired and long-revoked sessions
  session-stats           # prints session counters
"""
from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import List

logger = logging.getLogger("app.cli")


def _args() -> List[str]:
    return sys.argv[1:]


@contextmanager
def _db_session(settings):
    from app.core.database import create_db_engine, create_session_factory

    engine = create_db_engine(settings)
    db = create_session_factory(engine)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


def runserver() -> None:
    """Run Uvicorn programmatically. Accepts simple flags:

    --host=<host>  (default 127.0.0.1)
    --port=<port>  (default 8000)
    --no-reload    (disable auto-reload)
    --reload       (enable auto-reload)
    """
    import uvicorn

    host = "127.0.0.1"
    port = 8000
    reload = True

    for a in _args():
        if a.startswith("--host="):
            host = a.split("=", 1)[1]
        elif a.startswith("--port="):
            value = a.split("=", 1)[1]
            if not value.isdigit():
                sys.exit(f"Invalid port: {value}")
            port = int(value)
        elif a == "--no-reload":
            reload = False
        elif a == "--reload":
            reload = True

    print(f"Starting uvicorn on {host}:{port} (reload={reload})")
    uvicorn.run("app.main:app", host=host, port=port, reload=reload)


def run_tests() -> None:
    """Run pytest with any forwarded args."""
    cmd = ["pytest"] + _args()
    subprocess.run(cmd, check=True)


def run_migrations() -> None:
    """Run alembic. If no args provided, runs `alembic upgrade head`."""
    args = _args()
    cmd = ["alembic"] + args if args else ["alembic", "upgrade", "head"]
    subprocess.run(cmd, check=True)


def init_env() -> None:
    """Copy `.env.example` to `.env` if `.env` is missing."""
    root = Path(__file__).resolve().parents[1]
    src = root / ".env.example"
    dst = root / ".env"
    if dst.exists():
        print(f".env already exists at {dst}")
        return
    if not src.exists():
        print(f".env.example not found at {src}")
        return
    shutil.copy(src, dst)
    print(f"Created .env from .env.example at {dst}")


def cleanup_sessions() -> None:
    """Delete expired sessions and revoked ones past the retention window.

    --days=<n>  overrides SESSION_RETENTION_DAYS
    """
    from app.core.config import settings
    from app.core.logger import setup_logging
    from app.services.session_service import SessionStore

    setup_logging(settings.LOG_LEVEL)
    days = settings.SESSION_RETENTION_DAYS
    for a in _args():
        if a.startswith("--days="):
            days = int(a.split("=", 1)[1])

    with _db_session(settings) as db:
        removed = SessionStore.cleanup(db, retention_days=days)
    print(f"Removed {removed} sessions")


def session_stats() -> None:
    from app.core.config import settings
    from app.services.session_service import SessionStore

    with _db_session(settings) as db:
        stats = SessionStore.stats(db)
    for key, value in stats.items():
        print(f"{key}: {value}")


COMMANDS = {
    "runserver": runserver,
    "run-tests": run_tests,
    "migrate": run_migrations,
    "init-env": init_env,
    "cleanup-sessions": cleanup_sessions,
    "session-stats": session_stats,
}


if __name__ == "__main__":
    # Allow running the helpers directly: python -m app.cli runserver
    if len(sys.argv) <= 1:
        print(__doc__)
        sys.exit(0)
    cmd = sys.argv.pop(1)
    handler = COMMANDS.get(cmd)
    if handler is None:
        sys.exit(f"Unknown command: {cmd}")
    handler()
