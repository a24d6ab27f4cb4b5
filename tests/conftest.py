"""Pytest fixtures for async FastAPI testing.

Test environment defaults are set before any app module imports settings.
Every test runs against its own in-memory SQLite engine and gets an
`AsyncClient` bound to the app through `ASGITransport`.
"""
import os

os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-access-secret"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from httpx import ASGITransport, AsyncClient


@pytest.fixture(autouse=True)
def engine():
    """Fresh in-memory database with the schema created, one per test."""
    from app.core.config import Settings
    from app.core.database import Base, create_db_engine

    engine = create_db_engine(Settings())
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    from app.dependencies.rate_limit import limiter

    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def db_session(engine):
    """Yield a SQLAlchemy session for direct DB access in tests."""
    from app.core.database import create_session_factory

    db = create_session_factory(engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def app(engine):
    from app.main import create_app

    return create_app(engine=engine)


@pytest.fixture
async def async_client(app):
    """Provide an httpx AsyncClient configured with the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client


@pytest.fixture
def register_user(async_client):
    """Register through the API; returns the response `data`.

    Cookies set by the response are dropped so each test chooses how it
    presents credentials.
    """

    async def _register(email="alice@example.com", password="secret123", name="Alice Smith", **extra):
        payload = {"email": email, "password": password, "name": name, **extra}
        r = await async_client.post("/api/auth/register", json=payload)
        assert r.status_code == 201, r.text
        async_client.cookies.clear()
        return r.json()["data"]

    return _register


@pytest.fixture
def login_user(async_client):
    async def _login(email="alice@example.com", password="secret123", user_agent=None):
        headers = {"User-Agent": user_agent} if user_agent else {}
        r = await async_client.post(
            "/api/auth/login", json={"email": email, "password": password}, headers=headers
        )
        assert r.status_code == 200, r.text
        async_client.cookies.clear()
        return r.json()["data"]

    return _login
