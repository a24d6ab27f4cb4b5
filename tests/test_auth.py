"""Integration tests for authentication routes."""
from datetime import timedelta

from httpx import ASGITransport, AsyncClient

from app.core.config import Settings
from app.core.constants import TokenKind
from app.main import create_app
from app.models.session import UserSession
from app.models.user import User
from app.services.user_service import UserService
from app.utils.helpers import utcnow

GEMINI_KEY = "AIza" + "A" * 35


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def test_register_returns_user_and_tokens(async_client):
    payload = {"email": "New.User@Example.com", "password": "secret123", "name": "New User"}
    r = await async_client.post("/api/auth/register", json=payload)

    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["message"] == "User registered successfully"
    data = body["data"]
    assert data["user"]["email"] == "new.user@example.com"
    assert data["user"]["name"] == "New User"
    assert data["user"]["lastLogin"] is not None
    assert "passwordHash" not in data["user"]
    assert data["accessToken"] and data["refreshToken"]
    assert data["expiresIn"] == "15m"
    assert r.cookies.get("token") == data["accessToken"]
    assert r.cookies.get("refreshToken") == data["refreshToken"]


async def test_register_duplicate_email_conflicts(async_client, register_user):
    await register_user(email="dup@example.com")
    r = await async_client.post(
        "/api/auth/register",
        json={"email": "DUP@example.com", "password": "secret123", "name": "Someone Else"},
    )
    assert r.status_code == 409
    assert r.json() == {
        "success": False,
        "message": "User already exists with this email",
        "data": None,
    }


async def test_register_validation_errors_are_field_level(async_client, db_session):
    r = await async_client.post(
        "/api/auth/register",
        json={"email": "not-an-email", "password": "123", "name": "X"},
    )
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    fields = {e["field"] for e in body["errors"]}
    assert {"email", "password", "name"} <= fields
    assert db_session.query(User).count() == 0


async def test_register_rejects_malformed_gemini_key(async_client):
    r = await async_client.post(
        "/api/auth/register",
        json={"email": "key@example.com", "password": "secret123", "name": "Key User", "geminiApiKey": "nope"},
    )
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "geminiApiKey"


async def test_login_success_opens_a_new_session(async_client, register_user, db_session):
    await register_user()
    r = await async_client.post("/api/auth/login", json={"email": "ALICE@example.com", "password": "secret123"})

    assert r.status_code == 200
    assert r.json()["message"] == "Login successful"
    assert db_session.query(UserSession).count() == 2


async def test_login_failures_are_indistinguishable(async_client, register_user):
    await register_user()
    wrong_password = await async_client.post(
        "/api/auth/login", json={"email": "alice@example.com", "password": "wrong-pass"}
    )
    unknown_email = await async_client.post(
        "/api/auth/login", json={"email": "nobody@example.com", "password": "secret123"}
    )

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()
    assert wrong_password.json()["message"] == "Invalid email or password"


async def test_login_inactive_account(async_client, register_user, db_session):
    data = await register_user()
    user = UserService.get_by_id(db_session, data["user"]["id"])
    UserService.set_active(db_session, user, False)

    r = await async_client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    assert r.status_code == 401
    assert r.json()["message"] == "Account is deactivated"


async def test_login_inactive_account_can_hide_status(register_user, db_session, engine):
    data = await register_user()
    user = UserService.get_by_id(db_session, data["user"]["id"])
    UserService.set_active(db_session, user, False)

    app = create_app(Settings(LOGIN_REVEAL_INACTIVE=False), engine=engine)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        r = await client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid email or password"


async def test_me_requires_token(async_client):
    r = await async_client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json()["message"] == "Access denied. No token provided."


async def test_me_rejects_garbage_token(async_client):
    r = await async_client.get("/api/auth/me", headers=auth_header("garbage"))
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid token."


async def test_me_reports_expired_token(async_client, register_user, app):
    data = await register_user()
    expired = app.state.token_issuer.issue_token(data["user"]["id"], TokenKind.ACCESS, ttl_ms=-60_000)

    r = await async_client.get("/api/auth/me", headers=auth_header(expired))
    assert r.status_code == 401
    assert r.json()["message"] == "Token expired."


async def test_valid_signature_without_session_is_rejected(async_client, register_user, app):
    data = await register_user()
    orphan = app.state.token_issuer.issue_token(data["user"]["id"], TokenKind.ACCESS)

    r = await async_client.get("/api/auth/me", headers=auth_header(orphan))
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid or expired session."


async def test_refresh_token_is_not_accepted_as_access(async_client, register_user):
    data = await register_user()
    r = await async_client.get("/api/auth/me", headers=auth_header(data["refreshToken"]))
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid token."


async def test_refresh_rotates_the_pair(async_client, register_user):
    data = await register_user()
    r = await async_client.post("/api/auth/refresh", json={"refreshToken": data["refreshToken"]})

    assert r.status_code == 200
    fresh = r.json()["data"]
    assert r.json()["message"] == "Token refreshed successfully"
    assert fresh["accessToken"] != data["accessToken"]
    assert fresh["refreshToken"] != data["refreshToken"]
    assert fresh["expiresIn"] == "15m"
    async_client.cookies.clear()

    # old pair is dead
    r = await async_client.post("/api/auth/refresh", json={"refreshToken": data["refreshToken"]})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid or expired refresh token."
    r = await async_client.get("/api/auth/me", headers=auth_header(data["accessToken"]))
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid or expired session."

    # new pair is live
    r = await async_client.get("/api/auth/me", headers=auth_header(fresh["accessToken"]))
    assert r.status_code == 200


async def test_refresh_error_messages(async_client, register_user, app):
    data = await register_user()

    r = await async_client.post("/api/auth/refresh", json={})
    assert r.status_code == 401
    assert r.json()["message"] == "Refresh token is required."

    r = await async_client.post("/api/auth/refresh", json={"refreshToken": data["accessToken"]})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid refresh token."

    expired = app.state.token_issuer.issue_token(data["user"]["id"], TokenKind.REFRESH, ttl_ms=-60_000)
    r = await async_client.post("/api/auth/refresh", json={"refreshToken": expired})
    assert r.status_code == 401
    assert r.json()["message"] == "Refresh token expired."


async def test_logout_revokes_only_current_session(async_client, register_user, login_user):
    first = await register_user()
    second = await login_user()

    r = await async_client.post("/api/auth/logout", headers=auth_header(first["accessToken"]))
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Logout successful", "data": None}
    cleared = r.headers.get_list("set-cookie")
    assert any(c.startswith("token=") and "Max-Age=0" in c for c in cleared)
    assert any(c.startswith("refreshToken=") and "Max-Age=0" in c for c in cleared)
    async_client.cookies.clear()

    r = await async_client.get("/api/auth/me", headers=auth_header(first["accessToken"]))
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid or expired session."
    r = await async_client.post("/api/auth/refresh", json={"refreshToken": first["refreshToken"]})
    assert r.status_code == 401

    r = await async_client.get("/api/auth/me", headers=auth_header(second["accessToken"]))
    assert r.status_code == 200


async def test_logout_all_revokes_every_session_of_the_user(async_client, register_user, login_user):
    first = await register_user()
    second = await login_user()
    bob = await register_user(email="bob@example.com", name="Bob Jones")

    r = await async_client.post("/api/auth/logout-all", headers=auth_header(second["accessToken"]))
    assert r.status_code == 200
    assert r.json()["data"] == {"count": 2}
    async_client.cookies.clear()

    for token in (first["accessToken"], second["accessToken"]):
        r = await async_client.get("/api/auth/me", headers=auth_header(token))
        assert r.status_code == 401
    r = await async_client.get("/api/auth/me", headers=auth_header(bob["accessToken"]))
    assert r.status_code == 200


async def test_inactive_user_token_poisons_session(async_client, register_user, db_session):
    data = await register_user()
    user = UserService.get_by_id(db_session, data["user"]["id"])
    UserService.set_active(db_session, user, False)

    r = await async_client.get("/api/auth/me", headers=auth_header(data["accessToken"]))
    assert r.status_code == 401
    assert r.json()["message"] == "User account is inactive."

    # reactivation does not resurrect the session
    UserService.set_active(db_session, user, True)
    r = await async_client.get("/api/auth/me", headers=auth_header(data["accessToken"]))
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid or expired session."

    db_session.expire_all()
    session = db_session.query(UserSession).one()
    assert session.revoked_reason == "user_inactive"


async def test_refresh_for_inactive_user_revokes_session(async_client, register_user, db_session):
    data = await register_user()
    user = UserService.get_by_id(db_session, data["user"]["id"])
    UserService.set_active(db_session, user, False)

    r = await async_client.post("/api/auth/refresh", json={"refreshToken": data["refreshToken"]})
    assert r.status_code == 401
    assert r.json()["message"] == "User account is inactive."

    db_session.expire_all()
    session = db_session.query(UserSession).one()
    assert session.is_active is False
    assert session.revoked_reason == "user_inactive"

    UserService.set_active(db_session, user, True)
    r = await async_client.post("/api/auth/refresh", json={"refreshToken": data["refreshToken"]})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid or expired refresh token."


async def test_sessions_lists_live_sessions_and_marks_current(async_client, register_user, login_user):
    await register_user()
    current = await login_user(user_agent="pytest-browser")

    r = await async_client.get("/api/auth/sessions", headers=auth_header(current["accessToken"]))
    assert r.status_code == 200
    sessions = r.json()["data"]["sessions"]
    assert len(sessions) == 2
    assert [s["isCurrent"] for s in sessions].count(True) == 1
    current_row = next(s for s in sessions if s["isCurrent"])
    assert current_row["userAgent"] == "pytest-browser"
    assert {"id", "createdAt", "expiresAt", "ipAddress"} <= set(current_row)


async def test_end_to_end_session_lifecycle(async_client):
    r = await async_client.post(
        "/api/auth/register",
        json={"email": "flow@example.com", "password": "secret123", "name": "Flow User"},
    )
    assert r.status_code == 201
    async_client.cookies.clear()
    tokens = r.json()["data"]

    r = await async_client.get("/api/auth/me", headers=auth_header(tokens["accessToken"]))
    assert r.status_code == 200
    assert r.json()["data"]["user"]["email"] == "flow@example.com"

    r = await async_client.post("/api/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert r.status_code == 200
    async_client.cookies.clear()
    rotated = r.json()["data"]

    r = await async_client.get("/api/auth/me", headers=auth_header(rotated["accessToken"]))
    assert r.status_code == 200

    r = await async_client.post("/api/auth/logout", headers=auth_header(rotated["accessToken"]))
    assert r.status_code == 200
    async_client.cookies.clear()

    r = await async_client.get("/api/auth/me", headers=auth_header(rotated["accessToken"]))
    assert r.status_code == 401
    r = await async_client.post("/api/auth/refresh", json={"refreshToken": rotated["refreshToken"]})
    assert r.status_code == 401


async def test_update_profile(async_client, register_user):
    data = await register_user()
    headers = auth_header(data["accessToken"])

    r = await async_client.put(
        "/api/auth/profile",
        json={"name": "Alice Cooper", "avatar": "https://example.com/a.png", "geminiApiKey": GEMINI_KEY},
        headers=headers,
    )
    assert r.status_code == 200
    user = r.json()["data"]["user"]
    assert user["name"] == "Alice Cooper"
    assert user["avatar"] == "https://example.com/a.png"
    assert "geminiApiKey" not in user

    r = await async_client.get("/api/auth/profile/chat", headers=headers)
    assert r.status_code == 200
    assert r.json()["data"]["user"]["geminiApiKey"] == GEMINI_KEY


async def test_update_profile_email_conflict(async_client, register_user):
    await register_user(email="taken@example.com", name="Taken User")
    data = await register_user()

    r = await async_client.put(
        "/api/auth/profile",
        json={"email": "Taken@example.com"},
        headers=auth_header(data["accessToken"]),
    )
    assert r.status_code == 409
    assert r.json()["message"] == "Email is already in use"


async def test_update_profile_validates_name(async_client, register_user):
    data = await register_user()
    r = await async_client.put(
        "/api/auth/profile",
        json={"name": "R2-D2"},
        headers=auth_header(data["accessToken"]),
    )
    assert r.status_code == 400
    assert r.json()["errors"] == [{"field": "name", "message": "Name can only contain letters and spaces"}]


async def test_session_expiry_denies_unexpired_jwt(async_client, register_user, db_session):
    data = await register_user()
    session = db_session.query(UserSession).one()
    session.expires_at = utcnow() - timedelta(seconds=1)
    db_session.commit()

    r = await async_client.get("/api/auth/me", headers=auth_header(data["accessToken"]))
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid or expired session."


async def test_register_me_logout_scenario(async_client, db_session):
    r = await async_client.post(
        "/api/auth/register",
        json={"email": "a@example.com", "password": "Secret123", "name": "Alice"},
        headers={"User-Agent": "scenario-agent"},
    )
    assert r.status_code == 201
    async_client.cookies.clear()
    token = r.json()["data"]["accessToken"]

    session = db_session.query(UserSession).one()
    assert session.user_agent == "scenario-agent"
    assert session.ip_address == "127.0.0.1"

    r = await async_client.get("/api/auth/me", headers=auth_header(token))
    assert r.status_code == 200
    assert r.json()["data"]["user"]["email"] == "a@example.com"

    r = await async_client.post("/api/auth/logout", headers=auth_header(token))
    assert r.status_code == 200
    async_client.cookies.clear()

    r = await async_client.get("/api/auth/me", headers=auth_header(token))
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid or expired session."
