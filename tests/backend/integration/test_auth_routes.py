import pytest

from app.config import settings
from app.models import Account


pytestmark = pytest.mark.asyncio


async def register_user(client, email: str, password: str, confirmation: str | None = None):
    return await client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": password, "password_confirmation": confirmation or password},
    )


async def login_user(client, email: str, password: str, remember: bool = False):
    return await client.post(
        "/api/v1/auth/login",
        json={"email": email, "password": password, "remember": remember},
    )


async def test_register_and_login_flow(client):
    email = "gina@example.com"
    password = "StrongPass!23"

    resp = await register_user(client, email, password)
    body = resp.json()
    assert resp.status_code == 201
    assert body["success"] is True
    assert body["user"]["email"] == email
    assert body["user"]["role"] == "user"
    assert "view_events" in body["user"]["permissions"]
    assert body["redirect_url"] == "/dashboard"

    # Duplicate email (any casing) should fail validation
    dup_resp = await register_user(client, "GINA@example.com", password)
    dup_body = dup_resp.json()
    assert dup_resp.status_code == 422
    assert dup_body["success"] is False
    assert "email" in dup_body["errors"]

    # Successful login
    login_resp = await login_user(client, email, password)
    login_body = login_resp.json()
    assert login_resp.status_code == 200
    assert login_body["success"] is True
    assert login_body["token"]
    assert login_body["user"]["active"] is True
    assert login_body["user"]["suspended"] is False
    assert login_body["user"]["auth_provider"] == "password"
    assert login_body["user"]["password_set_by_user"] is True
    assert settings.session_cookie_name in login_resp.cookies

    # Invalid password
    bad_login = await login_user(client, email, "wrong-password")
    assert bad_login.status_code == 401
    assert bad_login.json()["reason"] == "invalid_credentials"


async def test_register_validation(client):
    short = await register_user(client, "hal@example.com", "short")
    assert short.status_code == 422
    assert "password" in short.json()["errors"]

    mismatch = await register_user(client, "hal@example.com", "LongEnough#1", "LongEnough#2")
    assert mismatch.status_code == 422

    bad_email = await register_user(client, "not-an-email", "LongEnough#1")
    body = bad_email.json()
    assert bad_email.status_code == 422
    assert body["reason"] == "validation"
    assert "email" in body["errors"]


async def test_unknown_email_and_wrong_password_are_indistinguishable(client, create_account):
    account, _ = await create_account()
    unknown = await login_user(client, "nobody@example.com", "whatever1")
    wrong = await login_user(client, account.email, "whatever1")
    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json()


async def test_inactive_login_needs_reactivation(client, create_account):
    account, password = await create_account(active=False)

    resp = await login_user(client, account.email, password)
    body = resp.json()

    assert resp.status_code == 403
    assert body["success"] is False
    assert body["needs_reactivation"] is True
    assert body["redirect_url"] == "/reactivate"
    assert body["email"] == account.email
    assert settings.session_cookie_name not in resp.cookies


async def test_suspended_login(client, create_account):
    account, password = await create_account(suspended=True)
    resp = await login_user(client, account.email, password)
    assert resp.status_code == 403
    assert resp.json()["reason"] == "suspended"
    assert resp.json()["suspended"] is True


async def test_check_and_logout(client, create_account, auth_header_factory):
    account, password = await create_account()

    anonymous = await client.get("/api/v1/auth/check")
    assert anonymous.status_code == 200
    assert anonymous.json() == {"authenticated": False}

    headers = await auth_header_factory(account.email, password)
    check = await client.get("/api/v1/auth/check", headers=headers)
    assert check.json()["authenticated"] is True
    assert check.json()["user"]["id"] == account.id

    logout = await client.post("/api/v1/auth/logout", headers=headers)
    assert logout.status_code == 200
    assert logout.json()["success"] is True

    # Logging out twice is fine, and the token is dead server-side
    again = await client.post("/api/v1/auth/logout", headers=headers)
    assert again.status_code == 200
    after = await client.get("/api/v1/auth/check", headers=headers)
    assert after.json() == {"authenticated": False}


async def test_session_cookie_authenticates(client, create_account):
    account, password = await create_account()
    resp = await login_user(client, account.email, password)
    token = resp.cookies[settings.session_cookie_name]

    client.cookies.set(settings.session_cookie_name, token)
    check = await client.get("/api/v1/auth/check")
    assert check.json()["authenticated"] is True


async def test_idle_session_expires(client, create_account, auth_header_factory, clock):
    account, password = await create_account()
    headers = await auth_header_factory(account.email, password)

    clock.advance(minutes=settings.session_ttl_minutes + 1)

    resp = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": password, "password": "Another#123", "password_confirmation": "Another#123"},
        headers=headers,
    )
    assert resp.status_code == 401
    assert resp.json()["reason"] == "unauthenticated"


async def test_change_password(client, create_account, auth_header_factory):
    account, password = await create_account()
    headers = await auth_header_factory(account.email, password)

    wrong = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": "nope", "password": "Another#123", "password_confirmation": "Another#123"},
        headers=headers,
    )
    assert wrong.status_code == 422
    assert "current_password" in wrong.json()["errors"]

    ok = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": password, "password": "Another#123", "password_confirmation": "Another#123"},
        headers=headers,
    )
    assert ok.status_code == 200

    # Old password should fail, new password succeeds
    assert (await login_user(client, account.email, password)).status_code == 401
    assert (await login_user(client, account.email, "Another#123")).status_code == 200


async def test_change_password_requires_session(client):
    resp = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": "a", "password": "Another#123", "password_confirmation": "Another#123"},
    )
    assert resp.status_code == 401
    assert resp.json()["message"] == "Unauthenticated."


async def test_set_initial_password_for_oauth_account(client, sessions):
    account = await sessions.provision_oauth_account("ivy@example.com")
    _, token = await sessions.start_session(account)
    headers = {"Authorization": f"Bearer {token}"}

    check = await client.get("/api/v1/auth/check", headers=headers)
    assert check.json()["user"]["password_set_by_user"] is False
    assert check.json()["user"]["auth_provider"] == "oauth"

    first = await client.post(
        "/api/v1/auth/set-initial-password",
        json={"password": "IvyPass#123", "password_confirmation": "IvyPass#123"},
        headers=headers,
    )
    assert first.status_code == 200
    assert first.json()["user"]["password_set_by_user"] is True

    second = await client.post(
        "/api/v1/auth/set-initial-password",
        json={"password": "IvyPass#456", "password_confirmation": "IvyPass#456"},
        headers=headers,
    )
    assert second.status_code == 400
    assert second.json()["reason"] == "password_already_set"

    assert (await login_user(client, "ivy@example.com", "IvyPass#123")).status_code == 200
    assert (await Account.get(id=account.id)).password_set_by_user is True


async def test_healthz(client):
    resp = await client.get("/healthz")
    assert resp.json() == {"ok": True}
