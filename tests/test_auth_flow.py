from fastapi.testclient import TestClient

from vista_api.core import config
from vista_api.core.database import get_db
from vista_api.main import app
from vista_api.services.auth import create_refresh_token
from tests.fixtures_data import DEFAULT_PASSWORD, auth_headers, build_session, make_user


def _build_client():
    db = build_session()
    app.dependency_overrides[get_db] = lambda: db
    return TestClient(app), db


def _set_cookies(response) -> str:
    return " ".join(response.headers.get_list("set-cookie"))


def test_admin_login_sets_cookies_and_returns_access():
    client, db = _build_client()
    make_user(db, email="ops@example.com", permissions=["events.read", "events.update"])

    response = client.post("/api/v1/admin/login", json={"email": " OPS@example.com ", "password": DEFAULT_PASSWORD})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Login successful"
    assert body["data"]["access_token"]
    assert body["data"]["refresh_token"]
    assert body["data"]["user"]["email"] == "ops@example.com"
    assert body["data"]["user"]["permissions"] == ["events.read", "events.update"]
    assert "password_hash" not in body["data"]["user"]
    cookies = _set_cookies(response)
    assert "accessToken=" in cookies
    assert "refreshToken=" in cookies
    assert "Path=/api/v1/auth/refresh" in cookies


def test_login_rejects_missing_credentials():
    client, _ = _build_client()

    response = client.post("/api/v1/auth/login", json={})

    assert response.status_code == 400
    assert response.json()["message"] == "Please provide email and password"


def test_login_on_wrong_portal_is_forbidden():
    client, db = _build_client()
    make_user(db, email="traveller@example.com", account_type="customer")

    response = client.post(
        "/api/v1/admin/login",
        json={"email": "traveller@example.com", "password": DEFAULT_PASSWORD},
    )

    assert response.status_code == 403
    assert response.json()["error"] == "ACCOUNT_TYPE_MISMATCH"


def test_unified_login_accepts_any_account_type():
    client, db = _build_client()
    make_user(db, email="traveller@example.com", account_type="customer")

    response = client.post(
        "/api/v1/auth/login",
        json={"email": "traveller@example.com", "password": DEFAULT_PASSWORD},
    )

    assert response.status_code == 200
    assert response.json()["data"]["user"]["account_type"] == "customer"


def test_repeated_failures_lock_the_account(monkeypatch):
    monkeypatch.setattr(config, "LOGIN_MAX_FAILED_ATTEMPTS", 2)
    client, db = _build_client()
    make_user(db, email="ops@example.com")

    first = client.post("/api/v1/admin/login", json={"email": "ops@example.com", "password": "wrong-password"})
    second = client.post("/api/v1/admin/login", json={"email": "ops@example.com", "password": "wrong-password"})
    third = client.post("/api/v1/admin/login", json={"email": "ops@example.com", "password": DEFAULT_PASSWORD})

    assert first.status_code == 401
    assert first.json()["error"] == "INVALID_CREDENTIALS"
    assert second.status_code == 429
    assert third.status_code == 429
    assert third.json()["error"] == "TOO_MANY_ATTEMPTS"


def test_me_returns_current_user_from_bearer_token():
    client, db = _build_client()
    user = make_user(db, email="ops@example.com", permissions=["activities.read"])

    response = client.get("/api/v1/auth/me", headers=auth_headers(user))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email"] == "ops@example.com"
    assert data["permissions"] == ["activities.read"]
    assert data["profile"]["full_name"] == "Test Admin"


def test_me_accepts_access_cookie():
    client, db = _build_client()
    make_user(db, email="ops@example.com")
    client.post("/api/v1/admin/login", json={"email": "ops@example.com", "password": DEFAULT_PASSWORD})

    response = client.get("/api/v1/auth/me")

    assert response.status_code == 200
    assert response.json()["data"]["email"] == "ops@example.com"


def test_expired_token_is_rejected():
    client, db = _build_client()
    user = make_user(db, email="ops@example.com")

    response = client.get("/api/v1/auth/me", headers=auth_headers(user, expires_minutes=-1))

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid or expired token", "error": "INVALID_TOKEN"}
    assert response.headers["www-authenticate"] == "Bearer"


def test_missing_token_is_rejected():
    client, _ = _build_client()

    response = client.get("/api/v1/admin/activities")

    assert response.status_code == 401
    assert response.json()["error"] == "AUTH_REQUIRED"


def test_inactive_user_token_is_rejected():
    client, db = _build_client()
    user = make_user(db, email="gone@example.com", is_active=False)

    response = client.get("/api/v1/auth/me", headers=auth_headers(user))

    assert response.status_code == 401
    assert response.json()["error"] == "USER_NOT_FOUND"


def test_refresh_issues_new_access_token():
    client, db = _build_client()
    user = make_user(db, email="ops@example.com")

    response = client.post("/api/v1/auth/refresh", json={"refresh_token": create_refresh_token(user.id)})

    assert response.status_code == 200
    assert response.json()["data"]["access_token"]
    assert "accessToken=" in _set_cookies(response)


def test_invalid_refresh_token_clears_cookies():
    client, _ = _build_client()

    response = client.post("/api/v1/auth/refresh", json={"refresh_token": "garbage"})

    assert response.status_code == 401
    assert response.json()["error"] == "INVALID_REFRESH_TOKEN"
    cookies = _set_cookies(response)
    assert 'accessToken=""' in cookies or "accessToken=;" in cookies
    assert "Max-Age=0" in cookies


def test_refresh_without_token_is_rejected():
    client, _ = _build_client()

    response = client.post("/api/v1/auth/refresh")

    assert response.status_code == 401
    assert response.json()["error"] == "REFRESH_TOKEN_REQUIRED"


def test_access_token_cannot_be_used_as_refresh_token():
    client, db = _build_client()
    user = make_user(db, email="ops@example.com")
    access = auth_headers(user)["Authorization"].removeprefix("Bearer ")

    response = client.post("/api/v1/auth/refresh", json={"refresh_token": access})

    assert response.status_code == 401


def test_customer_is_denied_admin_and_merchant_routes():
    client, db = _build_client()
    customer = make_user(db, email="traveller@example.com", account_type="customer")
    headers = auth_headers(customer)

    admin_response = client.get("/api/v1/admin/activities", headers=headers)
    merchant_response = client.get("/api/v1/merchants/homestays", headers=headers)
    roles_response = client.get("/api/v1/admin/roles", headers=headers)

    assert admin_response.status_code == 403
    assert admin_response.json()["error"] == "INSUFFICIENT_PERMISSIONS"
    assert merchant_response.status_code == 403
    assert merchant_response.json()["error"] == "ACCOUNT_TYPE_FORBIDDEN"
    assert roles_response.status_code == 403


def test_change_password_then_login_with_new_password(monkeypatch):
    monkeypatch.setattr(config, "BCRYPT_ROUNDS", 4)
    client, db = _build_client()
    user = make_user(db, email="ops@example.com")
    headers = auth_headers(user)

    wrong = client.post(
        "/api/v1/auth/change-password",
        json={"current_password": "nope", "new_password": "BrandNew123!"},
        headers=headers,
    )
    changed = client.post(
        "/api/v1/auth/change-password",
        json={"current_password": DEFAULT_PASSWORD, "new_password": "BrandNew123!"},
        headers=headers,
    )
    login = client.post("/api/v1/admin/login", json={"email": "ops@example.com", "password": "BrandNew123!"})

    assert wrong.status_code == 400
    assert changed.status_code == 200
    assert login.status_code == 200


def test_logout_clears_cookies():
    client, _ = _build_client()

    response = client.post("/api/v1/auth/logout")

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Logged out successfully"}
    assert "accessToken=" in _set_cookies(response)


def test_oauth_token_endpoint_answers_plain_shape():
    client, db = _build_client()
    make_user(db, email="ops@example.com")

    response = client.post(
        "/api/v1/auth/token",
        data={"username": "ops@example.com", "password": DEFAULT_PASSWORD},
    )

    assert response.status_code == 200
    assert set(response.json()) == {"access_token", "token_type"}
