"""
Authentication system tests.
===========================

Password hashing, JWT creation/verification and the session endpoints
(/api/auth/me, /refresh, /logout).
"""

from skillweave.core.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
    verify_token,
)

from conftest import signin, signup


def _session(client, email="jane@example.com"):
    signup(client, email)
    return signin(client, email).json()["data"]["session"]


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_password_hashing():
    """Test password hashing and verification."""
    password = "TestPassword123!"
    hashed = hash_password(password)

    # Hash should be different from original
    assert hashed != password
    assert hashed.startswith("$2")

    assert verify_password(password, hashed) is True
    assert verify_password("wrong_password", hashed) is False


def test_verify_password_bad_hash():
    assert verify_password("secret", None) is False
    assert verify_password("secret", "not-a-bcrypt-hash") is False


def test_jwt_token_creation():
    """Test JWT token creation and verification."""
    token = create_access_token("user-1", session_token="abc")

    payload = verify_token(token, "access")
    assert payload is not None
    assert payload["sub"] == "user-1"
    assert payload["type"] == "access"
    assert payload["sid"] == "abc"


def test_jwt_token_verification():
    """Invalid tokens and tokens of the wrong type are rejected."""
    assert verify_token("invalid.token.here", "access") is None

    assert verify_token(create_access_token("user-1"), "refresh") is None
    assert verify_token(create_refresh_token("user-1"), "access") is None


def test_expired_token_rejected():
    token = create_access_token("user-1", expires_minutes=-1)
    assert verify_token(token, "access") is None


def test_me_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Not authenticated"}


def test_me_with_invalid_token(client):
    response = client.get("/api/auth/me", headers=_bearer("invalid.token.here"))
    assert response.status_code == 401


def test_me_returns_current_user(client):
    session = _session(client)
    response = client.get("/api/auth/me", headers=_bearer(session["access_token"]))

    assert response.status_code == 200
    assert response.json()["data"]["user"]["email"] == "jane@example.com"


def test_refresh_issues_new_access_token(client):
    session = _session(client)

    response = client.post("/api/auth/refresh", json={"refresh_token": session["refresh_token"]})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["token_type"] == "bearer"

    me = client.get("/api/auth/me", headers=_bearer(data["access_token"]))
    assert me.status_code == 200


def test_refresh_rejects_access_token(client):
    session = _session(client)
    response = client.post("/api/auth/refresh", json={"refresh_token": session["access_token"]})
    assert response.status_code == 401


def test_logout_invalidates_session(client):
    """After logout neither the access nor the refresh token works."""
    session = _session(client)
    headers = _bearer(session["access_token"])

    response = client.post("/api/auth/logout", headers=headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Logged out successfully"

    me = client.get("/api/auth/me", headers=headers)
    assert me.status_code == 401
    assert me.json()["message"] == "Session has been signed out"

    refresh = client.post("/api/auth/refresh", json={"refresh_token": session["refresh_token"]})
    assert refresh.status_code == 401


def test_logout_keeps_other_sessions(client):
    first = _session(client)
    second = signin(client, "jane@example.com").json()["data"]["session"]

    client.post("/api/auth/logout", headers=_bearer(first["access_token"]))

    assert client.get("/api/auth/me", headers=_bearer(second["access_token"])).status_code == 200


def test_logout_all_sessions(client):
    first = _session(client)
    second = signin(client, "jane@example.com").json()["data"]["session"]

    response = client.post("/api/auth/logout?all=true", headers=_bearer(first["access_token"]))
    assert response.status_code == 200
    assert response.json()["data"]["sessions_closed"] == 2

    assert client.get("/api/auth/me", headers=_bearer(second["access_token"])).status_code == 401
