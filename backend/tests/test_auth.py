"""Tests for registration, login and token handling."""
from app.core.security import create_access_token, get_password_hash, verify_password


def register(api_client, email="carol@example.com", username="carol", password="testpass123"):
    return api_client.post(
        "/api/auth/register",
        json={"email": email, "username": username, "password": password},
    )


def test_password_hashing():
    hashed = get_password_hash("testpass123")
    assert hashed != "testpass123"
    assert verify_password("testpass123", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("testpass123", "not-a-bcrypt-hash")


def test_register_returns_tokens_and_user(api_client):
    r = register(api_client)

    assert r.status_code == 201
    body = r.json()
    assert body["token_type"] == "bearer"
    assert body["access_token"] and body["refresh_token"]
    assert body["user"]["username"] == "carol"
    assert "hashed_password" not in body["user"]


def test_duplicate_email_rejected(api_client):
    register(api_client)
    r = register(api_client, username="other")

    assert r.status_code == 400
    assert r.json() == {"success": False, "message": "Email already registered"}


def test_short_password_rejected(api_client):
    r = register(api_client, password="short")
    assert r.status_code == 400
    assert r.json()["message"].startswith("password:")


def test_login_and_me(api_client):
    register(api_client)

    r = api_client.post("/api/auth/login", json={"email": "carol@example.com", "password": "testpass123"})
    assert r.status_code == 200
    token = r.json()["access_token"]

    me = api_client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "carol@example.com"


def test_login_wrong_password(api_client):
    register(api_client)

    r = api_client.post("/api/auth/login", json={"email": "carol@example.com", "password": "nope12345"})

    assert r.status_code == 401
    assert r.json() == {"success": False, "message": "Invalid email or password"}


def test_refresh_issues_new_tokens(api_client):
    tokens = register(api_client).json()

    r = api_client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert r.status_code == 200
    assert r.json()["user"]["id"] == tokens["user"]["id"]


def test_access_token_cannot_refresh(api_client):
    tokens = register(api_client).json()

    r = api_client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert r.status_code == 401


def test_refresh_token_cannot_authenticate(api_client):
    tokens = register(api_client).json()

    r = api_client.get("/api/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})
    assert r.status_code == 401


def test_token_for_unknown_user(api_client):
    token = create_access_token({"sub": "ghost", "email": "ghost@example.com"})

    r = api_client.get("/api/images", headers={"Authorization": f"Bearer {token}"})

    assert r.status_code == 401
    assert r.json()["message"] == "User not found"


def test_garbage_token(api_client):
    r = api_client.get("/api/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid or expired token"
