from datetime import datetime, timedelta, timezone

import jwt

from fintrack.config import get_settings
from fintrack.db.reference_data import TEMPLATE_CATEGORIES
from tests.conftest import register


def test_root_and_health(client):
    assert client.get("/").json() == "Server is running."
    health = client.get("/health").json()
    assert health["status"] == "OK"


def test_register_returns_token_and_user(client):
    body = register(client, username="carol", email="Carol@Example.com")
    assert body["message"] == "User registered successfully"
    assert body["token"]
    assert body["user"]["username"] == "carol"
    assert body["user"]["email"] == "carol@example.com"
    assert "password_hash" not in body["user"]


def test_register_copies_template_categories(client):
    token = register(client)["token"]
    categories = client.get("/categories/", headers={"Authorization": f"Bearer {token}"}).json()

    expected = sum(len(names) for names in TEMPLATE_CATEGORIES.values())
    assert len(categories) == expected
    assert all(c["user_id"] is not None for c in categories)
    assert {c["category_type"] for c in categories} == {"Income", "Expense"}


def test_duplicate_email_and_username_conflict(client):
    register(client, username="alice", email="alice@example.com")

    same_email = client.post("/auth/register", json={
        "username": "alice2", "email": "alice@example.com", "password": "secret123",
    })
    assert same_email.status_code == 409
    assert same_email.json() == {"error": "Email already registered"}

    same_username = client.post("/auth/register", json={
        "username": "alice", "email": "other@example.com", "password": "secret123",
    })
    assert same_username.status_code == 409
    assert same_username.json() == {"error": "Username already taken"}


def test_register_validation(client):
    response = client.post("/auth/register", json={
        "username": "no spaces", "email": "not-an-email", "password": "123",
    })
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert {d["loc"][-1] for d in body["details"]} == {"username", "email", "password"}


def test_login(client):
    register(client)

    ok = client.post("/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    assert ok.status_code == 200
    assert ok.json()["message"] == "Login successful"
    assert ok.json()["user"]["username"] == "alice"

    wrong = client.post("/auth/login", json={"email": "alice@example.com", "password": "nope"})
    assert wrong.status_code == 401
    assert wrong.json() == {"error": "Invalid email or password"}

    unknown = client.post("/auth/login", json={"email": "ghost@example.com", "password": "secret123"})
    assert unknown.status_code == 401


def test_missing_token_is_401(client):
    response = client.get("/accounts/")
    assert response.status_code == 401
    assert response.json() == {"error": "Access token required"}


def test_malformed_token_is_403(client):
    response = client.get("/accounts/", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 403
    assert response.json() == {"error": "Invalid or expired token"}


def test_expired_token_is_403(client):
    settings = get_settings()
    user_id = register(client)["user"]["user_id"]
    expired = jwt.encode(
        {"sub": str(user_id), "exp": datetime.now(tz=timezone.utc) - timedelta(minutes=1)},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    response = client.get("/accounts/", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 403


def test_token_signed_with_other_secret_is_403(client):
    user_id = register(client)["user"]["user_id"]
    forged = jwt.encode({"sub": str(user_id)}, "a-different-secret-key-of-decent-length", algorithm="HS256")
    response = client.get("/accounts/", headers={"Authorization": f"Bearer {forged}"})
    assert response.status_code == 403


def test_token_for_unknown_user_is_401(client):
    settings = get_settings()
    token = jwt.encode({"sub": "9999"}, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    response = client.get("/accounts/", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json() == {"error": "User not found"}
