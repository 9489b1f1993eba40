import os

# Configure before anything imports fintrack.config
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-the-fintrack-suite")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fintrack.db.core import Base, get_db
from fintrack.db.reference_data import seed_reference_data
from fintrack.main import app


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    seed_reference_data(session)
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db_session):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, username="alice", email=None, password="secret123"):
    response = client.post("/auth/register", json={
        "username": username,
        "email": email or f"{username}@example.com",
        "password": password,
    })
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture()
def auth_headers(client):
    token = register(client)["token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def other_headers(client):
    token = register(client, username="bob")["token"]
    return {"Authorization": f"Bearer {token}"}


def create_account(client, headers, name="Checking", account_type="Checking", initial_balance="0"):
    response = client.post("/accounts/", headers=headers, json={
        "account_name": name,
        "account_type": account_type,
        "initial_balance": initial_balance,
    })
    assert response.status_code == 201, response.text
    return response.json()


def create_transaction(client, headers, account_id, transaction_type, amount, **extra):
    payload = {"account_id": account_id, "transaction_type": transaction_type, "amount": amount}
    payload.update(extra)
    response = client.post("/transactions/", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def category_named(client, headers, name):
    response = client.get("/categories/", headers=headers)
    return next(c for c in response.json() if c["category_name"] == name)


def read_account(client, headers, account_id):
    response = client.get(f"/accounts/{account_id}", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()
