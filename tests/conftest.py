# tests/conftest.py
import os

# Must be set before the app modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["IMGBB_API_KEY"] = "test-imgbb-key"

import pytest
from fastapi.testclient import TestClient

import models
from database import SessionLocal, engine
from main import app

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def fresh_db():
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(client):
    """Register and log in a user; returns (user, auth headers)."""
    counter = {"n": 0}

    def _make(name=None):
        counter["n"] += 1
        name = name or f"user{counter['n']}"
        email = f"{name}@example.com"
        resp = client.post("/auth/register", json={
            "name": name,
            "email": email,
            "password": PASSWORD,
            "password_confirmation": PASSWORD,
        })
        assert resp.status_code == 201, resp.text
        resp = client.post("/auth/login", json={"email": email, "password": PASSWORD})
        assert resp.status_code == 200, resp.text
        data = resp.json()
        return data["user"], {"Authorization": f"Bearer {data['access_token']}"}

    return _make


@pytest.fixture
def make_listing(client):
    def _make(headers, **overrides):
        payload = {
            "title": "Desk",
            "description": "Oak desk",
            "price": 50,
            "category": "Home & Furniture",
            "condition": "Good",
        }
        payload.update(overrides)
        resp = client.post("/listings", json=payload, headers=headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["listing"]

    return _make
