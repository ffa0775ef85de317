# tests/test_auth.py
from conftest import PASSWORD


def register(client, **overrides):
    payload = {
        "name": "alice",
        "email": "alice@example.com",
        "password": PASSWORD,
        "password_confirmation": PASSWORD,
    }
    payload.update(overrides)
    return client.post("/auth/register", json=payload)


def test_register_returns_public_user(client):
    resp = register(client)
    assert resp.status_code == 201
    user = resp.json()["user"]
    assert user["email"] == "alice@example.com"
    assert "password" not in user


def test_register_duplicate_email(client):
    register(client)
    resp = register(client, name="other")
    assert resp.status_code == 422
    assert resp.json()["errors"]["email"] == ["The email has already been taken."]


def test_register_password_mismatch(client):
    resp = register(client, password_confirmation="different1")
    assert resp.status_code == 422
    assert "password_confirmation" in resp.json()["errors"]


def test_login_and_me(client):
    register(client)
    resp = client.post("/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    data = resp.json()
    assert data["token_type"] == "bearer"
    assert data["expires_in"] > 0

    me = client.post("/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.status_code == 200
    assert me.json()["id"] == data["user"]["id"]


def test_login_wrong_password(client):
    register(client)
    resp = client.post("/auth/login", json={"email": "alice@example.com", "password": "nope-nope"})
    assert resp.status_code == 401
    assert resp.json() == {"message": "Invalid credentials"}


def test_missing_or_bad_token_is_unauthenticated(client):
    assert client.post("/auth/me").json() == {"message": "Unauthenticated."}
    resp = client.post("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


def test_logout_revokes_token(client, make_user):
    _, headers = make_user()
    resp = client.post("/auth/logout", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"message": "Successfully logged out"}

    assert client.post("/auth/me", headers=headers).status_code == 401
    assert client.post("/auth/logout", headers=headers).status_code == 401


def test_refresh_rotates_token(client, make_user):
    user, headers = make_user()
    resp = client.post("/auth/refresh", headers=headers)
    assert resp.status_code == 200
    new_headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}

    assert client.post("/auth/me", headers=headers).status_code == 401
    assert client.post("/auth/me", headers=new_headers).json()["id"] == user["id"]


def test_public_profile(client, make_user):
    user, _ = make_user("bob")
    resp = client.get(f"/users/{user['id']}")
    assert resp.status_code == 200
    assert resp.json()["name"] == "bob"
    assert "password" not in resp.json()

    resp = client.get("/users/9999")
    assert resp.status_code == 404
    assert resp.json() == {"message": "User not found"}
