"""Tests for accounts, tokens, profiles and admin user management."""

from devconnect.auth import decode_token, hash_password, verify_password


def _register(client, name="Alice", email="alice@example.com", password="secret123"):
    return client.post(
        "/api/auth/register", json={"name": name, "email": email, "password": password}
    )


def test_password_hashing():
    stored = hash_password("secret123")
    assert stored.startswith("pbkdf2_sha256$")
    assert verify_password("secret123", stored)
    assert not verify_password("wrong", stored)
    assert not verify_password("secret123", None)
    assert not verify_password("secret123", "garbage")


def test_register_login_and_me(client):
    r = _register(client, email="Alice@Example.com")
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["user"]["email"] == "alice@example.com"
    assert body["user"]["role"] == "user"
    assert "passwordHash" not in body["user"]
    assert decode_token(body["token"]) == body["user"]["id"]

    r = client.post(
        "/api/auth/login", json={"email": "alice@example.com", "password": "secret123"}
    )
    assert r.status_code == 200
    token = r.json()["token"]

    r = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert r.json()["name"] == "Alice"


def test_duplicate_email_conflicts(client):
    _register(client)
    r = _register(client, name="Other", email="ALICE@example.com")
    assert r.status_code == 409
    assert r.json() == {"error": "Email is already registered"}


def test_bad_credentials(client):
    _register(client)
    r = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "nope"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid email or password"}

    r = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "nope"})
    assert r.status_code == 401


def test_missing_and_invalid_tokens(client):
    r = client.get("/api/users/me")
    assert r.status_code == 401
    assert r.json() == {"error": "No token provided"}
    assert r.headers["www-authenticate"] == "Bearer"

    r = client.get("/api/users/me", headers={"Authorization": "Bearer abc.def.ghi"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid token"}


def test_profile_update_and_search(client, make_user):
    alice, _ = make_user("Alice"), make_user("Alan")

    r = client.put(
        "/api/users/profile",
        json={"bio": "Pythonista", "avatar": "https://cdn.example.com/a.png"},
        headers=alice["headers"],
    )
    assert r.status_code == 200
    assert r.json()["bio"] == "Pythonista"

    r = client.get("/api/users/search", params={"query": "al"}, headers=alice["headers"])
    assert [u["name"] for u in r.json()] == ["Alan"]

    profile = client.get(f"/api/users/{alice['id']}").json()
    assert profile["bio"] == "Pythonista"
    assert profile["followerCount"] == 0

    assert client.get("/api/users/9999").status_code == 404


def test_admin_routes_require_admin(client, make_user):
    alice = make_user("Alice")
    r = client.get("/api/admin/users", headers=alice["headers"])
    assert r.status_code == 403
    assert r.json() == {"error": "Access denied! Admins only"}
    assert client.get("/api/admin/posts/pending").status_code == 401


def test_admin_manages_users(client, make_user, admin):
    alice, bob = make_user("Alice"), make_user("Bob")
    client.post("/api/follows", json={"userId": bob["id"]}, headers=alice["headers"])

    r = client.post(
        "/api/admin/users",
        json={"name": "Carol", "email": "carol@example.com", "password": "secret123"},
        headers=admin["headers"],
    )
    assert r.status_code == 201
    assert r.json()["isVerified"] is True

    names = [u["name"] for u in client.get("/api/admin/users", headers=admin["headers"]).json()]
    assert names == ["Alice", "Bob", "Carol"]

    r = client.delete(f"/api/admin/users/{alice['id']}", headers=admin["headers"])
    assert r.json() == {"message": "User deleted successfully!"}
    # Follow edges go with the account
    assert client.get(f"/api/users/{bob['id']}").json()["followerCount"] == 0
    # Its token no longer authenticates
    assert client.get("/api/users/me", headers=alice["headers"]).status_code == 401

    r = client.delete(f"/api/admin/users/{admin['id']}", headers=admin["headers"])
    assert r.status_code == 400
