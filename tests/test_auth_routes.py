"""
tests/test_auth_routes.py -- Integration tests for /auth/* endpoints.

Covers:
  - register: 201 {role, user, token}, "jwt" cookie, duplicate email 400
  - login: admin/user role tags, identical 401 for wrong password and unknown email
  - refresh: 202 with a new access token, 401/404/403 rejections
  - logout: 200 with message, 204 without cookie, 404 for an unbound cookie
  - Cache-Control: no-store on every response carrying a token
"""

from __future__ import annotations

from auth.models import TokenClaims
from auth.tokens import create_refresh_token, verify_access_token


def _use_refresh_cookie(client, token: str) -> None:
    client.cookies.clear()
    client.cookies.set("jwt", token)


def _register_body(**overrides) -> dict:
    body = {
        "firstName": "Rea",
        "lastName": "Der",
        "email": "reader@example.com",
        "password": "secret",
    }
    body.update(overrides)
    return body


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------


class TestRegister:
    def test_register_returns_201_with_user_and_token(self, client):
        resp = client.post("/auth/register", json=_register_body())
        assert resp.status_code == 201
        data = resp.json()
        assert data["role"] == 2024
        assert data["user"]["email"] == "reader@example.com"
        assert data["user"]["firstName"] == "Rea"
        assert data["user"]["isAdmin"] is False
        assert verify_access_token(data["token"]).id == data["user"]["id"]

    def test_register_never_exposes_password_or_token_column(self, client):
        data = client.post("/auth/register", json=_register_body()).json()
        assert "password" not in data["user"]
        assert "hashedPassword" not in data["user"]
        assert "refreshToken" not in data["user"]

    def test_register_sets_http_only_refresh_cookie(self, client, user_store):
        resp = client.post("/auth/register", json=_register_body())
        cookie_header = resp.headers["set-cookie"].lower()
        assert cookie_header.startswith("jwt=")
        assert "httponly" in cookie_header
        assert "max-age=86400" in cookie_header
        stored = user_store.get_by_email("reader@example.com")
        assert stored.refresh_token == client.cookies.get("jwt")

    def test_register_response_not_cached(self, client):
        resp = client.post("/auth/register", json=_register_body())
        assert resp.headers["cache-control"] == "no-store"

    def test_register_admin_gets_admin_role(self, client):
        resp = client.post("/auth/register", json=_register_body(isAdmin=True))
        assert resp.status_code == 201
        assert resp.json()["role"] == 1990

    def test_register_duplicate_email(self, client):
        resp = client.post("/auth/register", json=_register_body(email="test1@yahoo.com"))
        assert resp.status_code == 400
        assert resp.json() == {"error": {"message": "Duplicate email: test1@yahoo.com", "status": 400}}

    def test_register_missing_field(self, client):
        body = _register_body()
        del body["password"]
        resp = client.post("/auth/register", json=body)
        assert resp.status_code == 400
        assert resp.json()["error"]["status"] == 400

    def test_register_invalid_email(self, client):
        resp = client.post("/auth/register", json=_register_body(email="not-an-email"))
        assert resp.status_code == 400

    def test_register_unknown_field_rejected(self, client):
        resp = client.post("/auth/register", json=_register_body(role=1990))
        assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


class TestLogin:
    def test_admin_login(self, client):
        resp = client.post("/auth/login", json={"email": "test1@yahoo.com", "password": "password1"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["role"] == 1990
        assert data["user"]["id"] == 1
        assert data["user"]["isAdmin"] is True
        assert verify_access_token(data["token"]) == TokenClaims(id=1, email="test1@yahoo.com", is_admin=True)
        assert resp.headers["cache-control"] == "no-store"

    def test_user_login(self, client):
        resp = client.post("/auth/login", json={"email": "test2@yahoo.com", "password": "password2"})
        assert resp.status_code == 200
        assert resp.json()["role"] == 2024
        assert client.cookies.get("jwt")

    def test_login_binds_refresh_token(self, client, user_store):
        client.post("/auth/login", json={"email": "test2@yahoo.com", "password": "password2"})
        assert user_store.get_by_id(2).refresh_token == client.cookies.get("jwt")

    def test_wrong_password(self, client):
        resp = client.post("/auth/login", json={"email": "test1@yahoo.com", "password": "wrong"})
        assert resp.status_code == 401
        assert resp.json() == {"error": {"message": "Invalid email/password!", "status": 401}}
        assert "set-cookie" not in resp.headers

    def test_unknown_email_same_response(self, client):
        resp = client.post("/auth/login", json={"email": "nobody@yahoo.com", "password": "password1"})
        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "Invalid email/password!"

    def test_missing_password(self, client):
        resp = client.post("/auth/login", json={"email": "test1@yahoo.com"})
        assert resp.status_code == 400

    def test_corrupt_stored_hash_is_500(self, client, user_store):
        user_store.update_user(2, hashed_password="not-a-bcrypt-hash")
        resp = client.post("/auth/login", json={"email": "test2@yahoo.com", "password": "password2"})
        assert resp.status_code == 500
        assert resp.json() == {"error": {"message": "Internal Server Error", "status": 500}}


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------


class TestRefresh:
    def test_refresh_after_login(self, client):
        client.post("/auth/login", json={"email": "test2@yahoo.com", "password": "password2"})
        resp = client.get("/auth/refresh")
        assert resp.status_code == 202
        data = resp.json()
        assert data["user"]["id"] == 2
        assert data["user"]["email"] == "test2@yahoo.com"
        assert verify_access_token(data["token"]).id == 2
        assert resp.headers["cache-control"] == "no-store"

    def test_refresh_without_cookie(self, client):
        resp = client.get("/auth/refresh")
        assert resp.status_code == 401

    def test_refresh_with_tampered_cookie(self, client):
        client.post("/auth/login", json={"email": "test2@yahoo.com", "password": "password2"})
        header, payload, signature = client.cookies.get("jwt").split(".")
        first = "A" if signature[0] != "A" else "B"
        _use_refresh_cookie(client, ".".join([header, payload, first + signature[1:]]))
        resp = client.get("/auth/refresh")
        assert resp.status_code == 401

    def test_refresh_with_replaced_token(self, client, user_store):
        client.post("/auth/login", json={"email": "test2@yahoo.com", "password": "password2"})
        old = client.cookies.get("jwt")
        newer = create_refresh_token(TokenClaims(id=2, email="test2@yahoo.com", is_admin=False), expire_seconds=60)
        user_store.save_refresh_token(2, newer)
        _use_refresh_cookie(client, old)
        resp = client.get("/auth/refresh")
        assert resp.status_code == 404
        assert resp.json()["error"]["message"] == "No user found!"

    def test_refresh_with_token_claiming_another_user(self, client, user_store):
        foreign = create_refresh_token(TokenClaims(id=2, email="test2@yahoo.com", is_admin=False), expire_seconds=60)
        user_store.save_refresh_token(1, foreign)
        _use_refresh_cookie(client, foreign)
        resp = client.get("/auth/refresh")
        assert resp.status_code == 403

    def test_access_token_is_not_accepted_as_refresh(self, client, user_token):
        _use_refresh_cookie(client, user_token)
        assert client.get("/auth/refresh").status_code == 401


# ---------------------------------------------------------------------------
# Logout
# ---------------------------------------------------------------------------


class TestLogout:
    def test_logout_without_cookie(self, client):
        resp = client.get("/auth/logout")
        assert resp.status_code == 204
        assert resp.content == b""

    def test_logout_ends_session(self, client, user_store):
        client.post("/auth/login", json={"email": "test1@yahoo.com", "password": "password1"})
        old = client.cookies.get("jwt")
        resp = client.get("/auth/logout")
        assert resp.status_code == 200
        assert resp.json() == {"Message": "User number 1 logged out successfully!"}
        cookie_header = resp.headers["set-cookie"].lower()
        assert cookie_header.startswith("jwt=")
        assert "max-age=0" in cookie_header
        assert user_store.get_by_id(1).refresh_token is None

        _use_refresh_cookie(client, old)
        assert client.get("/auth/refresh").status_code == 404

    def test_logout_with_unbound_cookie(self, client):
        _use_refresh_cookie(client, "not-bound-to-anyone")
        resp = client.get("/auth/logout")
        assert resp.status_code == 404
        assert resp.json()["error"]["message"] == "No user found!"

    def test_second_login_replaces_first_session(self, client, user_store):
        client.post("/auth/login", json={"email": "test2@yahoo.com", "password": "password2"})
        first = client.cookies.get("jwt")
        newer = create_refresh_token(TokenClaims(id=2, email="test2@yahoo.com", is_admin=False), expire_seconds=120)
        user_store.save_refresh_token(2, newer)
        _use_refresh_cookie(client, first)
        assert client.get("/auth/logout").status_code == 404
        assert user_store.get_by_id(2).refresh_token == newer

    def test_logout_twice_is_harmless(self, client):
        client.post("/auth/login", json={"email": "test2@yahoo.com", "password": "password2"})
        assert client.get("/auth/logout").status_code == 200
        client.cookies.clear()
        assert client.get("/auth/logout").status_code == 204


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------


def test_register_then_login_round_trip(client):
    registered = client.post(
        "/auth/register",
        json={"firstName": "A", "lastName": "X", "email": "a@x.com", "password": "pw1", "isAdmin": False},
    )
    new_id = registered.json()["user"]["id"]

    resp = client.post("/auth/login", json={"email": "a@x.com", "password": "pw1"})
    assert resp.status_code == 200
    assert resp.json()["user"]["id"] == new_id
    assert verify_access_token(resp.json()["token"]) == TokenClaims(id=new_id, email="a@x.com", is_admin=False)

    assert client.post("/auth/login", json={"email": "a@x.com", "password": "wrong"}).status_code == 401
