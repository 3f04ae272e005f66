"""
Integration tests for the user API endpoints and cookie authentication.
"""
import pytest
from sqlalchemy import select

from app.config import Config
from app.models import User
from app.security import create_access_token, create_refresh_token

PASSWORD = "secret123"


def auth_cookie(token: str, name: str = "accessToken") -> dict:
    return {"Cookie": f"{name}={token}"}


def set_cookies(response) -> dict:
    """Map cookie name -> full Set-Cookie header value."""
    return {h.split("=", 1)[0]: h for h in response.headers.get_list("set-cookie")}


@pytest.fixture
def verified_user(client, session):
    async def _make(email="reader@example.com"):
        response = await client.post("/api/v1/users/register", json={"email": email, "password": PASSWORD})
        assert response.status_code == 201
        user_id = response.json()["id"]
        token = await session.scalar(select(User.verify_token).where(User.id == user_id))
        response = await client.put("/api/v1/users/verify", json={"email": email, "token": token})
        assert response.status_code == 200
        return response.json()
    return _make


class TestRegister:
    """Tests for POST /api/v1/users/register"""

    @pytest.mark.asyncio
    async def test_register(self, client, database):
        response = await client.post(
            "/api/v1/users/register", json={"email": "New.Reader@Example.com", "password": PASSWORD}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "new.reader@example.com"
        assert data["username"] == "new.reader"
        assert data["isActive"] is False
        assert "passwordHash" not in data
        assert "verifyToken" not in data

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client, verified_user):
        await verified_user()

        response = await client.post(
            "/api/v1/users/register", json={"email": "reader@example.com", "password": PASSWORD}
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    @pytest.mark.parametrize("password", ["short1", "onlyletters", "12345678"])
    async def test_weak_password(self, client, database, password):
        response = await client.post(
            "/api/v1/users/register", json={"email": "reader@example.com", "password": password}
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_invalid_email(self, client, database):
        response = await client.post("/api/v1/users/register", json={"email": "not-an-email", "password": PASSWORD})

        assert response.status_code == 422


class TestLoginLogout:
    """Tests for login, logout and token refresh cookies."""

    @pytest.mark.asyncio
    async def test_login_sets_http_only_cookies(self, client, verified_user):
        user = await verified_user()

        response = await client.post(
            "/api/v1/users/login", json={"email": "reader@example.com", "password": PASSWORD}
        )

        assert response.status_code == 200
        assert response.json()["id"] == user["id"]
        cookies = set_cookies(response)
        assert set(cookies) == {"accessToken", "refreshToken"}
        for header in cookies.values():
            lowered = header.lower()
            assert "httponly" in lowered
            assert "secure" in lowered
            assert "samesite=strict" in lowered
            assert f"max-age={Config.COOKIE_MAX_AGE}" in lowered

    @pytest.mark.asyncio
    async def test_login_unverified(self, client, database):
        await client.post("/api/v1/users/register", json={"email": "reader@example.com", "password": PASSWORD})

        response = await client.post(
            "/api/v1/users/login", json={"email": "reader@example.com", "password": PASSWORD}
        )

        assert response.status_code == 406
        assert response.json()["detail"] == "Your account is not active!"

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, client, database):
        response = await client.post(
            "/api/v1/users/login", json={"email": "ghost@example.com", "password": PASSWORD}
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_logout_clears_cookies(self, client, database):
        response = await client.delete("/api/v1/users/logout")

        assert response.status_code == 200
        assert response.json() == {"loggedOut": True}
        cookies = set_cookies(response)
        assert set(cookies) == {"accessToken", "refreshToken"}
        assert all("max-age=0" in h.lower() for h in cookies.values())

    @pytest.mark.asyncio
    async def test_refresh_token(self, client, database):
        response = await client.get(
            "/api/v1/users/refresh_token",
            headers=auth_cookie(create_refresh_token(3, "reader@example.com"), "refreshToken"),
        )

        assert response.status_code == 200
        assert response.json()["accessToken"]
        assert set(set_cookies(response)) == {"accessToken"}

    @pytest.mark.asyncio
    async def test_refresh_token_missing(self, client, database):
        response = await client.get("/api/v1/users/refresh_token")

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_access_token_cannot_refresh(self, client, database):
        response = await client.get(
            "/api/v1/users/refresh_token",
            headers=auth_cookie(create_access_token(3, "reader@example.com"), "refreshToken"),
        )

        assert response.status_code == 403


class TestUpdateUser:
    """Tests for PUT /api/v1/users/update"""

    @pytest.mark.asyncio
    async def test_updates_display_name(self, client, verified_user):
        user = await verified_user()
        token = create_access_token(user["id"], user["email"])

        response = await client.put(
            "/api/v1/users/update", data={"displayName": "Book Worm"}, headers=auth_cookie(token)
        )

        assert response.status_code == 200
        assert response.json()["displayName"] == "Book Worm"

    @pytest.mark.asyncio
    async def test_uploads_avatar(self, client, verified_user, media_root):
        user = await verified_user()
        token = create_access_token(user["id"], user["email"])

        response = await client.put(
            "/api/v1/users/update",
            files={"avatar": ("me.png", b"\x89PNG avatar", "image/png")},
            headers=auth_cookie(token),
        )

        assert response.status_code == 200
        avatar = response.json()["avatar"]
        assert avatar.startswith("/media/users/")
        assert (media_root / "users" / avatar.rsplit("/", 1)[1]).exists()

    @pytest.mark.asyncio
    async def test_changes_password_then_login(self, client, verified_user):
        user = await verified_user()
        token = create_access_token(user["id"], user["email"])

        response = await client.put(
            "/api/v1/users/update",
            data={"currentPassword": PASSWORD, "newPassword": "better456"},
            headers=auth_cookie(token),
        )
        assert response.status_code == 200

        old = await client.post("/api/v1/users/login", json={"email": user["email"], "password": PASSWORD})
        new = await client.post("/api/v1/users/login", json={"email": user["email"], "password": "better456"})
        assert old.status_code == 406
        assert new.status_code == 200

    @pytest.mark.asyncio
    async def test_requires_cookie(self, client, database):
        response = await client.put("/api/v1/users/update", data={"displayName": "Book Worm"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Unauthorized! (token not found)"

    @pytest.mark.asyncio
    async def test_expired_token_asks_for_refresh(self, client, database, monkeypatch):
        monkeypatch.setattr(Config, "ACCESS_TOKEN_LIFE", -10)
        token = create_access_token(1, "reader@example.com")

        response = await client.put(
            "/api/v1/users/update", data={"displayName": "Book Worm"}, headers=auth_cookie(token)
        )

        assert response.status_code == 410

    @pytest.mark.asyncio
    async def test_refresh_token_is_not_an_access_token(self, client, database):
        token = create_refresh_token(1, "reader@example.com")

        response = await client.put(
            "/api/v1/users/update", data={"displayName": "Book Worm"}, headers=auth_cookie(token)
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Unauthorized!"
