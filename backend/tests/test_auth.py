"""
Tests for authentication endpoints: registration, login and the token gate.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from checkin.core.security import create_access_token
from conftest import TEST_PASSWORD


@pytest.mark.asyncio
async def test_register_user(client: AsyncClient):
    """Self-registration returns a token and an attendee projection."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "new@example.com",
        "name": "New Person",
        "password": "securepassword123",
    })
    assert response.status_code == 201
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert data["user"]["email"] == "new@example.com"
    assert data["user"]["role"] == "attendee"
    assert "hashed_password" not in data["user"]  # Never expose password hash


@pytest.mark.asyncio
async def test_register_ignores_requested_role(client: AsyncClient):
    """A signup cannot grant itself a privileged role."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "sneaky@example.com",
        "name": "Sneaky",
        "password": "securepassword123",
        "role": "admin",
    })
    assert response.status_code == 201
    assert response.json()["user"]["role"] == "attendee"


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, attendee_user):
    """Duplicate email returns 409."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "attendee@example.com",
        "name": "Someone Else",
        "password": "securepassword123",
    })
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_register_weak_password(client: AsyncClient):
    """Password under 6 chars returns 422."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "weak@example.com",
        "name": "Weak",
        "password": "short",
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, organizer_user):
    """Valid credentials return a JWT and the user's role."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "organizer@example.com",
        "password": TEST_PASSWORD,
    })
    assert response.status_code == 200
    data = response.json()
    assert data["access_token"]
    assert data["user"]["id"] == organizer_user.id
    assert data["user"]["role"] == "organizer"


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, attendee_user):
    """Wrong password returns 401."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "attendee@example.com",
        "password": "wrongpassword",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_unknown_email(client: AsyncClient):
    """Unknown email returns 401, indistinguishable from a wrong password."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "nobody@example.com",
        "password": TEST_PASSWORD,
    })
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_deactivated_account(client: AsyncClient, inactive_user):
    """A deactivated account cannot log in even with the right password."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "inactive@example.com",
        "password": TEST_PASSWORD,
    })
    assert response.status_code == 401
    assert "deactivated" in response.json()["detail"].lower()


@pytest.mark.asyncio
async def test_me(client: AsyncClient, attendee_user, attendee_headers):
    response = await client.get("/api/v1/auth/me", headers=attendee_headers)
    assert response.status_code == 200
    assert response.json()["email"] == attendee_user.email


@pytest.mark.asyncio
async def test_me_without_token(client: AsyncClient):
    """Missing bearer token returns 401."""
    response = await client.get("/api/v1/auth/me")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me_with_garbage_token(client: AsyncClient):
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me_with_expired_token(client: AsyncClient, attendee_user):
    token = create_access_token(
        data={"sub": str(attendee_user.id), "email": attendee_user.email, "role": "attendee"},
        expires_delta=timedelta(minutes=-1),
    )
    response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_of_deactivated_user_rejected(
    client: AsyncClient, admin_headers, attendee_user, attendee_headers
):
    """Deactivating an account revokes its outstanding tokens."""
    toggle = await client.put(
        f"/api/v1/users/{attendee_user.id}/toggle-active", headers=admin_headers
    )
    assert toggle.status_code == 200
    assert toggle.json()["is_active"] is False

    response = await client.get("/api/v1/auth/me", headers=attendee_headers)
    assert response.status_code == 401
