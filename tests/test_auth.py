"""Tests for login, refresh, logout and token handling."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import PASSWORD, create_user
from paytrack.core.security import (create_refresh_token, decode_access_token,
                                    decode_refresh_token)

API = "/api/v1"


@pytest.mark.asyncio
async def test_login_sets_httponly_cookies(async_client: AsyncClient, employee):
    r = await async_client.post(
        f"{API}/login", data={"username": "JUAN", "password": PASSWORD}
    )
    assert r.status_code == 200
    data = r.json()
    assert data["user_id"] == employee.id
    assert data["role"] == "employee"

    payload = decode_access_token(data["access_token"])
    assert payload["sub"] == str(employee.id)
    assert payload["role"] == "employee"

    assert "access_token" in r.cookies
    assert "refresh_token" in r.cookies
    set_cookie = r.headers.get("set-cookie")
    assert "HttpOnly" in set_cookie
    assert "SameSite=lax" in set_cookie


@pytest.mark.asyncio
async def test_login_rejects_bad_password(async_client: AsyncClient, employee):
    r = await async_client.post(f"{API}/login", data={"username": "juan", "password": "nope"})
    assert r.status_code == 401
    assert r.json()["message"] == "Incorrect username or password"


@pytest.mark.asyncio
async def test_login_rejects_inactive_user(async_client: AsyncClient, db_session: AsyncSession):
    await create_user(db_session, "retired", is_active=False)
    r = await async_client.post(f"{API}/login", data={"username": "retired", "password": PASSWORD})
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_refresh_from_body_and_cookie(async_client: AsyncClient, employee):
    body = await async_client.post(
        f"{API}/refresh", json={"refresh_token": create_refresh_token(employee.id)}
    )
    assert body.status_code == 200
    assert decode_refresh_token(body.json()["refresh_token"])["sub"] == str(employee.id)

    # The refresh cookie set by the previous response is sent back by the client
    cookie = await async_client.post(f"{API}/refresh")
    assert cookie.status_code == 200


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(async_client: AsyncClient, employee):
    login = await async_client.post(f"{API}/login", data={"username": "juan", "password": PASSWORD})
    r = await async_client.post(
        f"{API}/refresh", json={"refresh_token": login.json()["access_token"]}
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_invalid_bearer_token(async_client: AsyncClient):
    r = await async_client.get(f"{API}/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["message"] == "Could not validate credentials"


@pytest.mark.asyncio
async def test_me_and_logout(async_client: AsyncClient, employee, employee_headers):
    me = await async_client.get(f"{API}/me", headers=employee_headers)
    assert me.json()["username"] == "juan"
    assert me.json()["department"] == "Kitchen"

    out = await async_client.post(f"{API}/logout")
    assert out.json() == {"message": "Logged out"}
