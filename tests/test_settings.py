"""Tests for the breaktime toggle and its effect on generation."""

from datetime import date

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import add_entry

API = "/api/v1"


@pytest.mark.asyncio
async def test_default_settings(async_client: AsyncClient, admin_headers):
    r = await async_client.get(f"{API}/settings", headers=admin_headers)
    assert r.status_code == 200
    data = r.json()
    assert data["breaktime_enabled"] is True
    assert data["standard_hours"] == 8.5
    assert data["hourly_rate"] == 23.5294


@pytest.mark.asyncio
async def test_settings_are_admin_only(async_client: AsyncClient, employee_headers):
    r = await async_client.put(
        f"{API}/settings", json={"breaktimeEnabled": False}, headers=employee_headers
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_disabling_breaktime_changes_pay(
    async_client: AsyncClient, db_session: AsyncSession, employee, admin_headers
):
    r = await async_client.put(
        f"{API}/settings", json={"breaktimeEnabled": False}, headers=admin_headers
    )
    assert r.json()["standard_hours"] == 8.0
    assert r.json()["hourly_rate"] == 25.0

    await add_entry(db_session, employee, date(2024, 3, 4), "07:00", "11:00")
    generated = await async_client.post(
        f"{API}/payslips/generate", json={"selectedDates": ["2024-03-04"]}, headers=admin_headers
    )
    assert generated.json()[0]["base_salary"] == 100.0
