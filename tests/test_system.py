"""Tests for the health check and admin overview."""

import pytest
from httpx import AsyncClient

API = "/api/v1"


@pytest.mark.asyncio
async def test_health_is_public(async_client: AsyncClient, monkeypatch):
    from paytrack.core.config import settings

    # Nothing listens here; the check must degrade instead of failing
    monkeypatch.setattr(settings, "REDIS_URL", "redis://127.0.0.1:1/0")
    r = await async_client.get(f"{API}/health")
    assert r.status_code == 200
    assert r.json() == {"db": True, "redis": False}


@pytest.mark.asyncio
async def test_overview_counts(async_client: AsyncClient, employee_headers, admin_headers, frozen_clock):
    await async_client.post(
        f"{API}/overtime-request",
        json={"date": "2024-03-01", "overtimeNote": "stock take"},
        headers=employee_headers,
    )
    r = await async_client.get(f"{API}/admin/overview", headers=admin_headers)
    assert r.status_code == 200
    data = r.json()
    assert data["pending_overtime_requests"] == 1
    assert data["payslips_needing_recalculation"] == 0
    assert data["active_users_today"] == 0
    assert data["last_updated"] == "2024-03-04T07:00:00"
