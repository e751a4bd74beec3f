"""Tests for clock-in/out, overtime requests and admin time views."""

from datetime import date, datetime

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import add_entry

API = "/api/v1"


@pytest.mark.asyncio
async def test_clock_in_and_out(async_client: AsyncClient, employee_headers, frozen_clock):
    frozen_clock.now = datetime(2024, 3, 4, 7, 0)
    r = await async_client.post(f"{API}/clock-in", headers=employee_headers)
    assert r.status_code == 200
    assert r.json()["clock_in"] == "2024-03-04T07:00:00"

    frozen_clock.now = datetime(2024, 3, 4, 15, 30)
    r = await async_client.post(f"{API}/clock-out", headers=employee_headers)
    assert r.status_code == 200
    data = r.json()
    assert data["worked_hours"] == 8.5
    assert data["overtime_requested"] is False

    today = await async_client.get(f"{API}/today-entry", headers=employee_headers)
    assert today.json()["clock_out"] == "2024-03-04T15:30:00"


@pytest.mark.asyncio
async def test_double_clock_in_is_rejected(async_client: AsyncClient, employee_headers, frozen_clock):
    first = await async_client.post(f"{API}/clock-in", headers=employee_headers)
    assert first.status_code == 200

    second = await async_client.post(f"{API}/clock-in", headers=employee_headers)
    assert second.status_code == 400
    assert second.json() == {
        "success": False,
        "message": "Already clocked in",
        "detail": "Already clocked in",
    }


@pytest.mark.asyncio
async def test_reset_clock_in_replaces_todays_entries(
    async_client: AsyncClient, employee_headers, admin_headers, frozen_clock
):
    frozen_clock.now = datetime(2024, 3, 4, 7, 0)
    await async_client.post(f"{API}/clock-in", headers=employee_headers)
    frozen_clock.now = datetime(2024, 3, 4, 8, 0)
    await async_client.post(f"{API}/clock-out", headers=employee_headers)

    frozen_clock.now = datetime(2024, 3, 4, 9, 0)
    r = await async_client.post(f"{API}/reset-clock-in", headers=employee_headers)
    assert r.status_code == 200
    assert r.json()["clock_in"] == "2024-03-04T09:00:00"

    today = (await async_client.get(f"{API}/today-entry", headers=employee_headers)).json()
    assert today["clock_in"] == "2024-03-04T09:00:00"
    assert today["clock_out"] is None

    entries = await async_client.get(
        f"{API}/time-entries", params={"date": "2024-03-04"}, headers=admin_headers
    )
    assert len(entries.json()) == 1

@pytest.mark.asyncio
async def test_reset_clock_in_with_open_session_from_earlier_day(
    async_client: AsyncClient, db_session: AsyncSession, employee, employee_headers, frozen_clock
):
    await add_entry(db_session, employee, date(2024, 3, 3), "07:00", None)

    r = await async_client.post(f"{API}/reset-clock-in", headers=employee_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "Already clocked in"

@pytest.mark.asyncio
async def test_clock_out_without_session(async_client: AsyncClient, employee_headers, frozen_clock):
    r = await async_client.post(f"{API}/clock-out", headers=employee_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "No active clock in found"


@pytest.mark.asyncio
async def test_today_entry_empty(async_client: AsyncClient, employee_headers, frozen_clock):
    r = await async_client.get(f"{API}/today-entry", headers=employee_headers)
    assert r.status_code == 200
    assert r.json() is None


@pytest.mark.asyncio
async def test_clock_out_note_files_overtime_request(
    async_client: AsyncClient, employee_headers, admin_headers, frozen_clock
):
    frozen_clock.now = datetime(2024, 3, 4, 7, 0)
    await async_client.post(f"{API}/clock-in", headers=employee_headers)
    frozen_clock.now = datetime(2024, 3, 4, 18, 0)
    r = await async_client.post(
        f"{API}/clock-out",
        json={"overtimeNote": "inventory count"},
        headers=employee_headers,
    )
    assert r.json()["overtime_requested"] is True

    pending = await async_client.get(f"{API}/overtime-requests", headers=admin_headers)
    assert pending.status_code == 200
    rows = pending.json()
    assert len(rows) == 1
    assert rows[0]["username"] == "juan"
    assert rows[0]["overtime_note"] == "inventory count"

    decision = await async_client.post(
        f"{API}/overtime-requests/{rows[0]['id']}/approve",
        json={"approved": True},
        headers=admin_headers,
    )
    assert decision.status_code == 200
    assert decision.json()["success"] is True

    notes = await async_client.get(f"{API}/overtime-notifications", headers=employee_headers)
    assert [n["overtime_approved"] for n in notes.json()] == [True]
    again = await async_client.get(f"{API}/overtime-notifications", headers=employee_headers)
    assert again.json() == []

    left = await async_client.get(f"{API}/overtime-requests", headers=admin_headers)
    assert left.json() == []


@pytest.mark.asyncio
async def test_overtime_request_without_entry_creates_manual_one(
    async_client: AsyncClient, employee_headers
):
    r = await async_client.post(
        f"{API}/overtime-request",
        json={"date": "2024-03-02", "overtimeNote": "weekend delivery"},
        headers=employee_headers,
    )
    assert r.status_code == 200
    data = r.json()
    assert data["clock_in"] == "2024-03-02T16:00:00"
    assert data["clock_out"] == "2024-03-02T18:00:00"
    assert data["overtime_requested"] is True
    assert data["overtime_approved"] is None


@pytest.mark.asyncio
async def test_overtime_request_flags_existing_entry(
    async_client: AsyncClient, db_session: AsyncSession, employee, employee_headers
):
    entry = await add_entry(db_session, employee, date(2024, 3, 4), "07:00", "17:00")
    r = await async_client.post(
        f"{API}/overtime-request",
        json={"date": "2024-03-04", "overtimeNote": "late truck"},
        headers=employee_headers,
    )
    assert r.json()["id"] == entry.id
    assert r.json()["overtime_requested"] is True


@pytest.mark.asyncio
async def test_unknown_entry_decision_is_404(async_client: AsyncClient, admin_headers):
    r = await async_client.post(
        f"{API}/overtime-requests/999/approve", json={"approved": False}, headers=admin_headers
    )
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_admin_views_require_admin(async_client: AsyncClient, employee_headers):
    for path in ("/overtime-requests", "/active-users", "/available-dates", "/time-logs"):
        r = await async_client.get(f"{API}{path}", headers=employee_headers)
        assert r.status_code == 403, path


@pytest.mark.asyncio
async def test_requests_without_token_are_401(async_client: AsyncClient):
    r = await async_client.post(f"{API}/clock-in")
    assert r.status_code == 401
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_active_users_lists_open_sessions(
    async_client: AsyncClient, employee_headers, admin_headers, frozen_clock
):
    frozen_clock.now = datetime(2024, 3, 4, 7, 5)
    await async_client.post(f"{API}/clock-in", headers=employee_headers)

    r = await async_client.get(f"{API}/active-users", headers=admin_headers)
    assert [u["username"] for u in r.json()] == ["juan"]

    overview = await async_client.get(f"{API}/admin/overview", headers=admin_headers)
    assert overview.json()["active_users_today"] == 1


@pytest.mark.asyncio
async def test_available_dates_and_time_entries(
    async_client: AsyncClient, db_session: AsyncSession, employee, admin_user, admin_headers
):
    await add_entry(db_session, employee, date(2024, 3, 4), "07:00", "15:30")
    await add_entry(db_session, admin_user, date(2024, 3, 4), "08:00", "12:00")
    await add_entry(db_session, employee, date(2024, 3, 5), "07:00", "15:30")
    await add_entry(db_session, employee, date(2024, 3, 6), "07:00", None)

    dates = await async_client.get(f"{API}/available-dates", headers=admin_headers)
    assert dates.json() == [
        {"entry_date": "2024-03-05", "user_count": 1, "total_entries": 1},
        {"entry_date": "2024-03-04", "user_count": 2, "total_entries": 2},
    ]

    entries = await async_client.get(
        f"{API}/time-entries",
        params={"date": "2024-03-04", "userIds": str(employee.id)},
        headers=admin_headers,
    )
    assert [(e["username"], e["department"]) for e in entries.json()] == [("juan", "Kitchen")]

    logs = await async_client.get(
        f"{API}/time-logs",
        params={"startDate": "2024-03-04", "endDate": "2024-03-06"},
        headers=admin_headers,
    )
    assert len(logs.json()) == 4
