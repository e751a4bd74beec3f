"""Tests for the pure payroll calculator."""

from dataclasses import dataclass
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from paytrack.services.payroll_calculator import (PayrollRules,
                                                  calculate_payroll,
                                                  compute_total_salary,
                                                  staff_house_deduction)

DAY = (2024, 3, 4)
RATE = 200 / 8.5


@dataclass
class Entry:
    clock_in: datetime
    clock_out: datetime | None
    overtime_requested: bool = False
    overtime_approved: bool | None = None


def at(hour: int, minute: int = 0, day: tuple = DAY) -> datetime:
    return datetime(*day, hour, minute)


def test_open_session_contributes_nothing():
    result = calculate_payroll([Entry(at(7), None)], staff_house=False)
    assert result.total_hours == 0
    assert result.base_salary == 0
    assert result.undertime_hours == 0
    assert result.clock_in_time is None


def test_early_arrival_is_capped_and_not_late():
    result = calculate_payroll([Entry(at(6), at(16))], staff_house=False)
    assert result.total_hours == pytest.approx(8.5)
    assert result.undertime_hours == 0
    assert result.overtime_hours == 0
    assert result.base_salary == pytest.approx(200)


def test_late_arrival_accrues_undertime():
    result = calculate_payroll([Entry(at(8), at(15))], staff_house=False)
    assert result.undertime_hours == pytest.approx(1.0)
    assert result.total_hours == pytest.approx(7.0)
    assert result.base_salary == pytest.approx(7 * RATE)
    assert result.undertime_deduction == pytest.approx(RATE)
    assert result.total_salary == pytest.approx(6 * RATE)


def test_base_salary_is_capped_at_daily_pay():
    entries = [
        Entry(at(7, day=(2024, 3, 4)), at(15, 30, day=(2024, 3, 4))),
        Entry(at(7, day=(2024, 3, 5)), at(15, 30, day=(2024, 3, 5))),
    ]
    result = calculate_payroll(entries, staff_house=False, window_days=2)
    assert result.total_hours == pytest.approx(17.0)
    assert result.base_salary == pytest.approx(200)


def test_overtime_requires_request_and_approval():
    approved = Entry(at(7), at(17, 30), overtime_requested=True, overtime_approved=True)
    pending = Entry(at(7), at(17, 30), overtime_requested=True, overtime_approved=None)
    rejected = Entry(at(7), at(17, 30), overtime_requested=True, overtime_approved=False)

    result = calculate_payroll([approved], staff_house=False)
    assert result.overtime_hours == pytest.approx(2.0)
    assert result.overtime_pay == pytest.approx(70)
    assert result.total_hours == pytest.approx(8.5)
    assert result.total_salary == pytest.approx(270)

    for entry in (pending, rejected):
        assert calculate_payroll([entry], staff_house=False).overtime_hours == 0


def test_first_and_last_clock_are_tracked():
    entries = [Entry(at(12), at(15)), Entry(at(7), at(11))]
    result = calculate_payroll(entries, staff_house=False)
    assert result.clock_in_time == at(7)
    assert result.clock_out_time == at(15)
    assert result.total_hours == pytest.approx(7.0)


def test_entry_entirely_before_shift_is_ignored():
    result = calculate_payroll([Entry(at(5), at(6, 30))], staff_house=False)
    assert result.total_hours == 0
    assert result.undertime_hours == 0
    assert result.clock_in_time is None


@pytest.mark.parametrize(
    "staff_house, window_days, expected",
    [(False, 1, 0.0), (True, 1, 50.0), (True, 5, 250.0), (True, 7, 350.0)],
)
def test_staff_house_proration(staff_house, window_days, expected):
    assert staff_house_deduction(staff_house, window_days, PayrollRules()) == pytest.approx(expected)


def test_total_salary_has_no_floor():
    result = calculate_payroll([Entry(at(10), at(11))], staff_house=True)
    assert result.staff_house_deduction == pytest.approx(50)
    assert result.total_salary < 0
    assert result.total_salary == pytest.approx(
        compute_total_salary(result.base_salary, 0, result.undertime_deduction, 50)
    )


def test_breaktime_disabled_uses_eight_hour_day():
    rules = PayrollRules(breaktime_enabled=False)
    assert rules.standard_hours == 8.0
    assert rules.hourly_rate == pytest.approx(25.0)

    full = calculate_payroll([Entry(at(7), at(16))], staff_house=False, rules=rules)
    assert full.total_hours == pytest.approx(8.0)
    assert full.base_salary == pytest.approx(200)

    half = calculate_payroll([Entry(at(7), at(11))], staff_house=False, rules=rules)
    assert half.base_salary == pytest.approx(100)


def test_aware_timestamps_are_read_in_local_zone():
    rules = PayrollRules(tz=ZoneInfo("Asia/Manila"))
    # 00:00 UTC is 08:00 in Manila
    entry = Entry(
        datetime(2024, 3, 4, 0, 0, tzinfo=timezone.utc),
        datetime(2024, 3, 4, 7, 0, tzinfo=timezone.utc),
    )
    result = calculate_payroll([entry], staff_house=False, rules=rules)
    assert result.undertime_hours == pytest.approx(1.0)
    assert result.total_hours == pytest.approx(7.0)
    assert result.clock_in_time == at(8)
