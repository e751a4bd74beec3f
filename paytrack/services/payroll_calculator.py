"""
Payroll calculator — turns raw clock-in/clock-out rows into paid hours and pay.

Pure functions only: no database, no settings lookups. Everything the rules
depend on (shift boundaries, rates, the breaktime toggle) arrives through a
:class:`PayrollRules` value so callers can inject per-request configuration.

Per entry, then summed:

* open sessions (no ``clock_out``) are skipped;
* work only counts from shift start (07:00) on the entry's calendar day;
* lateness past shift start accrues as undertime;
* overtime accrues past shift end (15:30) only when requested *and* approved;
* each entry's worked hours are capped at the standard day before summing.

Pay is then ``min(hours * rate, daily base pay)`` plus overtime, minus
undertime and the prorated staff-house charge. No floor is applied.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Protocol

SECONDS_PER_HOUR = 3600.0


class ClockEntry(Protocol):
    clock_in: datetime
    clock_out: datetime | None
    overtime_requested: bool
    overtime_approved: bool | None


@dataclass(frozen=True)
class PayrollRules:
    shift_start: time = time(7, 0)
    shift_end: time = time(15, 30)
    daily_base_pay: float = 200.0
    overtime_rate: float = 35.0
    staff_house_weekly: float = 250.0
    staff_house_workdays: int = 5
    breaktime_enabled: bool = True
    # Zone used to read aware timestamps as wall-clock time.
    tz: tzinfo = field(default=timezone.utc)

    @property
    def standard_hours(self) -> float:
        """Paid hours in a standard day: 8.5 with the paid break, else 8."""
        return 8.5 if self.breaktime_enabled else 8.0

    @property
    def hourly_rate(self) -> float:
        return self.daily_base_pay / self.standard_hours


@dataclass
class PayrollResult:
    total_hours: float = 0.0
    overtime_hours: float = 0.0
    undertime_hours: float = 0.0
    base_salary: float = 0.0
    overtime_pay: float = 0.0
    undertime_deduction: float = 0.0
    staff_house_deduction: float = 0.0
    total_salary: float = 0.0
    clock_in_time: datetime | None = None
    clock_out_time: datetime | None = None


def _hours(delta: timedelta) -> float:
    return delta.total_seconds() / SECONDS_PER_HOUR


def _wall_clock(dt: datetime, tz: tzinfo) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(tz).replace(tzinfo=None)


def compute_total_salary(
    base_salary: float,
    overtime_pay: float,
    undertime_deduction: float,
    staff_house_deduction: float,
) -> float:
    """Net pay. Shared by calculation and manual edits; may be negative."""
    return base_salary + overtime_pay - undertime_deduction - staff_house_deduction


def staff_house_deduction(
    staff_house: bool, window_days: int, rules: PayrollRules
) -> float:
    """Weekly staff-house charge prorated per calendar day of the window."""
    if not staff_house:
        return 0.0
    return rules.staff_house_weekly * window_days / rules.staff_house_workdays


def calculate_payroll(
    entries: Iterable[ClockEntry],
    staff_house: bool,
    rules: PayrollRules | None = None,
    window_days: int = 1,
) -> PayrollResult:
    """Compute hours and pay for one user's entries over one payslip window."""
    rules = rules or PayrollRules()
    standard_hours = rules.standard_hours

    total_hours = 0.0
    overtime_hours = 0.0
    undertime_hours = 0.0
    first_in: datetime | None = None
    last_out: datetime | None = None

    for entry in sorted(entries, key=lambda e: _wall_clock(e.clock_in, rules.tz)):
        if entry.clock_out is None:
            continue

        clock_in = _wall_clock(entry.clock_in, rules.tz)
        clock_out = _wall_clock(entry.clock_out, rules.tz)
        shift_start = datetime.combine(clock_in.date(), rules.shift_start)
        shift_end = datetime.combine(clock_in.date(), rules.shift_end)

        effective_in = max(clock_in, shift_start)
        worked = max(0.0, _hours(clock_out - effective_in))
        if worked <= 0:
            continue

        if first_in is None or clock_in < first_in:
            first_in = clock_in
        if last_out is None or clock_out > last_out:
            last_out = clock_out

        if clock_in > shift_start:
            undertime_hours += _hours(clock_in - shift_start)

        if entry.overtime_requested and entry.overtime_approved and clock_out > shift_end:
            overtime_hours += _hours(clock_out - shift_end)

        total_hours += min(worked, standard_hours)

    base_salary = min(total_hours * rules.hourly_rate, rules.daily_base_pay)
    overtime_pay = overtime_hours * rules.overtime_rate
    undertime_deduction = undertime_hours * rules.hourly_rate
    staff_house = staff_house_deduction(staff_house, window_days, rules)

    return PayrollResult(
        total_hours=total_hours,
        overtime_hours=overtime_hours,
        undertime_hours=undertime_hours,
        base_salary=base_salary,
        overtime_pay=overtime_pay,
        undertime_deduction=undertime_deduction,
        staff_house_deduction=staff_house,
        total_salary=compute_total_salary(
            base_salary, overtime_pay, undertime_deduction, staff_house
        ),
        clock_in_time=first_in,
        clock_out_time=last_out,
    )
