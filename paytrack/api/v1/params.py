"""
Query-string helpers shared by the report endpoints.

The dashboard sends lists as comma-separated strings
(``?selectedDates=2024-01-01,2024-01-02&userIds=3,5``).
"""

from __future__ import annotations

from datetime import date

from fastapi import Query

from paytrack.core.exceptions import InvalidSelectorError
from paytrack.schemas.payroll import PeriodSelector


def parse_id_list(value: str | None) -> list[int] | None:
    if not value:
        return None
    try:
        return [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise InvalidSelectorError(f"Invalid id list: {value!r}") from None


def parse_date_list(value: str | None) -> list[date] | None:
    if not value:
        return None
    try:
        return [date.fromisoformat(part.strip()) for part in value.split(",") if part.strip()]
    except ValueError:
        raise InvalidSelectorError(f"Invalid date list: {value!r}") from None


def period_selector(
    week_start: date | None = Query(default=None, alias="weekStart"),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    selected_dates: str | None = Query(default=None, alias="selectedDates"),
    user_ids: str | None = Query(default=None, alias="userIds"),
) -> PeriodSelector:
    """Build a :class:`PeriodSelector` from query parameters."""
    if start_date and end_date and start_date > end_date:
        raise InvalidSelectorError("startDate must not be after endDate")
    return PeriodSelector(
        week_start=week_start,
        start_date=start_date,
        end_date=end_date,
        selected_dates=parse_date_list(selected_dates),
        user_ids=parse_id_list(user_ids),
    )
