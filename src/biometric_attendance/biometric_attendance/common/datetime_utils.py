from __future__ import annotations

from datetime import date, datetime, timedelta

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date (YYYY-MM-DD): {value!r}")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def format_worked_duration(value: timedelta | None) -> str:
    """Render a worked duration as '8h 28m'."""
    if value is None:
        return "-"
    total_minutes = int(round(value.total_seconds() / 60))
    return f"{total_minutes // 60}h {total_minutes % 60}m"
