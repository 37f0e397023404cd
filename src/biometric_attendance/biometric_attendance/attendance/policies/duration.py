from __future__ import annotations

from datetime import datetime, timedelta

from ...core.constants import DEFAULT_MAX_SHIFT_HOURS
from ...core.exceptions import InvalidWorkedDuration
from .base import WorkedDurationPolicy


class RejectOvernightPolicy(WorkedDurationPolicy):
    """Clock-out must fall on the clock-in day, after clock-in and within the cap."""

    def __init__(self, max_shift_hours: float = DEFAULT_MAX_SHIFT_HOURS):
        self._cap = timedelta(hours=float(max_shift_hours))

    def worked_duration(self, in_time: datetime, out_time: datetime) -> timedelta:
        if out_time.date() != in_time.date():
            raise InvalidWorkedDuration("Clock-out must be on the same day as clock-in")
        return self._checked(out_time - in_time)

    def _checked(self, duration: timedelta) -> timedelta:
        if duration <= timedelta(0):
            raise InvalidWorkedDuration("Clock-out time must be after clock-in time")
        if duration > self._cap:
            raise InvalidWorkedDuration(f"Worked duration exceeds {self._cap}")
        return duration


class WrapOvernightPolicy(RejectOvernightPolicy):
    """A shift may run past midnight; an earlier clock-out time is read as the next day."""

    def worked_duration(self, in_time: datetime, out_time: datetime) -> timedelta:
        if out_time < in_time:
            out_time = out_time + timedelta(days=1)
        return self._checked(out_time - in_time)
