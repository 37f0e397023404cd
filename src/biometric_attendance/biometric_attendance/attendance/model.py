from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional, Union

from ..common.datetime_utils import format_worked_duration
from ..core.enums import AttendanceState, ConflictReason


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one employee's attendance for one day."""

    record_id: int
    employee_id: str
    work_date: date
    in_time: datetime
    out_time: Optional[datetime]
    payment: Decimal
    worked_duration: Optional[timedelta] = None
    remarks: Optional[str] = None
    in_commit_key: Optional[str] = None
    out_commit_key: Optional[str] = None
    out_frame_ref: Optional[str] = None

    @property
    def state(self) -> AttendanceState:
        return AttendanceState.OPEN if self.out_time is None else AttendanceState.CLOSED

    @property
    def worked_hours_str(self) -> Optional[str]:
        return format_worked_duration(self.worked_duration) if self.worked_duration is not None else None

    def closed(
        self,
        *,
        out_time: datetime,
        worked_duration: timedelta,
        commit_key: Optional[str],
        frame_ref: Optional[str],
    ) -> "AttendanceRecord":
        return replace(
            self,
            out_time=out_time,
            worked_duration=worked_duration,
            out_commit_key=commit_key,
            out_frame_ref=frame_ref,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.record_id,
            "employee_id": self.employee_id,
            "date": self.work_date.isoformat(),
            "in_time": self.in_time.strftime("%H:%M:%S"),
            "out_time": self.out_time.strftime("%H:%M:%S") if self.out_time else None,
            "worked_hours_str": self.worked_hours_str,
            "payment": str(self.payment),
            "remarks": self.remarks,
            "state": self.state.value,
        }


@dataclass(frozen=True)
class PendingMarkIn:
    """A clock-in that passed the local precheck but is not committed."""

    employee_id: str
    work_date: date
    in_time: datetime
    payment: Decimal
    remarks: str

    def to_dict(self) -> dict:
        return {
            "type": "in",
            "employee_id": self.employee_id,
            "date": self.work_date.isoformat(),
            "in_time": self.in_time.strftime("%H:%M:%S"),
            "payment": str(self.payment),
            "remarks": self.remarks,
        }


@dataclass(frozen=True)
class PendingMarkOut:
    record_id: int
    employee_id: str
    work_date: date
    in_time: datetime
    out_time: datetime
    worked_duration: timedelta
    payment: Decimal
    remarks: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "type": "out",
            "record_id": self.record_id,
            "employee_id": self.employee_id,
            "date": self.work_date.isoformat(),
            "in_time": self.in_time.strftime("%H:%M:%S"),
            "out_time": self.out_time.strftime("%H:%M:%S"),
            "worked_hours_str": format_worked_duration(self.worked_duration),
            "payment": str(self.payment),
            "remarks": self.remarks,
        }


PendingMutation = Union[PendingMarkIn, PendingMarkOut]


@dataclass(frozen=True)
class Created:
    record: AttendanceRecord


@dataclass(frozen=True)
class Conflict:
    reason: ConflictReason
    message: str
    record: Optional[AttendanceRecord] = None


CommitResult = Union[Created, Conflict]
