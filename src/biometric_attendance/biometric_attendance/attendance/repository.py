from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord, CommitResult


class AttendanceRepository(Protocol):
    """Read side of the attendance store. Reads are advisory only."""

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_employee_and_date(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_recent_for_employee(self, employee_id: str, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_between(
        self,
        *,
        start_date: date,
        end_date: date,
        employee_id: Optional[str] = None,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError


class CommitGateway(Protocol):
    """The only place attendance invariants become durable.

    Both writes are atomic with respect to "one record per employee per
    day" and "only the clocked-in employee clocks out"; conflicts come
    back as Conflict values, never as a silent no-op.
    """

    def create_in(
        self,
        *,
        employee_id: str,
        work_date: date,
        in_time: datetime,
        payment: Decimal,
        remarks: Optional[str],
        commit_key: str,
    ) -> CommitResult:
        raise NotImplementedError

    def mark_out(
        self,
        *,
        record_id: int,
        out_time: datetime,
        frame_ref: Optional[str],
        resolved_employee_id: str,
        commit_key: str,
    ) -> CommitResult:
        raise NotImplementedError
