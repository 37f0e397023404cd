"""Per (employee, day) attendance transitions.

NoRecord --MarkIn--> Open(in_time) --MarkOut--> Closed(in, out, duration, payment)

The same rules back the advisory precheck in AttendanceService and the
authoritative re-check the commit gateways run inside their write.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..core.enums import AttendanceState, ConflictReason
from ..core.exceptions import AlreadyMarked, InvalidWorkedDuration, violation_for
from ..employees.model import Employee
from .model import AttendanceRecord, Conflict, PendingMarkIn, PendingMarkOut
from .policies.base import PaymentPolicy, WorkedDurationPolicy
from .policies.duration import RejectOvernightPolicy
from .policies.payment import FlatDailyRatePolicy


class AttendanceStateMachine:
    def __init__(
        self,
        *,
        payment_policy: Optional[PaymentPolicy] = None,
        duration_policy: Optional[WorkedDurationPolicy] = None,
    ):
        self.payment_policy = payment_policy or FlatDailyRatePolicy()
        self.duration_policy = duration_policy or RejectOvernightPolicy()

    @staticmethod
    def state_of(record: Optional[AttendanceRecord]) -> AttendanceState:
        return AttendanceState.NO_RECORD if record is None else record.state

    def plan_mark_in(
        self,
        employee: Employee,
        *,
        at: datetime,
        existing: Optional[AttendanceRecord],
        remarks: str,
    ) -> PendingMarkIn:
        if self.state_of(existing) != AttendanceState.NO_RECORD:
            raise AlreadyMarked(f"Attendance already recorded for {employee.employee_id} on {at.date().isoformat()}")
        return PendingMarkIn(
            employee_id=employee.employee_id,
            work_date=at.date(),
            in_time=at,
            payment=self.payment_policy.payment_for(employee, at.date()),
            remarks=remarks,
        )

    def plan_mark_out(
        self,
        record: Optional[AttendanceRecord],
        *,
        resolved_employee_id: str,
        at: datetime,
    ) -> PendingMarkOut:
        conflict = self.mark_out_conflict(record, resolved_employee_id)
        if conflict is not None:
            raise violation_for(conflict.reason, conflict.message)
        return PendingMarkOut(
            record_id=record.record_id,
            employee_id=record.employee_id,
            work_date=record.work_date,
            in_time=record.in_time,
            out_time=at,
            worked_duration=self.duration_policy.worked_duration(record.in_time, at),
            payment=record.payment,
            remarks=record.remarks,
        )

    @staticmethod
    def mark_out_conflict(record: Optional[AttendanceRecord], resolved_employee_id: str) -> Optional[Conflict]:
        """Return the rule a clock-out against `record` breaks, if any."""
        if record is None:
            return Conflict(ConflictReason.NOT_FOUND, "Attendance record not found")
        if record.state == AttendanceState.CLOSED:
            return Conflict(ConflictReason.ALREADY_CLOSED, "Attendance already closed for this record", record)
        if record.employee_id != resolved_employee_id:
            return Conflict(ConflictReason.IDENTITY_MISMATCH, "Employee does not match attendance record", record)
        return None

    def close(
        self,
        record: Optional[AttendanceRecord],
        *,
        resolved_employee_id: str,
        out_time: datetime,
        commit_key: Optional[str] = None,
        frame_ref: Optional[str] = None,
    ) -> AttendanceRecord | Conflict:
        """Apply MarkOut to `record`, or return the Conflict that prevents it."""
        conflict = self.mark_out_conflict(record, resolved_employee_id)
        if conflict is not None:
            return conflict
        try:
            duration = self.duration_policy.worked_duration(record.in_time, out_time)
        except InvalidWorkedDuration as exc:
            return Conflict(ConflictReason.INVALID_DURATION, str(exc), record)
        return record.closed(out_time=out_time, worked_duration=duration, commit_key=commit_key, frame_ref=frame_ref)
