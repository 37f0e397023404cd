from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import AttendanceState
from ..core.exceptions import RecordNotFound, ValidationError
from ..employees.model import Employee
from ..employees.repository import EmployeeDirectory
from .model import AttendanceRecord, PendingMarkIn, PendingMarkOut
from .repository import AttendanceRepository
from .state_machine import AttendanceStateMachine


@dataclass(frozen=True)
class AttendanceRowUI:
    id: int
    date: str
    employee_id: str
    staff_name: str
    designation: str
    in_time: str
    out_time: str
    worked_hours_str: str
    payment: str
    remarks: str
    state: str


class AttendanceService:
    """Reads plus the advisory precheck in front of the Verification Gate.

    The precheck is a fast-fail convenience only; the commit gateway
    re-validates under its own atomic write.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        directory: EmployeeDirectory,
        *,
        state_machine: Optional[AttendanceStateMachine] = None,
    ):
        self._attendance = attendance
        self._directory = directory
        self._machine = state_machine or AttendanceStateMachine()

    @property
    def state_machine(self) -> AttendanceStateMachine:
        return self._machine

    def state_for(self, employee_id: str, work_date: date) -> AttendanceState:
        return self._machine.state_of(self._attendance.get_for_employee_and_date(employee_id, work_date))

    def precheck_mark_in(self, employee: Employee, *, remarks: str, now: datetime | None = None) -> PendingMarkIn:
        now = now or now_local()
        existing = self._attendance.get_for_employee_and_date(employee.employee_id, now.date())
        return self._machine.plan_mark_in(employee, at=now, existing=existing, remarks=remarks)

    def find_mark_out_target(
        self,
        *,
        resolved_employee_id: str,
        record_id: int | None = None,
        employee_hint: str | None = None,
        today: date,
    ) -> Optional[AttendanceRecord]:
        """Record a clock-out applies to.

        Without an explicit record id: today's record, else a record from
        yesterday that is still open (a shift past midnight). The duration
        policy decides whether that overnight clock-out is allowed.
        """
        if record_id is not None:
            return self._attendance.get_by_id(int(record_id))
        employee_id = employee_hint or resolved_employee_id
        record = self._attendance.get_for_employee_and_date(employee_id, today)
        if record is not None:
            return record
        for earlier in self._attendance.get_recent_for_employee(employee_id, 1):
            if earlier.out_time is None and earlier.work_date == today - timedelta(days=1):
                return earlier
        return None

    def precheck_mark_out(
        self,
        *,
        resolved_employee_id: str,
        record_id: int | None = None,
        employee_hint: str | None = None,
        now: datetime | None = None,
    ) -> PendingMarkOut:
        now = now or now_local()
        record = self.find_mark_out_target(
            resolved_employee_id=resolved_employee_id,
            record_id=record_id,
            employee_hint=employee_hint,
            today=now.date(),
        )
        return self._machine.plan_mark_out(record, resolved_employee_id=resolved_employee_id, at=now)

    def get_record(self, record_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(int(record_id))
        if record is None:
            raise RecordNotFound("Attendance record not found")
        return record

    def list_records(
        self,
        *,
        start: date,
        end: date,
        search: str = "",
        employee_id: str | None = None,
    ) -> list[dict]:
        if end < start:
            raise ValidationError("end_date must not be before start_date")
        employees = {e.employee_id: e for e in self._directory.list_active()}
        term = (search or "").strip().lower()

        rows = []
        for r in self._attendance.list_between(start_date=start, end_date=end, employee_id=employee_id):
            ui = self._to_ui(r, employees.get(r.employee_id))
            if term and not any(term in v.lower() for v in (ui["employee_id"], ui["staff_name"], ui["designation"])):
                continue
            rows.append(ui)
        return rows

    def get_history_ui(self, employee_id: str, *, limit: int = DEFAULT_HISTORY_LIMIT) -> list[dict]:
        employee = self._directory.get_active(employee_id)
        return [self._to_ui(r, employee) for r in self._attendance.get_recent_for_employee(employee_id, limit)]

    @staticmethod
    def _to_ui(r: AttendanceRecord, employee: Optional[Employee]) -> dict:
        row = AttendanceRowUI(
            id=r.record_id,
            date=r.work_date.strftime("%Y-%m-%d"),
            employee_id=r.employee_id,
            staff_name=employee.name if employee else "",
            designation=employee.designation if employee else "",
            in_time=r.in_time.strftime("%H:%M:%S"),
            out_time=r.out_time.strftime("%H:%M:%S") if r.out_time else "-",
            worked_hours_str=r.worked_hours_str or "-",
            payment=f"{r.payment:.2f}",
            remarks=r.remarks or "",
            state=r.state.value,
        )
        return asdict(row)
