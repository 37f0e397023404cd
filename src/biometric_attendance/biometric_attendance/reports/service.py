from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import format_worked_duration
from ..core.exceptions import ValidationError
from ..employees.repository import EmployeeDirectory


@dataclass(frozen=True)
class PeriodSummary:
    start: date
    end: date
    rows: list[dict]


class PerformanceReportService:
    """Per-employee totals over a date range (monthly performance view)."""

    def __init__(self, attendance: AttendanceRepository, directory: EmployeeDirectory):
        self._attendance = attendance
        self._directory = directory

    def build_summary(self, *, start: date, end: date, employee_id: Optional[str] = None) -> PeriodSummary:
        if end < start:
            raise ValidationError("end_date must not be before start_date")

        employees = {e.employee_id: e for e in self._directory.list_active()}
        summary_map: dict[str, dict] = {}

        for r in self._attendance.list_between(start_date=start, end_date=end, employee_id=employee_id):
            s = summary_map.get(r.employee_id)
            if not s:
                employee = employees.get(r.employee_id)
                s = {
                    "employee_id": r.employee_id,
                    "staff_name": employee.name if employee else "",
                    "designation": employee.designation if employee else "",
                    "days_present": 0,
                    "days_closed": 0,
                    "worked": timedelta(0),
                    "total_payment": Decimal("0.00"),
                }
                summary_map[r.employee_id] = s
            s["days_present"] += 1
            s["total_payment"] += r.payment
            if r.worked_duration is not None:
                s["days_closed"] += 1
                s["worked"] += r.worked_duration

        rows = []
        for s in summary_map.values():
            worked = s.pop("worked")
            s["total_worked_seconds"] = int(worked.total_seconds())
            s["total_worked_str"] = format_worked_duration(worked)
            s["total_payment"] = f"{s['total_payment']:.2f}"
            rows.append(s)

        rows.sort(key=lambda x: (-x["total_worked_seconds"], x["employee_id"]))
        return PeriodSummary(start=start, end=end, rows=rows)
