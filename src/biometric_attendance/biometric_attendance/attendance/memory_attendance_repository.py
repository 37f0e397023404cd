from __future__ import annotations

import logging
import threading
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import ConflictReason
from .model import AttendanceRecord, CommitResult, Conflict, Created
from .repository import AttendanceRepository, CommitGateway
from .state_machine import AttendanceStateMachine

logger = logging.getLogger(__name__)


class InMemoryAttendanceRepository(AttendanceRepository, CommitGateway):
    """Process-local store. A single lock makes each write check-and-set atomic."""

    def __init__(self, state_machine: Optional[AttendanceStateMachine] = None):
        self._machine = state_machine or AttendanceStateMachine()
        self._lock = threading.Lock()
        self._by_id: dict[int, AttendanceRecord] = {}
        self._by_employee_day: dict[tuple[str, date], int] = {}
        self._by_in_key: dict[str, int] = {}
        self._next_id = 1

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        with self._lock:
            return self._by_id.get(int(record_id))

    def get_for_employee_and_date(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        with self._lock:
            rid = self._by_employee_day.get((employee_id, work_date))
            return self._by_id.get(rid) if rid is not None else None

    def get_recent_for_employee(self, employee_id: str, limit: int) -> Sequence[AttendanceRecord]:
        with self._lock:
            items = [r for r in self._by_id.values() if r.employee_id == employee_id]
        items.sort(key=lambda r: r.in_time, reverse=True)
        return items[: int(limit)]

    def list_between(
        self,
        *,
        start_date: date,
        end_date: date,
        employee_id: Optional[str] = None,
    ) -> Sequence[AttendanceRecord]:
        with self._lock:
            items = [
                r
                for r in self._by_id.values()
                if start_date <= r.work_date <= end_date and (employee_id is None or r.employee_id == employee_id)
            ]
        items.sort(key=lambda r: (r.work_date, r.in_time), reverse=True)
        return items

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
        with self._lock:
            replay = self._by_in_key.get(commit_key)
            if replay is not None:
                return Created(self._by_id[replay])

            existing = self._by_employee_day.get((employee_id, work_date))
            if existing is not None:
                logger.info("Clock-in conflict for %s on %s", employee_id, work_date)
                return Conflict(
                    ConflictReason.ALREADY_MARKED,
                    f"Attendance already recorded for {employee_id} on {work_date.isoformat()}",
                    self._by_id[existing],
                )

            record = AttendanceRecord(
                record_id=self._next_id,
                employee_id=employee_id,
                work_date=work_date,
                in_time=in_time,
                out_time=None,
                payment=payment,
                remarks=remarks,
                in_commit_key=commit_key,
            )
            self._next_id += 1
            self._by_id[record.record_id] = record
            self._by_employee_day[(employee_id, work_date)] = record.record_id
            self._by_in_key[commit_key] = record.record_id
            return Created(record)

    def mark_out(
        self,
        *,
        record_id: int,
        out_time: datetime,
        frame_ref: Optional[str],
        resolved_employee_id: str,
        commit_key: str,
    ) -> CommitResult:
        with self._lock:
            record = self._by_id.get(int(record_id))
            if record is not None and record.out_commit_key == commit_key:
                return Created(record)

            outcome = self._machine.close(
                record,
                resolved_employee_id=resolved_employee_id,
                out_time=out_time,
                commit_key=commit_key,
                frame_ref=frame_ref,
            )
            if isinstance(outcome, Conflict):
                logger.info("Clock-out conflict on record %s: %s", record_id, outcome.reason.value)
                return outcome
            self._by_id[outcome.record_id] = outcome
            return Created(outcome)
