from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from ..core.enums import ConflictReason
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, db_transaction, fetchall, fetchone
from .model import AttendanceRecord, CommitResult, Conflict, Created
from .repository import AttendanceRepository, CommitGateway
from .state_machine import AttendanceStateMachine

logger = logging.getLogger(__name__)

_COLUMNS = """
    attendance_id, employee_id, work_date, in_time, out_time, worked_seconds,
    payment, remarks, in_commit_key, out_commit_key, out_frame_ref
"""


def _to_record(r: Dict[str, Any]) -> AttendanceRecord:
    worked = r.get("worked_seconds")
    return AttendanceRecord(
        record_id=int(r["attendance_id"]),
        employee_id=str(r["employee_id"]),
        work_date=r["work_date"],
        in_time=r["in_time"],
        out_time=r.get("out_time"),
        payment=Decimal(str(r["payment"])),
        worked_duration=timedelta(seconds=int(worked)) if worked is not None else None,
        remarks=r.get("remarks"),
        in_commit_key=r.get("in_commit_key"),
        out_commit_key=r.get("out_commit_key"),
        out_frame_ref=r.get("out_frame_ref"),
    )


class MySQLAttendanceRepository(AttendanceRepository, CommitGateway):
    """MySQL-backed reads and commit gateway.

    create_in relies on UNIQUE(employee_id, work_date); mark_out locks the
    row with SELECT ... FOR UPDATE and re-checks the rules before writing.
    """

    def __init__(self, conn_factory: DatabaseConnection, state_machine: Optional[AttendanceStateMachine] = None):
        self._conn_factory = conn_factory
        self._machine = state_machine or AttendanceStateMachine()

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s", (int(record_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_for_employee_and_date(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE employee_id=%s AND work_date=%s",
                (employee_id, work_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_recent_for_employee(self, employee_id: str, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE employee_id=%s
                ORDER BY work_date DESC
                LIMIT %s
                """,
                (employee_id, int(limit)),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_between(
        self,
        *,
        start_date: date,
        end_date: date,
        employee_id: Optional[str] = None,
    ) -> Sequence[AttendanceRecord]:
        clauses = ["work_date BETWEEN %s AND %s"]
        params: list[object] = [start_date, end_date]
        if employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(employee_id)
        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE {where}
                ORDER BY work_date DESC, in_time DESC
                """,
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]

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
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    """
                    INSERT INTO attendance_records(employee_id, work_date, in_time, payment, remarks, in_commit_key)
                    VALUES(%s,%s,%s,%s,%s,%s)
                    """,
                    (employee_id, work_date, in_time, payment, remarks, commit_key),
                )
            except IntegrityError as exc:
                if exc.errno != errorcode.ER_DUP_ENTRY:
                    raise
                cur.execute(
                    f"""
                    SELECT {_COLUMNS} FROM attendance_records
                    WHERE in_commit_key=%s OR (employee_id=%s AND work_date=%s)
                    """,
                    (commit_key, employee_id, work_date),
                )
                rows = [_to_record(r) for r in fetchall(cur)]
                for existing in rows:
                    if existing.in_commit_key == commit_key:
                        return Created(existing)
                logger.info("Clock-in conflict for %s on %s", employee_id, work_date)
                return Conflict(
                    ConflictReason.ALREADY_MARKED,
                    f"Attendance already recorded for {employee_id} on {work_date.isoformat()}",
                    rows[0] if rows else None,
                )

            return Created(
                AttendanceRecord(
                    record_id=int(cur.lastrowid),
                    employee_id=employee_id,
                    work_date=work_date,
                    in_time=in_time,
                    out_time=None,
                    payment=payment,
                    remarks=remarks,
                    in_commit_key=commit_key,
                )
            )

    def mark_out(
        self,
        *,
        record_id: int,
        out_time: datetime,
        frame_ref: Optional[str],
        resolved_employee_id: str,
        commit_key: str,
    ) -> CommitResult:
        with db_transaction(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s FOR UPDATE",
                (int(record_id),),
            )
            r = fetchone(cur)
            record = _to_record(r) if r else None
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

            cur.execute(
                """
                UPDATE attendance_records
                SET out_time=%s, worked_seconds=%s, out_commit_key=%s, out_frame_ref=%s
                WHERE attendance_id=%s AND out_time IS NULL AND employee_id=%s
                """,
                (
                    outcome.out_time,
                    int(outcome.worked_duration.total_seconds()),
                    commit_key,
                    frame_ref,
                    outcome.record_id,
                    resolved_employee_id,
                ),
            )
            if cur.rowcount != 1:
                return Conflict(ConflictReason.ALREADY_CLOSED, "Attendance already closed for this record", record)
            return Created(outcome)
