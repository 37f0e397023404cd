from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError, OperationalError

from src.biometric_attendance.biometric_attendance.attendance.model import Conflict, Created
from src.biometric_attendance.biometric_attendance.attendance.mysql_attendance_repository import (
    MySQLAttendanceRepository,
)
from src.biometric_attendance.biometric_attendance.core.enums import ConflictReason
from src.biometric_attendance.biometric_attendance.core.exceptions import PersistenceError


class FakeCursor:
    """Answers each execute() from a script of (result rows | exception)."""

    def __init__(self, script):
        self.script = list(script)
        self.executed = []
        self.rows = []
        self.rowcount = 0
        self.lastrowid = None

    def execute(self, sql, params=None):
        self.executed.append((" ".join(sql.split()), params))
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        if isinstance(step, int):
            self.rowcount = step
            self.lastrowid = 41
            self.rows = []
        else:
            self.rows = step

    def fetchone(self):
        return self.rows[0] if self.rows else None

    def fetchall(self):
        return self.rows

    def close(self):
        pass


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.committed = False
        self.rolled_back = False
        self.isolation = None

    def cursor(self, dictionary=True):
        return self._cursor

    def start_transaction(self, isolation_level=None):
        self.isolation = isolation_level

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        pass


class FakeFactory:
    def __init__(self, *script):
        self.cursor = FakeCursor(script)
        self.conn = FakeConnection(self.cursor)

    def connect(self, *, database=True):
        return self.conn


IN_AT = datetime(2024, 3, 1, 9, 2)


def _row(**overrides):
    row = {
        "attendance_id": 7,
        "employee_id": "E07",
        "work_date": date(2024, 3, 1),
        "in_time": IN_AT,
        "out_time": None,
        "worked_seconds": None,
        "payment": Decimal("800.00"),
        "remarks": None,
        "in_commit_key": "first",
        "out_commit_key": None,
        "out_frame_ref": None,
    }
    row.update(overrides)
    return row


def _create(repo, key):
    return repo.create_in(
        employee_id="E07",
        work_date=IN_AT.date(),
        in_time=IN_AT,
        payment=Decimal("800.00"),
        remarks=None,
        commit_key=key,
    )


def _dup():
    return IntegrityError(msg="Duplicate entry", errno=errorcode.ER_DUP_ENTRY)


def test_create_in_inserts_once():
    factory = FakeFactory(1)

    result = _create(MySQLAttendanceRepository(factory), "first")

    assert isinstance(result, Created)
    assert result.record.record_id == 41
    assert factory.conn.committed


def test_duplicate_day_is_already_marked():
    factory = FakeFactory(_dup(), [_row()])

    result = _create(MySQLAttendanceRepository(factory), "second")

    assert isinstance(result, Conflict)
    assert result.reason == ConflictReason.ALREADY_MARKED
    assert result.record.record_id == 7


def test_duplicate_commit_key_is_a_replay():
    factory = FakeFactory(_dup(), [_row()])

    result = _create(MySQLAttendanceRepository(factory), "first")

    assert isinstance(result, Created)
    assert result.record.record_id == 7


def test_connector_errors_become_persistence_errors():
    factory = FakeFactory(OperationalError(msg="Lost connection", errno=2013))

    with pytest.raises(PersistenceError):
        _create(MySQLAttendanceRepository(factory), "first")
    assert factory.conn.rolled_back


def test_mark_out_locks_row_and_updates():
    factory = FakeFactory([_row()], 1)
    out_at = datetime(2024, 3, 1, 17, 30)

    result = MySQLAttendanceRepository(factory).mark_out(
        record_id=7, out_time=out_at, frame_ref="abc", resolved_employee_id="E07", commit_key="out"
    )

    assert isinstance(result, Created)
    assert result.record.worked_duration == timedelta(hours=8, minutes=28)
    assert factory.conn.isolation == "SERIALIZABLE"
    select_sql, _ = factory.cursor.executed[0]
    update_sql, params = factory.cursor.executed[1]
    assert select_sql.endswith("FOR UPDATE")
    assert "out_time IS NULL" in update_sql
    assert params[1] == 8 * 3600 + 28 * 60


def test_mark_out_identity_mismatch_writes_nothing():
    factory = FakeFactory([_row()])

    result = MySQLAttendanceRepository(factory).mark_out(
        record_id=7, out_time=datetime(2024, 3, 1, 17, 30), frame_ref=None, resolved_employee_id="E09", commit_key="out"
    )

    assert result.reason == ConflictReason.IDENTITY_MISMATCH
    assert len(factory.cursor.executed) == 1


def test_mark_out_lost_race_is_already_closed():
    factory = FakeFactory([_row()], 0)

    result = MySQLAttendanceRepository(factory).mark_out(
        record_id=7, out_time=datetime(2024, 3, 1, 17, 30), frame_ref=None, resolved_employee_id="E07", commit_key="out"
    )

    assert isinstance(result, Conflict)
    assert result.reason == ConflictReason.ALREADY_CLOSED
