from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..common.validators import require_non_negative_decimal
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Employee
from .repository import EmployeeDirectory


def _to_employee(row: Dict[str, Any]) -> Employee:
    return Employee(
        employee_id=str(row["employee_id"]),
        name=row["name"],
        designation=row.get("designation") or "",
        daily_rate=require_non_negative_decimal(row["daily_rate"], "daily_rate"),
        is_active=bool(row.get("is_active", True)),
    )


class MySQLEmployeeDirectory(EmployeeDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_active(self) -> Sequence[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT employee_id, name, designation, daily_rate, is_active
                FROM employees
                WHERE is_active=1
                ORDER BY name ASC
                """
            )
            return [_to_employee(r) for r in fetchall(cur)]

    def get_active(self, employee_id: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT employee_id, name, designation, daily_rate, is_active
                FROM employees
                WHERE employee_id=%s AND is_active=1
                """,
                (employee_id,),
            )
            row = fetchone(cur)
            return _to_employee(row) if row else None
