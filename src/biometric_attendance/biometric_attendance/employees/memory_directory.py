from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional, Sequence

from .model import Employee
from .repository import EmployeeDirectory

DEMO_EMPLOYEES = (
    Employee(employee_id="E01", name="Ravi Kumar", designation="Milker", daily_rate=Decimal("650.00")),
    Employee(employee_id="E02", name="Ravi Shankar", designation="Milker", daily_rate=Decimal("650.00")),
    Employee(employee_id="E07", name="Anita Devi", designation="Shed Supervisor", daily_rate=Decimal("800.00")),
    Employee(employee_id="E09", name="Suresh Patil", designation="Feed Handler", daily_rate=Decimal("600.00")),
)


class InMemoryEmployeeDirectory(EmployeeDirectory):
    """Directory backed by a dict. Used by the memory backend and in tests."""

    def __init__(self, employees: Iterable[Employee] = DEMO_EMPLOYEES):
        self._by_id = {e.employee_id: e for e in employees}

    def list_active(self) -> Sequence[Employee]:
        return sorted((e for e in self._by_id.values() if e.is_active), key=lambda e: e.name)

    def get_active(self, employee_id: str) -> Optional[Employee]:
        e = self._by_id.get(employee_id)
        return e if e and e.is_active else None
