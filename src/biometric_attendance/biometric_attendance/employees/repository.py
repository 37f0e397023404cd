from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Employee


class EmployeeDirectory(Protocol):
    """Read-only view of the employee directory.

    Note (DIP): services depend on this interface, not on a concrete store.
    """

    def list_active(self) -> Sequence[Employee]:
        raise NotImplementedError

    def get_active(self, employee_id: str) -> Optional[Employee]:
        raise NotImplementedError
