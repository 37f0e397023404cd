from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Employee:
    """Domain entity: a staff member on the roster.

    Read-only here; the enrolled face template lives with the recognizer.
    """

    employee_id: str
    name: str
    designation: str
    daily_rate: Decimal
    is_active: bool = True
