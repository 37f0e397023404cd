from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from ...employees.model import Employee
from .base import PaymentPolicy


class FlatDailyRatePolicy(PaymentPolicy):
    """Pay the full daily rate at clock-in, whatever the hours worked."""

    def payment_for(self, employee: Employee, work_date: date) -> Decimal:
        return Decimal(employee.daily_rate).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
