from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta
from decimal import Decimal

from ...employees.model import Employee


class PaymentPolicy(ABC):
    """Strategy: how much a clock-in is worth."""

    @abstractmethod
    def payment_for(self, employee: Employee, work_date: date) -> Decimal:
        raise NotImplementedError


class WorkedDurationPolicy(ABC):
    """Strategy: how out - in becomes a worked duration.

    Raises InvalidWorkedDuration for durations the policy refuses.
    """

    @abstractmethod
    def worked_duration(self, in_time: datetime, out_time: datetime) -> timedelta:
        raise NotImplementedError
