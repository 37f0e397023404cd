from __future__ import annotations

from dataclasses import dataclass

from ...core.constants import DEFAULT_MAX_SHIFT_HOURS
from ...core.enums import OvernightPolicy
from .base import PaymentPolicy, WorkedDurationPolicy
from .duration import RejectOvernightPolicy, WrapOvernightPolicy
from .payment import FlatDailyRatePolicy


@dataclass
class PolicyFactory:
    """Factory Pattern: choose policies from configuration values."""

    def payment_policy(self) -> PaymentPolicy:
        return FlatDailyRatePolicy()

    def duration_policy(
        self,
        overnight: OvernightPolicy | str = OvernightPolicy.REJECT,
        *,
        max_shift_hours: float = DEFAULT_MAX_SHIFT_HOURS,
    ) -> WorkedDurationPolicy:
        if not isinstance(overnight, OvernightPolicy):
            overnight = OvernightPolicy(str(overnight).strip().lower())
        if overnight == OvernightPolicy.WRAP:
            return WrapOvernightPolicy(max_shift_hours)
        return RejectOvernightPolicy(max_shift_hours)
