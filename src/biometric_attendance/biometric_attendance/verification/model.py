from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..attendance.model import PendingMutation, PendingMarkIn
from ..core.enums import CaptureMode
from ..employees.model import Employee
from ..recognition.model import ResolvedCandidate


@dataclass(frozen=True)
class VerificationRequest:
    """A resolved but unconfirmed attendance mutation awaiting a human decision.

    Transient: never persisted. `commit_key` doubles as the request id and
    as the idempotency key handed to the commit gateway.
    """

    commit_key: str
    mode: CaptureMode
    employee: Employee
    mutation: PendingMutation
    created_at: datetime
    frame_ref: Optional[str] = None
    candidates: tuple[ResolvedCandidate, ...] = field(default_factory=tuple)

    @property
    def disambiguated(self) -> bool:
        return len(self.candidates) > 1

    def to_dict(self) -> dict:
        return {
            "request_id": self.commit_key,
            "type": "in" if isinstance(self.mutation, PendingMarkIn) else "out",
            "employee": {
                "employee_id": self.employee.employee_id,
                "name": self.employee.name,
                "designation": self.employee.designation,
            },
            "record": self.mutation.to_dict(),
            "matched_employees": [c.to_dict() for c in self.candidates] if self.disambiguated else [],
        }
