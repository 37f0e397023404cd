from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ..core.enums import RecognitionFailure
from ..recognition.model import ResolvedCandidate
from ..verification.model import VerificationRequest


@dataclass(frozen=True)
class RetryCapture:
    """Recognition failed but attempts remain; capture again with a new challenge."""

    failure: RecognitionFailure
    message: str
    attempts_left: int

    def to_dict(self) -> dict:
        return {
            "status": "retry",
            "failure": self.failure.value,
            "message": self.message,
            "attempts_left": self.attempts_left,
        }


@dataclass(frozen=True)
class AwaitingSelection:
    candidates: tuple[ResolvedCandidate, ...]

    def to_dict(self) -> dict:
        return {
            "status": "disambiguation",
            "message": "Multiple matches detected. Select the employee to continue",
            "candidates": [c.to_dict() for c in self.candidates],
        }


@dataclass(frozen=True)
class AwaitingConfirmation:
    request: VerificationRequest

    def to_dict(self) -> dict:
        return {"status": "awaiting_confirmation", "verification": self.request.to_dict()}


KioskStep = Union[RetryCapture, AwaitingSelection, AwaitingConfirmation]
