from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ..core.enums import RecognitionFailure
from ..employees.model import Employee


@dataclass(frozen=True)
class Candidate:
    """Raw recognizer answer: an employee id and a confidence in [0, 1]."""

    employee_id: str
    confidence: float


@dataclass(frozen=True)
class ResolvedCandidate:
    employee: Employee
    confidence: float

    @property
    def employee_id(self) -> str:
        return self.employee.employee_id

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee.employee_id,
            "name": self.employee.name,
            "designation": self.employee.designation,
            "confidence": round(self.confidence, 4),
        }


@dataclass(frozen=True)
class NoMatch:
    failure: RecognitionFailure
    message: str


@dataclass(frozen=True)
class Single:
    candidate: ResolvedCandidate


@dataclass(frozen=True)
class Ambiguous:
    """Two or more plausible identities; a human must pick one."""

    candidates: tuple[ResolvedCandidate, ...]

    def find(self, employee_id: str) -> ResolvedCandidate | None:
        for c in self.candidates:
            if c.employee_id == employee_id:
                return c
        return None


ResolutionOutcome = Union[NoMatch, Single, Ambiguous]
