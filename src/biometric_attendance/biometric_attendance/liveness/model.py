from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..core.enums import ChallengeAction


@dataclass(frozen=True)
class Challenge:
    """A randomized, time-boxed action bound to one capture session."""

    token: str
    session_id: str
    action: ChallengeAction
    issued_at: datetime
    expires_at: datetime

    def is_open_at(self, moment: datetime) -> bool:
        return self.issued_at <= moment <= self.expires_at

    def to_dict(self) -> dict:
        return {
            "token": self.token,
            "action": self.action.value,
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }
