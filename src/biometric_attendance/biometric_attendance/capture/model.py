from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import CaptureMode, SessionState
from ..liveness.model import Challenge


@dataclass(frozen=True)
class Frame:
    """One captured image. Never outlives its session."""

    data: bytes = field(repr=False)
    captured_at: datetime
    content_type: str = "image/jpeg"

    @property
    def ref(self) -> str:
        """Opaque reference (SHA-256) used for audit instead of the image."""
        return hashlib.sha256(self.data).hexdigest()


@dataclass
class CaptureSession:
    session_id: str
    mode: CaptureMode
    opened_at: datetime
    employee_hint: Optional[str] = None
    record_id: Optional[int] = None
    state: SessionState = SessionState.SESSION_OPEN
    challenge: Optional[Challenge] = None
    frame: Optional[Frame] = None
    recognition_attempts: int = 0
