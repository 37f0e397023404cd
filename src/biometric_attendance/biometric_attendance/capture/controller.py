"""Capture session state machine for one device.

Idle -> SessionOpen -> ChallengeIssued -> Captured -> (Closed, back to Idle).
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..core.enums import CaptureMode, SessionState
from ..core.exceptions import ChallengeExpired, SessionBusy, SessionError
from ..liveness.generator import ChallengeGenerator
from ..liveness.model import Challenge
from .camera import Camera
from .model import CaptureSession, Frame

logger = logging.getLogger(__name__)


class CaptureController:
    def __init__(
        self,
        camera: Camera,
        challenges: ChallengeGenerator,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._camera = camera
        self._challenges = challenges
        self._clock = clock
        self._lock = threading.RLock()
        self._session: Optional[CaptureSession] = None

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._session.state if self._session else SessionState.IDLE

    @property
    def session(self) -> Optional[CaptureSession]:
        return self._session

    def open(
        self,
        mode: CaptureMode,
        *,
        employee_hint: Optional[str] = None,
        record_id: Optional[int] = None,
    ) -> CaptureSession:
        with self._lock:
            if self._session is not None:
                raise SessionBusy("Another capture session is already active on this device")
            # CameraUnavailable propagates and leaves the controller Idle.
            self._camera.start()
            self._session = CaptureSession(
                session_id=uuid.uuid4().hex,
                mode=CaptureMode(mode),
                opened_at=self._clock(),
                employee_hint=employee_hint,
                record_id=record_id,
            )
            logger.info("Opened %s capture session %s", self._session.mode.value, self._session.session_id)
            return self._session

    def issue_challenge(self) -> Challenge:
        with self._lock:
            session = self._require(SessionState.SESSION_OPEN, SessionState.CHALLENGE_ISSUED)
            session.challenge = self._challenges.issue(session.session_id)
            session.state = SessionState.CHALLENGE_ISSUED
            return session.challenge

    def capture(self) -> Frame:
        with self._lock:
            session = self._require(SessionState.CHALLENGE_ISSUED)
            now = self._clock()
            if session.challenge is None or now > session.challenge.expires_at:
                self.close()
                raise ChallengeExpired("Challenge window expired. Please start again")
            data, content_type = self._camera.grab()
            session.frame = Frame(data=data, captured_at=now, content_type=content_type)
            session.state = SessionState.CAPTURED
            return session.frame

    def rearm(self) -> CaptureSession:
        """Drop the frame and challenge so the session can capture again."""
        with self._lock:
            session = self._require(SessionState.CAPTURED, SessionState.CHALLENGE_ISSUED)
            self._challenges.revoke(session.session_id)
            session.challenge = None
            session.frame = None
            session.state = SessionState.SESSION_OPEN
            return session

    def close(self) -> None:
        """Always safe. Discards any frame and invalidates outstanding tokens."""
        with self._lock:
            session, self._session = self._session, None
            if session is None:
                return
            self._challenges.revoke(session.session_id)
            session.frame = None
            session.challenge = None
            session.state = SessionState.CLOSED
            try:
                self._camera.stop()
            except SessionError as exc:
                logger.warning("Camera stop failed for session %s: %s", session.session_id, exc)
            logger.info("Closed capture session %s", session.session_id)

    def _require(self, *states: SessionState) -> CaptureSession:
        if self._session is None:
            raise SessionError("No active capture session")
        if self._session.state not in states:
            raise SessionError(
                f"Operation not allowed in state {self._session.state.value}"
            )
        return self._session
