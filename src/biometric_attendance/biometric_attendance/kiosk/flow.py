"""Capture -> challenge -> resolve -> confirm -> commit, for one device.

Recognition and commit run on an executor and come back as futures. Each
session carries an epoch; cancel, close and the inactivity timeout bump
it, and a result that completes under an older epoch is dropped instead
of being applied.
"""

from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import Executor, Future
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..attendance.model import AttendanceRecord
from ..attendance.service import AttendanceService
from ..capture.camera import Camera
from ..capture.controller import CaptureController
from ..capture.model import CaptureSession, Frame
from ..common.datetime_utils import now_local
from ..core.constants import (
    DEFAULT_MAX_RECOGNITION_ATTEMPTS,
    DEFAULT_RESULT_WAIT_SECONDS,
    DEFAULT_SESSION_INACTIVITY_SECONDS,
)
from ..core.enums import CaptureMode, KioskStage, SessionState
from ..core.exceptions import (
    BusinessRuleViolation,
    CameraUnavailable,
    ChallengeExpired,
    DomainError,
    OperationCancelled,
    PersistenceError,
    RecognitionAttemptsExhausted,
    SessionError,
    SessionTimeout,
)
from ..liveness.model import Challenge
from ..recognition.model import Ambiguous, NoMatch, ResolutionOutcome, ResolvedCandidate, Single
from ..recognition.resolver import IdentityResolver, audit_remark
from ..verification.gate import VerificationGate
from ..verification.model import VerificationRequest
from .model import AwaitingConfirmation, AwaitingSelection, KioskStep, RetryCapture

logger = logging.getLogger(__name__)


class AttendanceKiosk:
    def __init__(
        self,
        *,
        device_id: str,
        camera: Camera,
        capture: CaptureController,
        resolver: IdentityResolver,
        attendance: AttendanceService,
        gate: VerificationGate,
        executor: Executor,
        clock: Callable[[], datetime] = now_local,
        max_attempts: int = DEFAULT_MAX_RECOGNITION_ATTEMPTS,
        inactivity_seconds: float = DEFAULT_SESSION_INACTIVITY_SECONDS,
    ):
        self.device_id = device_id
        self._camera = camera
        self._capture = capture
        self._resolver = resolver
        self._attendance = attendance
        self._gate = gate
        self._executor = executor
        self._clock = clock
        self._max_attempts = max(1, int(max_attempts))
        self._inactivity = timedelta(seconds=float(inactivity_seconds))

        self._lock = threading.RLock()
        self._epoch = 0
        self._stage = KioskStage.IDLE
        self._last_activity: Optional[datetime] = None
        self._ambiguous: Optional[Ambiguous] = None

    @property
    def stage(self) -> KioskStage:
        return self._stage

    @property
    def pending(self) -> Optional[VerificationRequest]:
        return self._gate.pending

    # -- session lifecycle -------------------------------------------------

    def open(
        self,
        mode: CaptureMode | str,
        *,
        employee_hint: Optional[str] = None,
        record_id: Optional[int] = None,
    ) -> CaptureSession:
        with self._lock:
            self.expire_if_inactive()
            session = self._capture.open(CaptureMode(mode), employee_hint=employee_hint, record_id=record_id)
            self._stage = KioskStage.SESSION_OPEN
            self._touch()
            return session

    def issue_challenge(self) -> Challenge:
        with self._lock:
            self._ensure_active(KioskStage.SESSION_OPEN, KioskStage.CHALLENGE_ISSUED)
            challenge = self._capture.issue_challenge()
            self._stage = KioskStage.CHALLENGE_ISSUED
            self._touch()
            return challenge

    def capture(self, image: str | bytes | None = None) -> Frame:
        """Capture a frame; `image` feeds cameras that accept uploaded frames."""
        with self._lock:
            self._ensure_active(KioskStage.CHALLENGE_ISSUED)
            try:
                if image is not None:
                    push = getattr(self._camera, "push", None)
                    if push is None:
                        raise CameraUnavailable("This camera does not accept uploaded frames")
                    push(image)
                frame = self._capture.capture()
            except (ChallengeExpired, SessionError):
                self._reset("capture failed")
                raise
            self._stage = KioskStage.CAPTURED
            self._touch()
            return frame

    def cancel(self) -> None:
        """Always safe: drops any pending verification, frame and token."""
        with self._lock:
            self._reset("cancelled")

    def expire_if_inactive(self) -> bool:
        with self._lock:
            if self._stage == KioskStage.IDLE or self._last_activity is None:
                return False
            if self._stage in (KioskStage.AWAITING_RECOGNITION, KioskStage.AWAITING_COMMIT):
                return False
            if self._clock() - self._last_activity <= self._inactivity:
                return False
            self._reset("inactivity timeout")
            return True

    # -- recognition -------------------------------------------------------

    def submit_recognition(self) -> "Future[KioskStep]":
        with self._lock:
            self._ensure_active(KioskStage.CAPTURED)
            session = self._capture.session
            frame, challenge = session.frame, session.challenge
            epoch = self._epoch
            self._stage = KioskStage.AWAITING_RECOGNITION
            self._touch()
        return self._executor.submit(self._recognize, epoch, session, frame, challenge.token)

    def recognize(self, timeout: float = DEFAULT_RESULT_WAIT_SECONDS) -> KioskStep:
        return self.submit_recognition().result(timeout=timeout)

    def select_candidate(self, employee_id: str) -> AwaitingConfirmation:
        with self._lock:
            self._ensure_active(KioskStage.DISAMBIGUATION)
            outcome = self._ambiguous
            chosen = self._resolver.select(outcome, employee_id)
            step = self._prepare_verification(self._capture.session, chosen, outcome)
            self._ambiguous = None
            self._touch()
            return step

    def _recognize(self, epoch: int, session: CaptureSession, frame: Frame, token: str) -> KioskStep:
        try:
            outcome = self._resolver.resolve(session_id=session.session_id, frame=frame, challenge_token=token)
        except DomainError as exc:
            with self._lock:
                self._raise_if_stale(epoch, "recognition", exc)
                self._reset(f"recognition failed: {exc.kind}")
            raise

        with self._lock:
            self._raise_if_stale(epoch, "recognition")
            return self._apply_outcome(session, outcome)

    def _apply_outcome(self, session: CaptureSession, outcome: ResolutionOutcome) -> KioskStep:
        if isinstance(outcome, NoMatch):
            session.recognition_attempts += 1
            attempts_left = self._max_attempts - session.recognition_attempts
            if attempts_left <= 0:
                self._reset("recognition attempts exhausted")
                raise RecognitionAttemptsExhausted(
                    f"{outcome.message}. No attempts left; use the manual entry fallback"
                )
            self._capture.rearm()
            self._stage = KioskStage.SESSION_OPEN
            self._touch()
            return RetryCapture(failure=outcome.failure, message=outcome.message, attempts_left=attempts_left)

        if isinstance(outcome, Ambiguous):
            self._ambiguous = outcome
            self._stage = KioskStage.DISAMBIGUATION
            self._touch()
            return AwaitingSelection(candidates=outcome.candidates)

        return self._prepare_verification(session, outcome.candidate, outcome)

    def _prepare_verification(
        self,
        session: CaptureSession,
        chosen: ResolvedCandidate,
        outcome: Single | Ambiguous,
    ) -> AwaitingConfirmation:
        now = self._clock()
        try:
            if session.mode == CaptureMode.IN:
                mutation = self._attendance.precheck_mark_in(chosen.employee, remarks=audit_remark(outcome), now=now)
            else:
                mutation = self._attendance.precheck_mark_out(
                    resolved_employee_id=chosen.employee_id,
                    record_id=session.record_id,
                    employee_hint=session.employee_hint,
                    now=now,
                )
        except BusinessRuleViolation as exc:
            logger.info("Device %s: precheck rejected %s (%s)", self.device_id, chosen.employee_id, exc.kind)
            self._reset(f"precheck failed: {exc.kind}")
            raise

        request = VerificationRequest(
            commit_key=uuid.uuid4().hex,
            mode=session.mode,
            employee=chosen.employee,
            mutation=mutation,
            created_at=now,
            frame_ref=session.frame.ref if session.frame else None,
            candidates=outcome.candidates if isinstance(outcome, Ambiguous) else (),
        )
        self._gate.hold(request)
        self._stage = KioskStage.AWAITING_CONFIRMATION
        self._touch()
        return AwaitingConfirmation(request=request)

    # -- commit ------------------------------------------------------------

    def submit_confirm(self) -> "Future[AttendanceRecord]":
        with self._lock:
            self._ensure_active(KioskStage.AWAITING_CONFIRMATION)
            request = self._gate.pending
            epoch = self._epoch
            self._stage = KioskStage.AWAITING_COMMIT
            self._touch()
        return self._executor.submit(self._commit, epoch, request)

    def confirm(self, timeout: float = DEFAULT_RESULT_WAIT_SECONDS) -> AttendanceRecord:
        return self.submit_confirm().result(timeout=timeout)

    def _commit(self, epoch: int, request: VerificationRequest) -> AttendanceRecord:
        try:
            record = self._gate.confirm(request.commit_key)
        except DomainError as exc:
            with self._lock:
                self._raise_if_stale(epoch, "commit", exc)
                if isinstance(exc, PersistenceError):
                    # Request stays held; the user may retry by hand with the same key.
                    self._stage = KioskStage.AWAITING_CONFIRMATION
                    self._touch()
                else:
                    self._reset(f"commit rejected: {exc.kind}")
            raise

        with self._lock:
            self._raise_if_stale(epoch, "commit")
            self._reset("committed")
            return record

    # -- helpers -----------------------------------------------------------

    def snapshot(self) -> dict:
        with self._lock:
            session = self._capture.session
            data: dict = {"device_id": self.device_id, "stage": self._stage.value}
            if session is not None:
                data["session"] = {
                    "session_id": session.session_id,
                    "mode": session.mode.value,
                    "employee_hint": session.employee_hint,
                    "record_id": session.record_id,
                    "attempts_left": self._max_attempts - session.recognition_attempts,
                }
                if session.challenge is not None:
                    data["challenge"] = {
                        "action": session.challenge.action.value,
                        "expires_at": session.challenge.expires_at.isoformat(),
                    }
            if self._ambiguous is not None:
                data["candidates"] = [c.to_dict() for c in self._ambiguous.candidates]
            if self._gate.pending is not None:
                data["verification"] = self._gate.pending.to_dict()
            return data

    def _touch(self) -> None:
        self._last_activity = self._clock()

    def _ensure_active(self, *stages: KioskStage) -> None:
        if self.expire_if_inactive():
            raise SessionTimeout("Session timed out due to inactivity. Please start again")
        if self._capture.state == SessionState.IDLE:
            raise SessionError("No active capture session")
        if stages and self._stage not in stages:
            raise SessionError(f"Operation not allowed while {self._stage.value}")

    def _raise_if_stale(self, epoch: int, what: str, cause: Optional[BaseException] = None) -> None:
        if epoch == self._epoch:
            return
        logger.info("Device %s: discarded late %s result", self.device_id, what)
        if what == "commit":
            message = (
                "The session was cancelled while the commit was in flight; the record may already be saved. "
                "Check today's records before retrying"
            )
        else:
            message = f"The {what} result arrived after the session was cancelled"
        raise OperationCancelled(message) from cause


    def _reset(self, reason: str) -> None:
        if self._stage == KioskStage.IDLE and self._capture.state == SessionState.IDLE:
            return
        self._epoch += 1
        self._gate.cancel()
        self._capture.close()
        self._ambiguous = None
        self._stage = KioskStage.IDLE
        self._last_activity = None
        logger.info("Device %s: session ended (%s)", self.device_id, reason)
