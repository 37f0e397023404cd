import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime

import pytest

from src.biometric_attendance.biometric_attendance.attendance.memory_attendance_repository import (
    InMemoryAttendanceRepository,
)
from src.biometric_attendance.biometric_attendance.attendance.policies.duration import WrapOvernightPolicy
from src.biometric_attendance.biometric_attendance.attendance.service import AttendanceService
from src.biometric_attendance.biometric_attendance.attendance.state_machine import AttendanceStateMachine
from src.biometric_attendance.biometric_attendance.capture.camera import UploadedFrameCamera
from src.biometric_attendance.biometric_attendance.capture.controller import CaptureController
from src.biometric_attendance.biometric_attendance.core.enums import CaptureMode, KioskStage
from src.biometric_attendance.biometric_attendance.core.exceptions import (
    AlreadyMarked,
    ChallengeExpired,
    IdentityMismatch,
    InvalidWorkedDuration,
    OperationCancelled,
    PersistenceError,
    RecognitionAttemptsExhausted,
    SessionBusy,
    SessionTimeout,
)
from src.biometric_attendance.biometric_attendance.kiosk.flow import AttendanceKiosk
from src.biometric_attendance.biometric_attendance.kiosk.model import (
    AwaitingConfirmation,
    AwaitingSelection,
    RetryCapture,
)
from src.biometric_attendance.biometric_attendance.kiosk.registry import KioskRegistry
from src.biometric_attendance.biometric_attendance.liveness.generator import ChallengeGenerator
from src.biometric_attendance.biometric_attendance.recognition.model import Candidate
from src.biometric_attendance.biometric_attendance.recognition.resolver import IdentityResolver
from src.biometric_attendance.biometric_attendance.verification.gate import VerificationGate


class BlockingRecognizer:
    def __init__(self, answer):
        self.answer = answer
        self.started = threading.Event()
        self.release = threading.Event()

    def recognize(self, frame, challenge_token):
        self.started.set()
        self.release.wait(5)
        return self.answer


class BlockingGateway:
    """Holds create_in open until released, then writes through to `inner`."""

    def __init__(self, inner):
        self.inner = inner
        self.started = threading.Event()
        self.release = threading.Event()

    def create_in(self, **kwargs):
        self.started.set()
        self.release.wait(5)
        return self.inner.create_in(**kwargs)

    def mark_out(self, **kwargs):
        return self.inner.mark_out(**kwargs)


class FailingGateway:
    def create_in(self, **kwargs):
        raise PersistenceError("connection reset")

    def mark_out(self, **kwargs):
        raise PersistenceError("connection reset")


@pytest.fixture
def executor():
    ex = ThreadPoolExecutor(max_workers=2)
    yield ex
    ex.shutdown(wait=True, cancel_futures=True)


@pytest.fixture
def store():
    return InMemoryAttendanceRepository()


@pytest.fixture
def make_kiosk(clock, directory, executor, store):
    def _make(
        recognizer,
        *,
        gateway=None,
        repository=None,
        state_machine=None,
        challenges=None,
        device_id="shed-1",
        pool=None,
        max_attempts=3,
        inactivity_seconds=60,
    ):
        repository = repository or store
        challenges = challenges or ChallengeGenerator(window_seconds=4, clock=clock)
        camera = UploadedFrameCamera()
        return AttendanceKiosk(
            device_id=device_id,
            camera=camera,
            capture=CaptureController(camera, challenges, clock=clock),
            resolver=IdentityResolver(recognizer, directory, challenges),
            attendance=AttendanceService(repository, directory, state_machine=state_machine),
            gate=VerificationGate(gateway or repository),
            executor=pool or executor,
            clock=clock,
            max_attempts=max_attempts,
            inactivity_seconds=inactivity_seconds,
        )

    return _make


def _capture(kiosk, png, mode=CaptureMode.IN, **kwargs):
    kiosk.open(mode, **kwargs)
    kiosk.issue_challenge()
    return kiosk.capture(png)


def test_single_match_mark_in_and_out(make_kiosk, fake_recognizer, store, clock, png_data_url):
    kiosk = make_kiosk(fake_recognizer([Candidate("E07", 0.96)]))

    _capture(kiosk, png_data_url)
    step = kiosk.recognize(timeout=5)
    assert isinstance(step, AwaitingConfirmation)
    assert store.get_for_employee_and_date("E07", clock.now.date()) is None

    opened = kiosk.confirm(timeout=5)
    assert opened.in_time == datetime(2024, 3, 1, 9, 2)
    assert opened.remarks == "Auto-marked via face recognition"
    assert kiosk.stage == KioskStage.IDLE

    clock.now = datetime(2024, 3, 1, 17, 30)
    _capture(kiosk, png_data_url, mode=CaptureMode.OUT, record_id=opened.record_id)
    step = kiosk.recognize(timeout=5)
    assert step.request.mutation.record_id == opened.record_id
    closed = kiosk.confirm(timeout=5)

    assert closed.worked_hours_str == "8h 28m"
    assert closed.out_frame_ref is not None


def test_disambiguation_waits_for_supervisor(make_kiosk, fake_recognizer, store, clock, png_data_url):
    kiosk = make_kiosk(fake_recognizer([Candidate("E01", 0.91), Candidate("E02", 0.89)]))
    _capture(kiosk, png_data_url)

    step = kiosk.recognize(timeout=5)

    assert isinstance(step, AwaitingSelection)
    assert kiosk.stage == KioskStage.DISAMBIGUATION
    assert [c["employee_id"] for c in kiosk.snapshot()["candidates"]] == ["E01", "E02"]
    assert store.list_between(start_date=clock.now.date(), end_date=clock.now.date()) == []

    chosen = kiosk.select_candidate("E02")
    assert chosen.request.disambiguated
    record = kiosk.confirm(timeout=5)

    assert record.employee_id == "E02"
    assert "multiple candidates (E01 0.91, E02 0.89) resolved by supervisor" in record.remarks
    assert store.get_for_employee_and_date("E01", clock.now.date()) is None


def test_expired_challenge_rejected_whatever_the_confidence(make_kiosk, fake_recognizer, clock, png_data_url):
    recognizer = fake_recognizer([Candidate("E07", 0.999)])
    kiosk = make_kiosk(recognizer)
    kiosk.open(CaptureMode.IN)
    kiosk.issue_challenge()
    clock.advance(seconds=5)

    with pytest.raises(ChallengeExpired):
        kiosk.capture(png_data_url)

    assert recognizer.calls == []
    assert kiosk.stage == KioskStage.IDLE


def test_cancel_discards_late_recognition(make_kiosk, store, clock, png_data_url):
    recognizer = BlockingRecognizer([Candidate("E07", 0.96)])
    kiosk = make_kiosk(recognizer)
    _capture(kiosk, png_data_url)

    future = kiosk.submit_recognition()
    assert recognizer.started.wait(5)
    kiosk.cancel()
    recognizer.release.set()

    with pytest.raises(OperationCancelled):
        future.result(timeout=5)
    assert kiosk.stage == KioskStage.IDLE
    assert kiosk.pending is None
    assert store.get_for_employee_and_date("E07", clock.now.date()) is None


def test_retry_then_attempts_exhausted(make_kiosk, fake_recognizer, png_data_url):
    kiosk = make_kiosk(fake_recognizer([]), max_attempts=2)
    _capture(kiosk, png_data_url)

    step = kiosk.recognize(timeout=5)
    assert isinstance(step, RetryCapture)
    assert step.attempts_left == 1
    assert kiosk.stage == KioskStage.SESSION_OPEN

    kiosk.issue_challenge()
    kiosk.capture(png_data_url)
    with pytest.raises(RecognitionAttemptsExhausted):
        kiosk.recognize(timeout=5)
    assert kiosk.stage == KioskStage.IDLE


def test_inactivity_times_out_session(make_kiosk, fake_recognizer, clock):
    kiosk = make_kiosk(fake_recognizer([]), inactivity_seconds=60)
    kiosk.open(CaptureMode.IN)
    clock.advance(seconds=61)

    with pytest.raises(SessionTimeout):
        kiosk.issue_challenge()
    assert kiosk.stage == KioskStage.IDLE


def test_second_open_is_busy(make_kiosk, fake_recognizer):
    kiosk = make_kiosk(fake_recognizer([]))
    kiosk.open(CaptureMode.IN)

    with pytest.raises(SessionBusy):
        kiosk.open(CaptureMode.OUT)


def test_already_marked_fails_before_confirmation(make_kiosk, fake_recognizer, png_data_url):
    kiosk = make_kiosk(fake_recognizer([Candidate("E07", 0.96)]))
    _capture(kiosk, png_data_url)
    kiosk.recognize(timeout=5)
    kiosk.confirm(timeout=5)

    _capture(kiosk, png_data_url)
    with pytest.raises(AlreadyMarked):
        kiosk.recognize(timeout=5)
    assert kiosk.pending is None
    assert kiosk.stage == KioskStage.IDLE


def test_out_for_someone_else_is_identity_mismatch(make_kiosk, fake_recognizer, store, clock, png_data_url):
    kiosk = make_kiosk(fake_recognizer([Candidate("E07", 0.96)], [Candidate("E09", 0.97)]))
    _capture(kiosk, png_data_url)
    kiosk.recognize(timeout=5)
    record = kiosk.confirm(timeout=5)

    clock.advance(hours=8)
    _capture(kiosk, png_data_url, mode=CaptureMode.OUT, record_id=record.record_id)
    with pytest.raises(IdentityMismatch):
        kiosk.recognize(timeout=5)
    assert store.get_by_id(record.record_id).out_time is None


def test_persistence_error_keeps_verification_for_retry(make_kiosk, fake_recognizer, png_data_url):
    kiosk = make_kiosk(fake_recognizer([Candidate("E07", 0.96)]), gateway=FailingGateway())
    _capture(kiosk, png_data_url)
    step = kiosk.recognize(timeout=5)

    with pytest.raises(PersistenceError):
        kiosk.confirm(timeout=5)

    assert kiosk.stage == KioskStage.AWAITING_CONFIRMATION
    assert kiosk.pending.commit_key == step.request.commit_key


def test_cancel_during_commit_reports_possible_write(make_kiosk, fake_recognizer, store, clock, png_data_url):
    gateway = BlockingGateway(store)
    kiosk = make_kiosk(fake_recognizer([Candidate("E07", 0.96)]), gateway=gateway)
    _capture(kiosk, png_data_url)
    kiosk.recognize(timeout=5)

    future = kiosk.submit_confirm()
    assert gateway.started.wait(5)
    kiosk.cancel()
    gateway.release.set()

    with pytest.raises(OperationCancelled) as excinfo:
        future.result(timeout=5)
    assert "may already be saved" in str(excinfo.value)
    assert "Check today's records" in str(excinfo.value)
    assert kiosk.stage == KioskStage.IDLE
    assert kiosk.pending is None
    assert store.get_for_employee_and_date("E07", clock.now.date()).out_time is None


def test_overnight_shift_closes_next_morning(make_kiosk, fake_recognizer, clock, png_data_url):
    machine = AttendanceStateMachine(duration_policy=WrapOvernightPolicy())
    night_store = InMemoryAttendanceRepository(machine)
    kiosk = make_kiosk(fake_recognizer([Candidate("E07", 0.96)]), repository=night_store, state_machine=machine)

    clock.now = datetime(2024, 3, 1, 22, 0)
    _capture(kiosk, png_data_url)
    kiosk.recognize(timeout=5)
    opened = kiosk.confirm(timeout=5)

    clock.now = datetime(2024, 3, 2, 6, 0)
    _capture(kiosk, png_data_url, mode=CaptureMode.OUT, employee_hint="E07")
    step = kiosk.recognize(timeout=5)
    assert step.request.mutation.record_id == opened.record_id
    closed = kiosk.confirm(timeout=5)

    assert closed.work_date == date(2024, 3, 1)
    assert closed.worked_hours_str == "8h 0m"


def test_overnight_clock_out_refused_by_default(make_kiosk, fake_recognizer, store, clock, png_data_url):
    kiosk = make_kiosk(fake_recognizer([Candidate("E07", 0.96)]))
    clock.now = datetime(2024, 3, 1, 22, 0)
    _capture(kiosk, png_data_url)
    kiosk.recognize(timeout=5)
    opened = kiosk.confirm(timeout=5)

    clock.now = datetime(2024, 3, 2, 6, 0)
    _capture(kiosk, png_data_url, mode=CaptureMode.OUT, employee_hint="E07")
    with pytest.raises(InvalidWorkedDuration):
        kiosk.recognize(timeout=5)
    assert kiosk.stage == KioskStage.IDLE
    assert store.get_by_id(opened.record_id).out_time is None


def test_registry_sweeper_expires_unattended_session(make_kiosk, fake_recognizer, clock, png_data_url):
    challenges = ChallengeGenerator(window_seconds=4, clock=clock)
    registry = KioskRegistry(
        lambda device_id, pool: make_kiosk(
            fake_recognizer([]), challenges=challenges, device_id=device_id, pool=pool
        ),
        sweep_interval=0.01,
    )
    try:
        kiosk = registry.get("shed-2")
        _capture(kiosk, png_data_url)
        assert kiosk.stage == KioskStage.CAPTURED
        assert challenges.outstanding() == 1

        clock.advance(hours=5)
        deadline = time.monotonic() + 2
        while kiosk.stage != KioskStage.IDLE and time.monotonic() < deadline:
            time.sleep(0.01)

        assert kiosk.stage == KioskStage.IDLE
        assert "session" not in kiosk.snapshot()
        assert challenges.outstanding() == 0
    finally:
        registry.shutdown()
