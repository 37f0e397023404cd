from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from .attendance.memory_attendance_repository import InMemoryAttendanceRepository
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.policies.factory import PolicyFactory
from .attendance.repository import AttendanceRepository, CommitGateway
from .attendance.service import AttendanceService
from .attendance.state_machine import AttendanceStateMachine
from .capture.camera import UploadedFrameCamera
from .capture.controller import CaptureController
from .common.datetime_utils import now_local
from .core import constants
from .database.connection import DatabaseConnection, DBConfig
from .employees.memory_directory import InMemoryEmployeeDirectory
from .employees.mysql_employee_directory import MySQLEmployeeDirectory
from .employees.repository import EmployeeDirectory
from .kiosk.flow import AttendanceKiosk
from .kiosk.registry import KioskRegistry
from .liveness.generator import ChallengeGenerator
from .recognition.http_recognizer import HttpRecognizer
from .recognition.recognizer import Recognizer
from .recognition.resolver import IdentityResolver
from .reports.service import PerformanceReportService
from .verification.gate import VerificationGate


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    directory: EmployeeDirectory
    attendance_repo: AttendanceRepository
    gateway: CommitGateway
    recognizer: Recognizer

    state_machine: AttendanceStateMachine
    challenges: ChallengeGenerator
    resolver: IdentityResolver
    attendance_service: AttendanceService
    report_service: PerformanceReportService
    kiosks: KioskRegistry


def _setting(settings: Any, name: str, default: Any) -> Any:
    return getattr(settings, name, default)


def build_container(
    settings: Any,
    *,
    recognizer: Optional[Recognizer] = None,
    directory: Optional[EmployeeDirectory] = None,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    policies = PolicyFactory()
    state_machine = AttendanceStateMachine(
        payment_policy=policies.payment_policy(),
        duration_policy=policies.duration_policy(
            _setting(settings, "OVERNIGHT_POLICY", "reject"),
            max_shift_hours=_setting(settings, "MAX_SHIFT_HOURS", constants.DEFAULT_MAX_SHIFT_HOURS),
        ),
    )

    backend = str(_setting(settings, "PERSISTENCE_BACKEND", "mysql")).lower()
    conn: Optional[DatabaseConnection] = None
    if backend == "memory":
        store = InMemoryAttendanceRepository(state_machine)
        attendance_repo: AttendanceRepository = store
        gateway: CommitGateway = store
        directory = directory or InMemoryEmployeeDirectory()
    elif backend == "mysql":
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(_setting(settings, "DB_CONFIG", {})))
        mysql_repo = MySQLAttendanceRepository(conn, state_machine)
        attendance_repo = mysql_repo
        gateway = mysql_repo
        directory = directory or MySQLEmployeeDirectory(conn)
    else:
        raise ValueError(f"Unknown PERSISTENCE_BACKEND: {backend!r}")

    recognizer = recognizer or HttpRecognizer(
        _setting(settings, "RECOGNIZER_URL", ""),
        token=_setting(settings, "RECOGNIZER_TOKEN", "") or None,
        timeout=_setting(settings, "RECOGNIZER_TIMEOUT_SECONDS", constants.DEFAULT_RECOGNIZER_TIMEOUT_SECONDS),
    )
    challenges = ChallengeGenerator(
        window_seconds=_setting(settings, "CHALLENGE_WINDOW_SECONDS", constants.DEFAULT_CHALLENGE_WINDOW_SECONDS),
        clock=clock,
    )
    resolver = IdentityResolver(
        recognizer,
        directory,
        challenges,
        min_confidence=_setting(settings, "MIN_CONFIDENCE", constants.DEFAULT_MIN_CONFIDENCE),
    )
    attendance_service = AttendanceService(attendance_repo, directory, state_machine=state_machine)
    report_service = PerformanceReportService(attendance_repo, directory)

    max_attempts = int(_setting(settings, "MAX_RECOGNITION_ATTEMPTS", constants.DEFAULT_MAX_RECOGNITION_ATTEMPTS))
    inactivity = float(
        _setting(settings, "SESSION_INACTIVITY_SECONDS", constants.DEFAULT_SESSION_INACTIVITY_SECONDS)
    )

    def make_kiosk(device_id: str, executor: ThreadPoolExecutor) -> AttendanceKiosk:
        camera = UploadedFrameCamera()
        return AttendanceKiosk(
            device_id=device_id,
            camera=camera,
            capture=CaptureController(camera, challenges, clock=clock),
            resolver=resolver,
            attendance=attendance_service,
            gate=VerificationGate(gateway),
            executor=executor,
            clock=clock,
            max_attempts=max_attempts,
            inactivity_seconds=inactivity,
        )

    return Container(
        conn=conn,
        directory=directory,
        attendance_repo=attendance_repo,
        gateway=gateway,
        recognizer=recognizer,
        state_machine=state_machine,
        challenges=challenges,
        resolver=resolver,
        attendance_service=attendance_service,
        report_service=report_service,
        kiosks=KioskRegistry(
            make_kiosk,
            sweep_interval=float(
                _setting(settings, "SESSION_SWEEP_SECONDS", constants.DEFAULT_SESSION_SWEEP_SECONDS)
            ),
        ),
    )
