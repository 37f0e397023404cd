from __future__ import annotations

from enum import Enum


class CaptureMode(str, Enum):
    """Direction of an attendance mark: clock-in or clock-out."""

    IN = "IN"
    OUT = "OUT"


class SessionState(str, Enum):
    IDLE = "IDLE"
    SESSION_OPEN = "SESSION_OPEN"
    CHALLENGE_ISSUED = "CHALLENGE_ISSUED"
    CAPTURED = "CAPTURED"
    CLOSED = "CLOSED"


class ChallengeAction(str, Enum):
    """Physical actions a live subject is asked to perform."""

    TURN_LEFT = "Turn Left"
    TURN_RIGHT = "Turn Right"
    BLINK = "Blink"
    SMILE = "Smile"
    NOD = "Nod"


class RecognitionFailure(str, Enum):
    NOT_DETECTED = "NOT_DETECTED"
    LOW_QUALITY = "LOW_QUALITY"
    NO_MATCH = "NO_MATCH"


class AttendanceState(str, Enum):
    """Per (employee, day) attendance state."""

    NO_RECORD = "NO_RECORD"
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class ConflictReason(str, Enum):
    ALREADY_MARKED = "ALREADY_MARKED"
    ALREADY_CLOSED = "ALREADY_CLOSED"
    NOT_FOUND = "NOT_FOUND"
    IDENTITY_MISMATCH = "IDENTITY_MISMATCH"
    INVALID_DURATION = "INVALID_DURATION"


class OvernightPolicy(str, Enum):
    REJECT = "reject"
    WRAP = "wrap"


class KioskStage(str, Enum):
    """Where a kiosk is in the capture/resolve/confirm protocol."""

    IDLE = "IDLE"
    SESSION_OPEN = "SESSION_OPEN"
    CHALLENGE_ISSUED = "CHALLENGE_ISSUED"
    CAPTURED = "CAPTURED"
    AWAITING_RECOGNITION = "AWAITING_RECOGNITION"
    DISAMBIGUATION = "DISAMBIGUATION"
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"
    AWAITING_COMMIT = "AWAITING_COMMIT"
