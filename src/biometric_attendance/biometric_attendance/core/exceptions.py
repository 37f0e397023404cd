from __future__ import annotations

from typing import Optional

from .enums import ConflictReason, RecognitionFailure


class DomainError(Exception):
    """Base exception for business rule violations."""

    kind = "DOMAIN_ERROR"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = "VALIDATION_ERROR"


class SessionError(DomainError):
    """Fatal to the capture session; the caller restarts from Idle."""

    kind = "SESSION_ERROR"


class SessionBusy(SessionError):
    kind = "SESSION_BUSY"


class SessionTimeout(SessionError):
    kind = "SESSION_TIMEOUT"


class CameraUnavailable(SessionError):
    kind = "CAMERA_UNAVAILABLE"


class RecognizerUnavailable(SessionError):
    kind = "RECOGNIZER_UNAVAILABLE"


class RecognitionAttemptsExhausted(SessionError):
    """Too many failed recognitions; manual fallback is required."""

    kind = "RECOGNITION_ATTEMPTS_EXHAUSTED"


class ChallengeExpired(DomainError):
    """Retryable: capture again inside a fresh challenge window."""

    kind = "CHALLENGE_EXPIRED"


_RECOGNITION_MESSAGES = {
    RecognitionFailure.NOT_DETECTED: "No face detected. Please center your face in the frame",
    RecognitionFailure.LOW_QUALITY: "Image quality too low. Please try in better lighting",
    RecognitionFailure.NO_MATCH: "Face not recognized. Please try again or contact admin",
}


class RecognitionError(DomainError):
    kind = "RECOGNITION_ERROR"

    def __init__(self, failure: RecognitionFailure, message: Optional[str] = None):
        super().__init__(message or _RECOGNITION_MESSAGES[failure])
        self.failure = failure


class BusinessRuleViolation(DomainError):
    """Fatal to the current attempt; never leaves partial state."""

    kind = "BUSINESS_RULE_VIOLATION"
    reason: ConflictReason


class AlreadyMarked(BusinessRuleViolation):
    kind = "ALREADY_MARKED"
    reason = ConflictReason.ALREADY_MARKED


class AlreadyClosed(BusinessRuleViolation):
    kind = "ALREADY_CLOSED"
    reason = ConflictReason.ALREADY_CLOSED


class IdentityMismatch(BusinessRuleViolation):
    kind = "IDENTITY_MISMATCH"
    reason = ConflictReason.IDENTITY_MISMATCH


class RecordNotFound(BusinessRuleViolation):
    kind = "NOT_FOUND"
    reason = ConflictReason.NOT_FOUND


class InvalidWorkedDuration(BusinessRuleViolation):
    kind = "INVALID_DURATION"
    reason = ConflictReason.INVALID_DURATION


_VIOLATIONS = {
    cls.reason: cls
    for cls in (AlreadyMarked, AlreadyClosed, IdentityMismatch, RecordNotFound, InvalidWorkedDuration)
}


def violation_for(reason: ConflictReason, message: str) -> BusinessRuleViolation:
    return _VIOLATIONS[reason](message)


class PersistenceError(DomainError):
    """Network/server failure at the store. Surfaced for a manual retry only."""

    kind = "PERSISTENCE_ERROR"


class OperationCancelled(DomainError):
    """A recognition or commit result arrived after the session was cancelled."""

    kind = "OPERATION_CANCELLED"
