from __future__ import annotations

import logging

from flask import Flask, jsonify

from ..core.exceptions import (
    BusinessRuleViolation,
    ChallengeExpired,
    DomainError,
    OperationCancelled,
    PersistenceError,
    RecognitionAttemptsExhausted,
    RecognitionError,
    RecognizerUnavailable,
    RecordNotFound,
    SessionError,
    SessionTimeout,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = {
    ValidationError: 400,
    SessionTimeout: 408,
    RecognizerUnavailable: 503,
    RecognitionAttemptsExhausted: 422,
    SessionError: 409,
    ChallengeExpired: 410,
    RecognitionError: 422,
    RecordNotFound: 404,
    BusinessRuleViolation: 409,
    PersistenceError: 503,
    OperationCancelled: 409,
    DomainError: 400,
}


def status_for(exc: DomainError) -> int:
    for cls in type(exc).__mro__:
        if cls in _STATUS_BY_ERROR:
            return _STATUS_BY_ERROR[cls]
    return 400


def error_response(exc: DomainError):
    status = status_for(exc)
    if status >= 500:
        logger.warning("%s: %s", exc.kind, exc)
    return jsonify({"success": False, "error": exc.kind, "message": str(exc)}), status


def register_error_handlers(app: Flask) -> None:
    app.register_error_handler(DomainError, error_response)
