"""Turn a recognizer answer into zero, one or many employee identities.

Matching is probabilistic. Two or more candidates above the threshold
always go to a human; the top score is never auto-selected.
"""

from __future__ import annotations

import logging

from ..capture.model import Frame
from ..core.constants import DEFAULT_MIN_CONFIDENCE, FACE_MARK_REMARK
from ..core.enums import RecognitionFailure
from ..core.exceptions import RecognitionError, ValidationError
from ..employees.repository import EmployeeDirectory
from ..liveness.generator import ChallengeGenerator
from .model import Ambiguous, NoMatch, ResolutionOutcome, ResolvedCandidate, Single
from .recognizer import Recognizer

logger = logging.getLogger(__name__)


class IdentityResolver:
    def __init__(
        self,
        recognizer: Recognizer,
        directory: EmployeeDirectory,
        challenges: ChallengeGenerator,
        *,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    ):
        self._recognizer = recognizer
        self._directory = directory
        self._challenges = challenges
        self._min_confidence = float(min_confidence)

    def resolve(self, *, session_id: str, frame: Frame, challenge_token: str) -> ResolutionOutcome:
        # Liveness is a precondition: an expired or foreign token never reaches the recognizer.
        self._challenges.validate(challenge_token, session_id=session_id, frame_time=frame.captured_at)

        try:
            raw = self._recognizer.recognize(frame, challenge_token)
        except RecognitionError as exc:
            logger.info("Session %s: recognition failed (%s)", session_id, exc.failure.value)
            return NoMatch(failure=exc.failure, message=str(exc))

        best: dict[str, float] = {}
        for c in raw:
            if c.confidence < self._min_confidence:
                continue
            if c.confidence > best.get(c.employee_id, -1.0):
                best[c.employee_id] = c.confidence

        resolved = []
        for employee_id, confidence in best.items():
            employee = self._directory.get_active(employee_id)
            if employee is None:
                logger.warning("Session %s: recognizer matched unknown/inactive employee %s", session_id, employee_id)
                continue
            resolved.append(ResolvedCandidate(employee=employee, confidence=confidence))
        resolved.sort(key=lambda r: (-r.confidence, r.employee_id))

        if not resolved:
            err = RecognitionError(RecognitionFailure.NO_MATCH)
            logger.info("Session %s: no candidate above %.2f", session_id, self._min_confidence)
            return NoMatch(failure=err.failure, message=str(err))
        if len(resolved) == 1:
            logger.info("Session %s: resolved %s (%.2f)", session_id, resolved[0].employee_id, resolved[0].confidence)
            return Single(candidate=resolved[0])

        logger.info(
            "Session %s: %d candidates, disambiguation required (%s)",
            session_id,
            len(resolved),
            ", ".join(r.employee_id for r in resolved),
        )
        return Ambiguous(candidates=tuple(resolved))

    @staticmethod
    def select(outcome: Ambiguous, employee_id: str) -> ResolvedCandidate:
        chosen = outcome.find(employee_id)
        if chosen is None:
            raise ValidationError(f"Employee {employee_id} is not one of the matched candidates")
        logger.info("Supervisor selected %s among %d candidates", employee_id, len(outcome.candidates))
        return chosen


def audit_remark(outcome: ResolutionOutcome) -> str:
    """Remark stored on the record; notes supervisor disambiguation when it happened."""
    if not isinstance(outcome, Ambiguous):
        return FACE_MARK_REMARK
    listed = ", ".join(f"{c.employee_id} {c.confidence:.2f}" for c in outcome.candidates)
    return f"{FACE_MARK_REMARK}; multiple candidates ({listed}) resolved by supervisor"
