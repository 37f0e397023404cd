import pytest

from src.biometric_attendance.biometric_attendance.capture.model import Frame
from src.biometric_attendance.biometric_attendance.core.enums import RecognitionFailure
from src.biometric_attendance.biometric_attendance.core.exceptions import (
    ChallengeExpired,
    RecognitionError,
    RecognizerUnavailable,
    ValidationError,
)
from src.biometric_attendance.biometric_attendance.liveness.generator import ChallengeGenerator
from src.biometric_attendance.biometric_attendance.recognition.model import Ambiguous, Candidate, NoMatch, Single
from src.biometric_attendance.biometric_attendance.recognition.resolver import IdentityResolver, audit_remark


@pytest.fixture
def challenges(clock):
    return ChallengeGenerator(window_seconds=4, clock=clock)


def _resolve(resolver, challenges, clock, session_id="s1"):
    ch = challenges.issue(session_id)
    frame = Frame(data=b"img", captured_at=clock.advance(seconds=1))
    return resolver.resolve(session_id=session_id, frame=frame, challenge_token=ch.token)


def test_single_candidate(fake_recognizer, directory, challenges, clock):
    resolver = IdentityResolver(fake_recognizer([Candidate("E07", 0.97)]), directory, challenges)

    outcome = _resolve(resolver, challenges, clock)

    assert isinstance(outcome, Single)
    assert outcome.candidate.employee.name == "Anita Devi"


def test_two_candidates_above_threshold_need_a_human(fake_recognizer, directory, challenges, clock):
    resolver = IdentityResolver(
        fake_recognizer([Candidate("E01", 0.91), Candidate("E02", 0.89)]), directory, challenges
    )

    outcome = _resolve(resolver, challenges, clock)

    assert isinstance(outcome, Ambiguous)
    assert [c.employee_id for c in outcome.candidates] == ["E01", "E02"]


def test_low_confidence_and_unknown_ids_are_dropped(fake_recognizer, directory, challenges, clock):
    recognizer = fake_recognizer([Candidate("E01", 0.91), Candidate("E02", 0.3), Candidate("X99", 0.95)])
    resolver = IdentityResolver(recognizer, directory, challenges, min_confidence=0.5)

    outcome = _resolve(resolver, challenges, clock)

    assert isinstance(outcome, Single)
    assert outcome.candidate.employee_id == "E01"


def test_duplicate_ids_keep_best_confidence(fake_recognizer, directory, challenges, clock):
    recognizer = fake_recognizer([Candidate("E09", 0.6), Candidate("E09", 0.8)])
    resolver = IdentityResolver(recognizer, directory, challenges)

    outcome = _resolve(resolver, challenges, clock)

    assert isinstance(outcome, Single)
    assert outcome.candidate.confidence == 0.8


def test_empty_answer_is_no_match(fake_recognizer, directory, challenges, clock):
    resolver = IdentityResolver(fake_recognizer([]), directory, challenges)

    outcome = _resolve(resolver, challenges, clock)

    assert isinstance(outcome, NoMatch)
    assert outcome.failure == RecognitionFailure.NO_MATCH


def test_recognizer_failure_becomes_no_match(fake_recognizer, directory, challenges, clock):
    recognizer = fake_recognizer(RecognitionError(RecognitionFailure.NOT_DETECTED))
    resolver = IdentityResolver(recognizer, directory, challenges)

    outcome = _resolve(resolver, challenges, clock)

    assert outcome == NoMatch(RecognitionFailure.NOT_DETECTED, "No face detected. Please center your face in the frame")


def test_unavailable_recognizer_propagates(fake_recognizer, directory, challenges, clock):
    resolver = IdentityResolver(fake_recognizer(RecognizerUnavailable("down")), directory, challenges)

    with pytest.raises(RecognizerUnavailable):
        _resolve(resolver, challenges, clock)


def test_expired_token_never_reaches_recognizer(fake_recognizer, directory, challenges, clock):
    recognizer = fake_recognizer([Candidate("E07", 0.99)])
    resolver = IdentityResolver(recognizer, directory, challenges)
    ch = challenges.issue("s1")
    late = Frame(data=b"img", captured_at=clock.advance(seconds=10))

    with pytest.raises(ChallengeExpired):
        resolver.resolve(session_id="s1", frame=late, challenge_token=ch.token)
    assert recognizer.calls == []


def test_select_outside_candidates_is_rejected(fake_recognizer, directory, challenges, clock):
    resolver = IdentityResolver(
        fake_recognizer([Candidate("E01", 0.91), Candidate("E02", 0.89)]), directory, challenges
    )
    outcome = _resolve(resolver, challenges, clock)

    assert resolver.select(outcome, "E02").employee.name == "Ravi Shankar"
    with pytest.raises(ValidationError):
        resolver.select(outcome, "E07")


def test_audit_remark_lists_candidates(fake_recognizer, directory, challenges, clock):
    resolver = IdentityResolver(
        fake_recognizer([Candidate("E01", 0.91), Candidate("E02", 0.89)]), directory, challenges
    )
    outcome = _resolve(resolver, challenges, clock)

    assert audit_remark(outcome) == (
        "Auto-marked via face recognition; multiple candidates (E01 0.91, E02 0.89) resolved by supervisor"
    )
