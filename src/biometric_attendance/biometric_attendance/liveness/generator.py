"""Liveness challenge issue/validation.

A random action plus a short window is a model-agnostic defence against
photo and pre-recorded video replay. Validation is a hard precondition
for recognition.
"""

from __future__ import annotations

import logging
import random
import secrets
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_CHALLENGE_WINDOW_SECONDS
from ..core.enums import ChallengeAction
from ..core.exceptions import ChallengeExpired, ValidationError
from .model import Challenge

logger = logging.getLogger(__name__)


class ChallengeGenerator:
    def __init__(
        self,
        *,
        window_seconds: float = DEFAULT_CHALLENGE_WINDOW_SECONDS,
        actions: Sequence[ChallengeAction] = tuple(ChallengeAction),
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if not actions:
            raise ValueError("actions must not be empty")
        self._window = timedelta(seconds=float(window_seconds))
        self._actions = tuple(actions)
        self._rng = rng or random.SystemRandom()
        self._clock = clock
        self._lock = threading.Lock()
        self._issued: dict[str, Challenge] = {}

    @property
    def window(self) -> timedelta:
        return self._window

    def issue(self, session_id: str) -> Challenge:
        """Issue a fresh challenge; any earlier token for the session is revoked."""
        now = self._clock()
        challenge = Challenge(
            token=secrets.token_urlsafe(24),
            session_id=session_id,
            action=self._rng.choice(self._actions),
            issued_at=now,
            expires_at=now + self._window,
        )
        with self._lock:
            self._revoke_locked(session_id)
            self._issued[challenge.token] = challenge
        logger.info(
            "Issued challenge %s for session %s (token %s..., expires %s)",
            challenge.action.value,
            session_id,
            challenge.token[:6],
            challenge.expires_at.isoformat(),
        )
        return challenge

    def validate(self, token: str, *, session_id: str, frame_time: datetime) -> Challenge:
        """Return the challenge if `token` is live for `session_id` at `frame_time`.

        Raises ChallengeExpired for unknown/revoked/late tokens and
        ValidationError when the token belongs to another session.
        """
        with self._lock:
            challenge = self._issued.get(token)
        if challenge is None:
            raise ChallengeExpired("Challenge is no longer valid. Please start a new capture")
        if challenge.session_id != session_id:
            logger.warning("Token %s... presented by foreign session %s", token[:6], session_id)
            raise ValidationError("Challenge token does not belong to this session")
        if not challenge.is_open_at(frame_time):
            logger.info("Challenge for session %s expired at %s", session_id, challenge.expires_at.isoformat())
            raise ChallengeExpired("Challenge window expired. Please try again")
        return challenge

    def revoke(self, session_id: str) -> None:
        with self._lock:
            self._revoke_locked(session_id)

    def _revoke_locked(self, session_id: str) -> None:
        stale = [t for t, c in self._issued.items() if c.session_id == session_id]
        for t in stale:
            del self._issued[t]

    def outstanding(self) -> int:
        with self._lock:
            return len(self._issued)
