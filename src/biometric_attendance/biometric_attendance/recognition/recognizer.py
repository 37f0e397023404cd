from __future__ import annotations

from typing import Protocol, Sequence

from ..capture.model import Frame
from .model import Candidate


class Recognizer(Protocol):
    """External face recognizer.

    Returns candidates for the frame, or raises RecognitionError
    (not detected / low quality / no match) or RecognizerUnavailable.
    """

    def recognize(self, frame: Frame, challenge_token: str) -> Sequence[Candidate]:
        raise NotImplementedError
