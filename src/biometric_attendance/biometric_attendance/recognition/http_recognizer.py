from __future__ import annotations

import base64
import logging
from typing import Optional, Sequence

import requests

from ..capture.model import Frame
from ..core.constants import DEFAULT_RECOGNIZER_TIMEOUT_SECONDS
from ..core.enums import RecognitionFailure
from ..core.exceptions import RecognitionError, RecognizerUnavailable
from .model import Candidate
from .recognizer import Recognizer

logger = logging.getLogger(__name__)

_FAILURES_BY_STATUS = {
    404: RecognitionFailure.NOT_DETECTED,
    400: RecognitionFailure.LOW_QUALITY,
    403: RecognitionFailure.NO_MATCH,
}


class HttpRecognizer(Recognizer):
    """JSON client for the recognition endpoint.

    POST {frame, challenge_token} -> 200 [{employee_id, confidence}, ...]
    | 404 no face | 400 low quality | 403 no match.
    """

    def __init__(
        self,
        url: str,
        *,
        token: Optional[str] = None,
        timeout: float = DEFAULT_RECOGNIZER_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout = float(timeout)
        self.session = session or requests.Session()
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def recognize(self, frame: Frame, challenge_token: str) -> Sequence[Candidate]:
        payload = {
            "frame": f"data:{frame.content_type};base64," + base64.b64encode(frame.data).decode("ascii"),
            "challenge_token": challenge_token,
        }
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Recognizer request failed: %s", exc)
            raise RecognizerUnavailable("Face recognition service is unavailable") from exc

        failure = _FAILURES_BY_STATUS.get(response.status_code)
        if failure is not None:
            raise RecognitionError(failure)
        if response.status_code != 200:
            logger.warning("Recognizer returned HTTP %s", response.status_code)
            raise RecognizerUnavailable(f"Face recognition failed (HTTP {response.status_code})")

        try:
            body = response.json()
        except ValueError as exc:
            raise RecognizerUnavailable("Face recognition returned an invalid response") from exc
        return self._parse(body)

    @staticmethod
    def _parse(body) -> list[Candidate]:
        if isinstance(body, dict):
            body = body.get("candidates", [])
        if not isinstance(body, list):
            raise RecognizerUnavailable("Face recognition returned an invalid response")

        candidates = []
        for item in body:
            if not isinstance(item, dict):
                continue
            employee_id = item.get("employee_id", item.get("id"))
            if employee_id in (None, ""):
                continue
            raw_confidence = item.get("confidence")
            if raw_confidence is None:
                continue
            try:
                confidence = float(raw_confidence)
            except (TypeError, ValueError):
                continue
            candidates.append(Candidate(employee_id=str(employee_id), confidence=confidence))
        return candidates
