from __future__ import annotations

import base64
import io
from datetime import datetime, timedelta

import pytest
from PIL import Image

from src.biometric_attendance.biometric_attendance.employees.memory_directory import InMemoryEmployeeDirectory


class ManualClock:
    """Callable clock the tests move forward by hand."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeRecognizer:
    """Replays scripted answers; an Exception answer is raised instead of returned."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.calls = []

    def recognize(self, frame, challenge_token):
        self.calls.append((frame, challenge_token))
        answer = self.answers.pop(0) if len(self.answers) > 1 else self.answers[0]
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 3, 1, 9, 2, 0)


@pytest.fixture
def clock(fixed_now) -> ManualClock:
    return ManualClock(fixed_now)


@pytest.fixture
def directory() -> InMemoryEmployeeDirectory:
    return InMemoryEmployeeDirectory()


@pytest.fixture
def fake_recognizer():
    return FakeRecognizer


@pytest.fixture
def png_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), color=(200, 180, 160)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_data_url(png_bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")
