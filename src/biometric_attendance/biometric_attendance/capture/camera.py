from __future__ import annotations

import base64
import binascii
import io
import re
import threading
from typing import Optional, Protocol

from PIL import Image, UnidentifiedImageError

from ..core.exceptions import CameraUnavailable, ValidationError

_DATA_URL = re.compile(r"^data:(?P<mime>image/[\w.+-]+);base64,(?P<payload>.*)$", re.DOTALL)


class Camera(Protocol):
    """Frame source for one device. The capture primitive itself is external."""

    def start(self) -> None:
        raise NotImplementedError

    def grab(self) -> tuple[bytes, str]:
        """Return (image bytes, content type)."""
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError


def decode_image_payload(payload: str | bytes) -> tuple[bytes, str]:
    """Decode a browser screenshot (data URL or bare base64) and check it is an image."""
    if isinstance(payload, bytes):
        raw = payload
        mime = None
    else:
        text = (payload or "").strip()
        if not text:
            raise ValidationError("Image is required")
        m = _DATA_URL.match(text)
        mime = m.group("mime") if m else None
        b64 = m.group("payload") if m else text
        try:
            raw = base64.b64decode(b64, validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError("Image is not valid base64")

    try:
        with Image.open(io.BytesIO(raw)) as img:
            fmt = (img.format or "").lower()
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise ValidationError("Uploaded data is not a readable image")

    return raw, mime or Image.MIME.get(fmt.upper(), f"image/{fmt or 'jpeg'}")


class UploadedFrameCamera(Camera):
    """Camera fed by frames the browser widget uploads.

    The kiosk page owns the real webcam; it pushes a screenshot right
    before asking the server to capture.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._pending: Optional[tuple[bytes, str]] = None
        self._running = False

    def start(self) -> None:
        with self._lock:
            self._running = True
            self._pending = None

    def push(self, payload: str | bytes) -> None:
        decoded = decode_image_payload(payload)
        with self._lock:
            if not self._running:
                raise CameraUnavailable("Camera is not active")
            self._pending = decoded

    def grab(self) -> tuple[bytes, str]:
        with self._lock:
            if not self._running:
                raise CameraUnavailable("Camera is not active")
            if self._pending is None:
                raise CameraUnavailable("No frame received from the camera")
            frame, self._pending = self._pending, None
            return frame

    def stop(self) -> None:
        with self._lock:
            self._running = False
            self._pending = None
