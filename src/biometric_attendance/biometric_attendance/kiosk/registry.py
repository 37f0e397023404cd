from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from .flow import AttendanceKiosk

logger = logging.getLogger(__name__)

KioskFactory = Callable[[str, ThreadPoolExecutor], AttendanceKiosk]


class KioskRegistry:
    """Process-wide kiosk state: one AttendanceKiosk per device id.

    Lifecycle is explicit: kiosks are created on first use, closed per
    device, and everything is cancelled by shutdown(). With a
    `sweep_interval`, a background thread expires abandoned sessions so
    their frames and tokens do not wait for the next request.
    """

    def __init__(
        self,
        factory: KioskFactory,
        *,
        max_workers: int = 4,
        sweep_interval: Optional[float] = None,
    ):
        if sweep_interval is not None and sweep_interval <= 0:
            raise ValueError("sweep_interval must be positive")
        self._factory = factory
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="kiosk")
        self._lock = threading.Lock()
        self._kiosks: dict[str, AttendanceKiosk] = {}
        self._closed = False
        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None
        if sweep_interval is not None:
            self._sweeper = threading.Thread(
                target=self._sweep_loop,
                args=(float(sweep_interval),),
                name="kiosk-sweeper",
                daemon=True,
            )
            self._sweeper.start()

    def get(self, device_id: str) -> AttendanceKiosk:
        device_id = (device_id or "").strip()
        if not device_id:
            raise ValueError("device_id is required")
        with self._lock:
            if self._closed:
                raise RuntimeError("Kiosk registry is shut down")
            kiosk = self._kiosks.get(device_id)
            if kiosk is None:
                kiosk = self._factory(device_id, self._executor)
                self._kiosks[device_id] = kiosk
                logger.info("Registered kiosk %s", device_id)
            return kiosk

    def find(self, device_id: str) -> Optional[AttendanceKiosk]:
        with self._lock:
            return self._kiosks.get(device_id)

    def sweep(self) -> int:
        """Expire inactive sessions on every device; returns how many expired."""
        with self._lock:
            kiosks = list(self._kiosks.values())
        return sum(1 for k in kiosks if k.expire_if_inactive())

    def _sweep_loop(self, interval: float) -> None:
        while not self._stop.wait(interval):
            try:
                expired = self.sweep()
            except Exception:
                # The sweeper thread outlives a failing kiosk.
                logger.exception("Kiosk sweep failed")
                continue
            if expired:
                logger.info("Expired %d inactive kiosk session(s)", expired)

    def close(self, device_id: str) -> None:
        with self._lock:
            kiosk = self._kiosks.pop(device_id, None)
        if kiosk is not None:
            kiosk.cancel()

    def shutdown(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            kiosks, self._kiosks = list(self._kiosks.values()), {}
        self._stop.set()
        if self._sweeper is not None and self._sweeper is not threading.current_thread():
            self._sweeper.join(timeout=5)
        for kiosk in kiosks:
            kiosk.cancel()
        self._executor.shutdown(wait=False, cancel_futures=True)
        logger.info("Kiosk registry shut down (%d devices)", len(kiosks))
