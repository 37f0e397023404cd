from __future__ import annotations

import logging
from concurrent.futures import TimeoutError as FutureTimeout

from flask import Flask, jsonify, request

from ..common.validators import require_non_empty
from ..container import Container
from ..core.constants import DEFAULT_RESULT_WAIT_SECONDS
from ..core.enums import CaptureMode
from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    def _body() -> dict:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}

    def _kiosk(device_id: str):
        try:
            return container.kiosks.get(device_id)
        except ValueError as e:
            raise ValidationError(str(e))

    @app.route("/api/kiosk/<device_id>", methods=["GET"], endpoint="kiosk_state")
    def kiosk_state(device_id: str):
        kiosk = _kiosk(device_id)
        kiosk.expire_if_inactive()
        return jsonify({"success": True, **kiosk.snapshot()})

    @app.route("/api/kiosk/<device_id>/session", methods=["POST"], endpoint="kiosk_open")
    def kiosk_open(device_id: str):
        data = _body()
        mode = str(data.get("mode", "")).strip().upper()
        if mode not in {m.value for m in CaptureMode}:
            raise ValidationError("mode must be IN or OUT")

        record_id = data.get("record_id")
        if record_id not in (None, ""):
            try:
                record_id = int(record_id)
            except (TypeError, ValueError):
                raise ValidationError("record_id must be an integer")
        else:
            record_id = None

        hint = (str(data.get("employee_hint") or "").strip()) or None
        session = _kiosk(device_id).open(CaptureMode(mode), employee_hint=hint, record_id=record_id)
        return jsonify({"success": True, "session_id": session.session_id, "mode": session.mode.value}), 201

    @app.route("/api/kiosk/<device_id>/challenge", methods=["POST"], endpoint="kiosk_challenge")
    def kiosk_challenge(device_id: str):
        challenge = _kiosk(device_id).issue_challenge()
        return jsonify(
            {
                "success": True,
                "action": challenge.action.value,
                "token": challenge.token,
                "expires_at": challenge.expires_at.isoformat(),
            }
        )

    @app.route("/api/kiosk/<device_id>/capture", methods=["POST"], endpoint="kiosk_capture")
    def kiosk_capture(device_id: str):
        """Capture the uploaded screenshot and resolve who it is."""
        image = require_non_empty(_body().get("image"), "image")

        kiosk = _kiosk(device_id)
        kiosk.capture(image)
        future = kiosk.submit_recognition()
        try:
            step = future.result(timeout=DEFAULT_RESULT_WAIT_SECONDS)
        except FutureTimeout:
            kiosk.cancel()
            return jsonify({"success": False, "error": "TIMEOUT", "message": "Face recognition timed out"}), 504
        return jsonify({"success": True, **step.to_dict()})

    @app.route("/api/kiosk/<device_id>/select", methods=["POST"], endpoint="kiosk_select")
    def kiosk_select(device_id: str):
        employee_id = require_non_empty(_body().get("employee_id"), "employee_id")
        step = _kiosk(device_id).select_candidate(employee_id)
        return jsonify({"success": True, **step.to_dict()})

    @app.route("/api/kiosk/<device_id>/confirm", methods=["POST"], endpoint="kiosk_confirm")
    def kiosk_confirm(device_id: str):
        kiosk = _kiosk(device_id)
        future = kiosk.submit_confirm()
        try:
            record = future.result(timeout=DEFAULT_RESULT_WAIT_SECONDS)
        except FutureTimeout:
            # Outcome unknown: the write may still land. Never re-submit blindly.
            return (
                jsonify(
                    {
                        "success": False,
                        "error": "TIMEOUT",
                        "message": "Commit result unknown. Check today's records before retrying",
                    }
                ),
                504,
            )
        action = "IN" if record.out_time is None else "OUT"
        logger.info("Device %s marked %s for %s", device_id, action, record.employee_id)
        return jsonify({"success": True, "message": f"Attendance marked {action}", "record": record.to_dict()})

    @app.route("/api/kiosk/<device_id>/cancel", methods=["POST"], endpoint="kiosk_cancel")
    def kiosk_cancel(device_id: str):
        _kiosk(device_id).cancel()
        return jsonify({"success": True, "stage": "IDLE"})
