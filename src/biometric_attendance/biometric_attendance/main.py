from __future__ import annotations

import atexit
import importlib
import logging
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from config import get_settings_module

from .common.http_errors import register_error_handlers
from .container import build_container
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .recognition.recognizer import Recognizer

from .attendance.controller import register as register_attendance
from .kiosk.controller import register as register_kiosk

logger = logging.getLogger(__name__)

DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


class _Settings:
    """Settings module with per-app overrides layered on top."""

    def __init__(self, module: Any, overrides: dict):
        self._module = module
        self._overrides = dict(overrides)

    def __getattr__(self, name: str) -> Any:
        if name in self._overrides:
            return self._overrides[name]
        return getattr(self._module, name)


def create_app(
    overrides: Optional[dict] = None,
    *,
    recognizer: Optional[Recognizer] = None,
) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = _Settings(importlib.import_module(settings_module), overrides or {})

    logging.basicConfig(
        level=str(getattr(settings, "LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    container = build_container(settings, recognizer=recognizer)
    logger.info(
        "settings=%s backend=%s",
        settings_module,
        container.conn.describe() if container.conn else "memory",
    )

    if container.conn is not None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(container.conn, schema_path=DATABASE_DIR / "schema.sql")
            logger.info("Schema ready (tables=%d)", len(list_tables(container.conn)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(container.conn, seed_path=DATABASE_DIR / "seed.sql")

    register_error_handlers(app)
    register_attendance(app, container)
    register_kiosk(app, container)

    @app.route("/api/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"status": "ok"})

    app.extensions["biometric_attendance"] = container
    atexit.register(container.kiosks.shutdown)
    return app
