from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, jsonify
from werkzeug.exceptions import NotFound, RequestEntityTooLarge

from config import get_settings_module

from .database.bootstrap import apply_schema, list_tables

from .container import build_container
from .attendance.controller import register as register_attendance
from .importing.controller import register as register_importing
from .payroll.controller import register as register_payroll

logger = logging.getLogger(__name__)

# Multipart framing around the uploaded spreadsheet.
_UPLOAD_OVERHEAD_BYTES = 64 * 1024


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(RequestEntityTooLarge)
    def too_large(_exc):
        return jsonify({"success": False, "message": "Uploaded file exceeds the size limit"}), 413

    @app.errorhandler(NotFound)
    def not_found(_exc):
        return jsonify({"success": False, "message": "Not found"}), 404


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["MAX_CONTENT_LENGTH"] = int(getattr(settings, "MAX_UPLOAD_BYTES")) + _UPLOAD_OVERHEAD_BYTES

    logging.basicConfig(
        level=logging.DEBUG if app.config["DEBUG"] else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    storage = str(getattr(settings, "STORAGE", "mysql")).lower()
    db_config = getattr(settings, "DB_CONFIG")
    logger.info(
        "settings=%s storage=%s db=%s@%s:%s/%s",
        settings_module,
        storage,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if storage == "mysql" and bool(getattr(settings, "AUTO_INIT_DB", False)):
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(db_config, schema_path=schema_path)
        logger.info("schema ready (tables=%d)", len(list_tables(db_config)))

    container = build_container(settings=settings)
    app.extensions["attendance_payroll"] = container

    _register_error_handlers(app)
    register_attendance(app, container)
    register_importing(app, container)
    register_payroll(app, container)

    return app
