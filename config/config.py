"""Settings shared by every environment, read from the process environment.

The per-environment modules import everything from here and override what
differs.
"""

import json
import logging
import os

logger = logging.getLogger(__name__)


def env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _main_office() -> dict:
    return {
        "id": "main",
        "name": "Main Office",
        "latitude": float(os.getenv("OFFICE_LAT", "19.1628987")),
        "longitude": float(os.getenv("OFFICE_LNG", "72.8355871")),
        "radius": float(os.getenv("OFFICE_RADIUS", "100")),
        "address": os.getenv("OFFICE_ADDRESS", "Main Office Location"),
    }


def _additional_offices() -> list:
    raw = os.getenv("ADDITIONAL_OFFICES", "").strip()
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.warning("ADDITIONAL_OFFICES is not valid JSON; ignoring it")
        return []
    if not isinstance(parsed, list):
        logger.warning("ADDITIONAL_OFFICES must be a JSON list; ignoring it")
        return []

    offices = []
    for i, office in enumerate(parsed, start=2):
        if not isinstance(office, dict) or "latitude" not in office or "longitude" not in office:
            logger.warning("ADDITIONAL_OFFICES entry %d has no coordinates; skipping it", i - 1)
            continue
        offices.append(
            {
                "id": office.get("id") or f"office_{i}",
                "name": office.get("name") or f"Office {i}",
                "latitude": float(office["latitude"]),
                "longitude": float(office["longitude"]),
                "radius": float(office.get("radius") or 100),
                "address": office.get("address") or "",
            }
        )
    return offices


SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_payroll"),
}

DEBUG = env_flag("DEBUG", "0")

# "mysql" or "memory"
STORAGE = os.getenv("STORAGE", "mysql").lower()

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = env_flag("AUTO_INIT_DB", "0")

# Work dates and "business hours" are judged in this zone
REFERENCE_TIMEZONE = os.getenv("REFERENCE_TIMEZONE", "Asia/Kolkata")

OFFICES = [_main_office(), *_additional_offices()]
BLOCK_ON_HIGH_RISK = env_flag("BLOCK_ON_HIGH_RISK", "0")

# Attendance
MAX_WORKING_HOURS = float(os.getenv("MAX_WORKING_HOURS", "8"))
AUTO_CLOSE_ENABLED = env_flag("AUTO_CLOSE_ENABLED", "1")
BREAK_MINUTES = int(os.getenv("BREAK_MINUTES", "0"))
LATE_AFTER = os.getenv("LATE_AFTER", "09:15")
# none | notes | aim
CHECKOUT_RULE = os.getenv("CHECKOUT_RULE", "none")

# Bulk import
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
MAX_IMPORT_ROWS = int(os.getenv("MAX_IMPORT_ROWS", "50000"))

# Payroll
REQUIRED_DAYS_CEILING = int(os.getenv("REQUIRED_DAYS_CEILING", "26"))
OVERTIME_EXCELLENCE_BONUS = float(os.getenv("OVERTIME_EXCELLENCE_BONUS", "500"))
LATE_PENALTY_PER_DAY = float(os.getenv("LATE_PENALTY_PER_DAY", "50"))
DISCREPANCY_PENALTY_EACH = float(os.getenv("DISCREPANCY_PENALTY_EACH", "100"))
