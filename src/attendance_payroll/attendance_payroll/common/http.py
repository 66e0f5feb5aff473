from __future__ import annotations

import logging
from datetime import date, datetime
from functools import wraps
from typing import Any, Optional

from flask import jsonify, request

from ..core.exceptions import ConflictError, DomainError, NotFoundError, PolicyViolation, ValidationError

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (PolicyViolation, 422),
)


def status_for(exc: DomainError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 400


def error_response(exc: DomainError):
    body = {"success": False, "message": exc.message, "error": type(exc).__name__}
    if exc.details:
        body["details"] = exc.details
    return jsonify(body), status_for(exc)


def json_endpoint(view):
    """Wrap a view returning ``(payload, status)`` into the JSON envelope.

    Domain errors map to 4xx with their details; anything else is a 500 with a
    generic message.
    """

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            payload, status = view(*args, **kwargs)
        except DomainError as exc:
            return error_response(exc)
        except Exception:
            logger.exception("unhandled error in %s", view.__name__)
            return jsonify({"success": False, "message": "Internal server error"}), 500
        return jsonify({"success": True, "data": payload}), status

    return wrapper


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def require_date(value: Any, field_name: str) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a YYYY-MM-DD date", details={field_name: value})


def as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
