from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_coordinates(latitude: Any, longitude: Any) -> tuple[float, float]:
    try:
        lat = float(latitude)
        lng = float(longitude)
    except (TypeError, ValueError):
        raise ValidationError("Geolocation data required", details={"latitude": latitude, "longitude": longitude})

    if math.isnan(lat) or math.isnan(lng) or not (-90 <= lat <= 90) or not (-180 <= lng <= 180):
        raise ValidationError("Invalid coordinates provided", details={"latitude": lat, "longitude": lng})
    return lat, lng


def optional_float(value: Any, field_name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number", details={field_name: value})


def require_timestamp(value: Any, field_name: str = "timestamp") -> datetime:
    """Accept datetime objects or ISO-8601 strings."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            pass
    raise ValidationError(f"{field_name} is not a valid timestamp", details={field_name: value})
