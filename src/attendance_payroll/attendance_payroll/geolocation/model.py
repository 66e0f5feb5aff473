from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.constants import DEFAULT_OFFICE_RADIUS_METERS
from ..core.enums import RiskLevel, WorkLocation


@dataclass(frozen=True)
class Office:
    """A registered office location with its admission radius."""

    office_id: str
    name: str
    latitude: float
    longitude: float
    radius_meters: float = DEFAULT_OFFICE_RADIUS_METERS
    address: str = ""


@dataclass(frozen=True)
class LocationPolicy:
    """Per-employee location restrictions (owned by an external collaborator)."""

    allow_remote: bool = False
    strict_location_check: bool = True
    office_radius: Optional[float] = None
    allow_after_hours: bool = False
    block_on_high_risk: bool = False


@dataclass(frozen=True)
class PriorFix:
    latitude: float
    longitude: float
    timestamp: datetime


@dataclass(frozen=True)
class DeviceInfo:
    user_agent: str = ""
    device_type: str = ""


@dataclass(frozen=True)
class SecurityCheck:
    name: str
    suspicious: bool
    reason: str
    value: Optional[float] = None


@dataclass(frozen=True)
class OfficeDistance:
    office: Office
    distance_meters: float
    radius_meters: float

    @property
    def within_radius(self) -> bool:
        return self.distance_meters <= self.radius_meters


@dataclass(frozen=True)
class GeoDecision:
    admit: bool
    reason: str
    distance_meters: Optional[float] = None
    matched_office: Optional[Office] = None
    nearest_office: Optional[Office] = None
    required_radius: Optional[float] = None
    work_location: WorkLocation = WorkLocation.OFFICE
    risk_level: RiskLevel = RiskLevel.LOW
    checks: tuple[SecurityCheck, ...] = field(default_factory=tuple)
    remote_fallback: bool = False

    @property
    def suspicious(self) -> bool:
        return any(c.suspicious for c in self.checks)

    def to_dict(self) -> dict:
        office = self.matched_office or self.nearest_office
        return {
            "admitted": self.admit,
            "reason": self.reason,
            "distance_meters": None if self.distance_meters is None else round(self.distance_meters, 1),
            "required_radius": self.required_radius,
            "office_id": office.office_id if office else None,
            "office_address": office.address if office else None,
            "work_location": self.work_location.value,
            "risk_level": self.risk_level.value,
            "remote_fallback": self.remote_fallback,
            "checks": [{"name": c.name, "suspicious": c.suspicious, "reason": c.reason} for c in self.checks],
        }


@dataclass(frozen=True)
class GeoSettings:
    offices: tuple[Office, ...] = ()
    default_policy: LocationPolicy = field(default_factory=LocationPolicy)

    @classmethod
    def from_config(cls, offices: list[dict], *, default_policy: Optional[LocationPolicy] = None) -> "GeoSettings":
        """Build from the OFFICES setting (dicts with latitude/longitude/radius/address)."""
        built = []
        for i, raw in enumerate(offices or []):
            built.append(
                Office(
                    office_id=str(raw.get("id") or f"office_{i + 1}"),
                    name=str(raw.get("name") or f"Office {i + 1}"),
                    latitude=float(raw["latitude"]),
                    longitude=float(raw["longitude"]),
                    radius_meters=float(raw.get("radius") or DEFAULT_OFFICE_RADIUS_METERS),
                    address=str(raw.get("address") or ""),
                )
            )
        return cls(offices=tuple(built), default_policy=default_policy or LocationPolicy())
