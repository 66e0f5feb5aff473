from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

from ..core.enums import (
    ApprovalStatus,
    AttendanceSource,
    DiscrepancyKind,
    LeaveKind,
    RiskLevel,
    VerificationMethod,
    WorkLocation,
)


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    address: Optional[str] = None


@dataclass(frozen=True)
class BiometricObservation:
    """A device-log time pair, usually one spreadsheet row."""

    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    device_id: Optional[str] = None
    location: Optional[str] = None


@dataclass(frozen=True)
class SelfReportedObservation:
    """A check-in and/or check-out submitted through the app."""

    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    check_in_location: Optional[GeoPoint] = None
    check_out_location: Optional[GeoPoint] = None
    notes: Optional[str] = None
    work_location: Optional[WorkLocation] = None
    risk_level: Optional[RiskLevel] = None


Observation = Union[BiometricObservation, SelfReportedObservation]


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one authoritative attendance row per (employee, date).

    ``hours_worked``, ``regular_hours``, ``overtime_hours`` and the
    verification/discrepancy fields are derived by the reconciliation engine;
    callers never set them directly.
    """

    employee_id: str
    work_date: date
    record_id: Optional[int] = None

    biometric_in: Optional[datetime] = None
    biometric_out: Optional[datetime] = None
    biometric_device_id: Optional[str] = None
    biometric_location: Optional[str] = None

    self_reported_in: Optional[datetime] = None
    self_reported_out: Optional[datetime] = None
    self_reported_in_location: Optional[GeoPoint] = None
    self_reported_out_location: Optional[GeoPoint] = None

    break_minutes: int = 0
    hours_worked: float = 0.0
    regular_hours: float = 0.0
    overtime_hours: float = 0.0

    source: AttendanceSource = AttendanceSource.MANUAL
    is_present: bool = False
    is_verified: bool = False
    verification_method: VerificationMethod = VerificationMethod.MANUAL

    has_discrepancy: bool = False
    discrepancy_kind: Optional[DiscrepancyKind] = None
    discrepancy_minutes: Optional[float] = None

    is_leave: bool = False
    leave_kind: Optional[LeaveKind] = None
    leave_reference_id: Optional[str] = None

    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    work_location: WorkLocation = WorkLocation.OFFICE
    risk_level: RiskLevel = RiskLevel.LOW
    is_late: bool = False
    auto_closed: bool = False
    employee_notes: Optional[str] = None
    system_notes: Optional[str] = None

    @property
    def key(self) -> tuple[str, date]:
        return self.employee_id, self.work_date

    @property
    def has_biometric(self) -> bool:
        return self.biometric_in is not None

    @property
    def has_self_reported(self) -> bool:
        return self.self_reported_in is not None

    @property
    def first_check_in(self) -> Optional[datetime]:
        candidates = [t for t in (self.biometric_in, self.self_reported_in) if t is not None]
        return min(candidates) if candidates else None

    @property
    def is_open(self) -> bool:
        """Self-reported check-in without any end-of-day observation."""
        if self.self_reported_in is None or self.self_reported_out is not None:
            return False
        return self.biometric_out is None

    def to_dict(self) -> dict:
        data = asdict(self)
        for k, v in list(data.items()):
            if isinstance(v, Enum):
                data[k] = v.value
            elif isinstance(v, (date, datetime)):
                data[k] = v.isoformat()
        return data


@dataclass(frozen=True)
class AutoCloseEvent:
    employee_id: str
    work_date: date
    hours_worked: float
    closed_at: datetime
    reason: str

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "date": self.work_date.isoformat(),
            "hours_worked": self.hours_worked,
            "closed_at": self.closed_at.isoformat(),
            "reason": self.reason,
        }
