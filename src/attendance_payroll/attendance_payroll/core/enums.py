from __future__ import annotations

from enum import Enum


class AttendanceSource(str, Enum):
    """Which observations back an attendance record."""

    BIOMETRIC = "Biometric"
    SELF_REPORTED = "SelfReported"
    BOTH = "Both"
    MANUAL = "Manual"
    LEAVE = "Leave"
    HOLIDAY = "Holiday"


class VerificationMethod(str, Enum):
    BIOMETRIC = "Biometric"
    SELF_REPORTED = "SelfReported"
    BOTH = "Both"
    MANUAL = "Manual"
    LEAVE = "Leave"


class DiscrepancyKind(str, Enum):
    TIME_MISMATCH = "TimeMismatch"
    LOCATION_MISMATCH = "LocationMismatch"
    MISSING_SOURCE = "MissingSource"


class LeaveKind(str, Enum):
    SICK = "Sick"
    VACATION = "Vacation"
    PERSONAL = "Personal"
    EMERGENCY = "Emergency"
    MATERNITY = "Maternity"
    PATERNITY = "Paternity"
    HOLIDAY = "Holiday"


class ApprovalStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    AUTO_APPROVED = "AutoApproved"


class WorkLocation(str, Enum):
    OFFICE = "Office"
    HOME = "Home"
    REMOTE = "Remote"


class RiskLevel(str, Enum):
    """Outcome of the advisory anti-spoofing checks."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class RecommendationAction(str, Enum):
    ACCEPT_BIOMETRIC = "AcceptBiometric"
    MANUAL_REVIEW = "ManualReview"


class RowOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    ERROR = "error"


class AdjustmentKind(str, Enum):
    BONUS = "Bonus"
    INCREMENT = "Increment"
    DEDUCTION = "Deduction"
    ALLOWANCE = "Allowance"
    OVERTIME = "Overtime"
