from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, time
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from ..common.datetime_utils import hours_between, minutes_between, to_local
from ..core.constants import (
    DEFAULT_LATE_AFTER,
    DISCREPANCY_THRESHOLD_MINUTES,
    MAX_HOURS_PER_DAY,
    STANDARD_WORKING_HOURS,
)
from ..core.enums import (
    ApprovalStatus,
    AttendanceSource,
    DiscrepancyKind,
    LeaveKind,
    VerificationMethod,
)
from ..core.exceptions import ConflictError, ValidationError
from .model import AttendanceRecord, BiometricObservation, Observation, SelfReportedObservation
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciliationPolicy:
    """Per-deployment knobs. The discrepancy threshold is fixed, not a knob."""

    break_minutes: int = 0
    late_after: time = DEFAULT_LATE_AFTER


@dataclass(frozen=True)
class Reconciliation:
    record: AttendanceRecord
    created: bool
    changed: bool


def _keep(new, old):
    return new if new is not None else old


def merge_observation(record: AttendanceRecord, observation: Observation) -> AttendanceRecord:
    """Fold an observation into its side of the record.

    A populated field is never replaced by an empty one.
    """
    if isinstance(observation, BiometricObservation):
        return replace(
            record,
            biometric_in=_keep(observation.check_in, record.biometric_in),
            biometric_out=_keep(observation.check_out, record.biometric_out),
            biometric_device_id=_keep(observation.device_id, record.biometric_device_id),
            biometric_location=_keep(observation.location, record.biometric_location),
        )
    if isinstance(observation, SelfReportedObservation):
        return replace(
            record,
            self_reported_in=_keep(observation.check_in, record.self_reported_in),
            self_reported_out=_keep(observation.check_out, record.self_reported_out),
            self_reported_in_location=_keep(observation.check_in_location, record.self_reported_in_location),
            self_reported_out_location=_keep(observation.check_out_location, record.self_reported_out_location),
            employee_notes=_keep(observation.notes, record.employee_notes),
            work_location=_keep(observation.work_location, record.work_location),
            risk_level=_keep(observation.risk_level, record.risk_level),
        )
    raise ValidationError(f"Unsupported observation type: {type(observation).__name__}")


def _authoritative_pair(record: AttendanceRecord) -> Optional[tuple[datetime, datetime]]:
    if record.biometric_in is not None and record.biometric_out is not None:
        return record.biometric_in, record.biometric_out
    if record.self_reported_in is not None and record.self_reported_out is not None:
        return record.self_reported_in, record.self_reported_out
    return None


def derive(record: AttendanceRecord, policy: ReconciliationPolicy = ReconciliationPolicy()) -> AttendanceRecord:
    """Recompute every derived field from the merged observations.

    Pure: the same merged state always yields the same derived fields.
    """
    bio = record.biometric_in is not None
    selfr = record.self_reported_in is not None

    if bio and selfr:
        source = AttendanceSource.BOTH
        method = VerificationMethod.BOTH
    elif bio:
        source = AttendanceSource.BIOMETRIC
        method = VerificationMethod.BIOMETRIC
    elif selfr:
        source = AttendanceSource.SELF_REPORTED
        method = VerificationMethod.SELF_REPORTED
    elif record.source in (AttendanceSource.HOLIDAY, AttendanceSource.LEAVE):
        source = record.source
        method = VerificationMethod.MANUAL
    else:
        source = AttendanceSource.MANUAL
        method = VerificationMethod.MANUAL

    has_discrepancy = False
    discrepancy_kind: Optional[DiscrepancyKind] = None
    discrepancy_minutes: Optional[float] = None
    if bio and selfr:
        diff = minutes_between(record.biometric_in, record.self_reported_in)
        if diff > DISCREPANCY_THRESHOLD_MINUTES:
            has_discrepancy = True
            discrepancy_kind = DiscrepancyKind.TIME_MISMATCH
            discrepancy_minutes = diff

    hours = 0.0
    pair = _authoritative_pair(record)
    if pair is not None:
        check_in, check_out = pair
        if check_out < check_in:
            # Inverted pair: clamp and surface for review.
            if not has_discrepancy:
                has_discrepancy = True
                discrepancy_kind = DiscrepancyKind.TIME_MISMATCH
                discrepancy_minutes = minutes_between(check_in, check_out)
        else:
            hours = max(0.0, hours_between(check_in, check_out) - record.break_minutes / 60.0)
    hours = min(hours, float(MAX_HOURS_PER_DAY))
    regular = min(hours, float(STANDARD_WORKING_HOURS))
    overtime = max(0.0, hours - STANDARD_WORKING_HOURS)

    first_in = record.first_check_in
    is_late = first_in is not None and first_in.time() > policy.late_after

    is_verified = bio or selfr
    is_present = bio or selfr
    if record.is_leave:
        is_present = True
        is_verified = True
        method = VerificationMethod.LEAVE
        if not (bio or selfr):
            source = AttendanceSource.LEAVE

    return replace(
        record,
        source=source,
        verification_method=method,
        is_verified=is_verified,
        is_present=is_present,
        has_discrepancy=has_discrepancy,
        discrepancy_kind=discrepancy_kind,
        discrepancy_minutes=discrepancy_minutes,
        hours_worked=hours,
        regular_hours=regular,
        overtime_hours=overtime,
        is_late=is_late,
    )


class ReconciliationEngine:
    """Merges biometric and self-reported observations into one verified record.

    Every write goes through ``AttendanceRepository.locked`` so the merge step
    for a given (employee, date) is serialized.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        policy: Optional[ReconciliationPolicy] = None,
        tz: Optional[ZoneInfo] = None,
    ):
        self._attendance = attendance
        self._policy = policy or ReconciliationPolicy()
        self._tz = tz

    @property
    def policy(self) -> ReconciliationPolicy:
        return self._policy

    def _normalize(self, observation: Observation) -> Observation:
        def local(v: Optional[datetime]) -> Optional[datetime]:
            return None if v is None else to_local(v, self._tz)

        return replace(observation, check_in=local(observation.check_in), check_out=local(observation.check_out))

    def new_record(self, employee_id: str, work_date: date) -> AttendanceRecord:
        return AttendanceRecord(employee_id=str(employee_id), work_date=work_date, break_minutes=self._policy.break_minutes)

    def apply(
        self,
        employee_id: str,
        work_date: date,
        observation: Observation,
        *,
        guard: Optional[Callable[[Optional[AttendanceRecord]], None]] = None,
    ) -> Reconciliation:
        """Merge one observation and re-derive the record.

        ``guard`` sees the stored record while the key is held and may raise
        to abort the write.
        """
        if not str(employee_id or "").strip():
            raise ValidationError("employee_id is required")
        observation = self._normalize(observation)

        with self._attendance.locked(str(employee_id), work_date) as slot:
            current = slot.record
            if guard is not None:
                guard(current)
            created = current is None
            base = current or self.new_record(employee_id, work_date)
            merged = derive(merge_observation(base, observation), self._policy)

            if not created and merged == current:
                return Reconciliation(record=current, created=False, changed=False)

            saved = slot.save(merged)

        logger.info(
            "attendance %s for %s on %s (source=%s, discrepancy=%s)",
            "created" if created else "merged",
            saved.employee_id,
            saved.work_date,
            saved.source.value,
            saved.has_discrepancy,
        )
        return Reconciliation(record=saved, created=created, changed=True)

    def reconcile(self, employee_id: str, work_date: date, observation: Observation) -> AttendanceRecord:
        return self.apply(employee_id, work_date, observation).record

    def apply_leave(
        self,
        employee_id: str,
        work_date: date,
        *,
        leave_kind: LeaveKind,
        leave_reference_id: Optional[str],
    ) -> AttendanceRecord:
        """Write the external leave marker; bypasses the observation merge."""
        with self._attendance.locked(str(employee_id), work_date) as slot:
            base = slot.record or self.new_record(employee_id, work_date)
            if base.is_leave and base.leave_reference_id != leave_reference_id:
                raise ConflictError(
                    "Leave already recorded for this date",
                    details={
                        "employee_id": base.employee_id,
                        "date": work_date.isoformat(),
                        "leave_reference_id": base.leave_reference_id,
                    },
                )
            marked = replace(
                base,
                is_leave=True,
                leave_kind=leave_kind,
                leave_reference_id=leave_reference_id,
                approval_status=ApprovalStatus.APPROVED,
            )
            return slot.save(derive(marked, self._policy))

    def force_close(self, employee_id: str, work_date: date, *, closed_at: datetime, note: str) -> Optional[AttendanceRecord]:
        """Close a still-open self-reported day. Returns None if it was closed meanwhile."""
        closed_at = to_local(closed_at, self._tz)
        with self._attendance.locked(str(employee_id), work_date) as slot:
            current = slot.record
            if current is None or not current.is_open:
                return None
            closed = replace(
                current,
                self_reported_out=closed_at,
                auto_closed=True,
                approval_status=ApprovalStatus.AUTO_APPROVED,
                system_notes=note,
            )
            return slot.save(derive(closed, self._policy))
