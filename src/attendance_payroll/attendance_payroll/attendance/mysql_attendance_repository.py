from __future__ import annotations

import hashlib
from contextlib import contextmanager
from datetime import date
from typing import Any, Iterator, Optional, Sequence

from ..core.enums import (
    ApprovalStatus,
    AttendanceSource,
    DiscrepancyKind,
    LeaveKind,
    RiskLevel,
    VerificationMethod,
    WorkLocation,
)
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone
from .model import AttendanceRecord, GeoPoint
from .repository import AttendanceRepository

_KEY_LOCK_TIMEOUT_SECONDS = 10

_COLUMNS = (
    "employee_id", "work_date",
    "biometric_in", "biometric_out", "biometric_device_id", "biometric_location",
    "self_reported_in", "self_reported_out",
    "self_in_latitude", "self_in_longitude", "self_in_accuracy", "self_in_address",
    "self_out_latitude", "self_out_longitude", "self_out_accuracy", "self_out_address",
    "break_minutes", "hours_worked", "regular_hours", "overtime_hours",
    "source", "is_present", "is_verified", "verification_method",
    "has_discrepancy", "discrepancy_kind", "discrepancy_minutes",
    "is_leave", "leave_kind", "leave_reference_id",
    "approval_status", "work_location", "risk_level", "is_late", "auto_closed",
    "employee_notes", "system_notes",
)

_SELECT = "SELECT record_id, " + ", ".join(_COLUMNS) + " FROM attendance_records"

_UPSERT = (
    "INSERT INTO attendance_records(" + ", ".join(_COLUMNS) + ") VALUES("
    + ", ".join(["%s"] * len(_COLUMNS)) + ") ON DUPLICATE KEY UPDATE "
    + ", ".join(f"{c}=VALUES({c})" for c in _COLUMNS[2:])
)


def _point(row: dict, prefix: str) -> Optional[GeoPoint]:
    lat, lng = row.get(f"{prefix}_latitude"), row.get(f"{prefix}_longitude")
    if lat is None or lng is None:
        return None
    return GeoPoint(float(lat), float(lng), as_float(row.get(f"{prefix}_accuracy")), row.get(f"{prefix}_address"))


def _point_values(point: Optional[GeoPoint]) -> tuple[Any, Any, Any, Any]:
    if point is None:
        return None, None, None, None
    return point.latitude, point.longitude, point.accuracy, point.address


def _enum(cls, value):
    return cls(value) if value is not None else None


def _from_row(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=int(r["record_id"]),
        employee_id=str(r["employee_id"]),
        work_date=r["work_date"],
        biometric_in=r.get("biometric_in"),
        biometric_out=r.get("biometric_out"),
        biometric_device_id=r.get("biometric_device_id"),
        biometric_location=r.get("biometric_location"),
        self_reported_in=r.get("self_reported_in"),
        self_reported_out=r.get("self_reported_out"),
        self_reported_in_location=_point(r, "self_in"),
        self_reported_out_location=_point(r, "self_out"),
        break_minutes=int(r.get("break_minutes") or 0),
        hours_worked=as_float(r.get("hours_worked")) or 0.0,
        regular_hours=as_float(r.get("regular_hours")) or 0.0,
        overtime_hours=as_float(r.get("overtime_hours")) or 0.0,
        source=AttendanceSource(r["source"]),
        is_present=bool(r.get("is_present")),
        is_verified=bool(r.get("is_verified")),
        verification_method=VerificationMethod(r["verification_method"]),
        has_discrepancy=bool(r.get("has_discrepancy")),
        discrepancy_kind=_enum(DiscrepancyKind, r.get("discrepancy_kind")),
        discrepancy_minutes=as_float(r.get("discrepancy_minutes")),
        is_leave=bool(r.get("is_leave")),
        leave_kind=_enum(LeaveKind, r.get("leave_kind")),
        leave_reference_id=r.get("leave_reference_id"),
        approval_status=ApprovalStatus(r["approval_status"]),
        work_location=WorkLocation(r["work_location"]),
        risk_level=RiskLevel(r["risk_level"]),
        is_late=bool(r.get("is_late")),
        auto_closed=bool(r.get("auto_closed")),
        employee_notes=r.get("employee_notes"),
        system_notes=r.get("system_notes"),
    )


def _to_values(rec: AttendanceRecord) -> tuple:
    return (
        rec.employee_id, rec.work_date,
        rec.biometric_in, rec.biometric_out, rec.biometric_device_id, rec.biometric_location,
        rec.self_reported_in, rec.self_reported_out,
        *_point_values(rec.self_reported_in_location),
        *_point_values(rec.self_reported_out_location),
        rec.break_minutes, rec.hours_worked, rec.regular_hours, rec.overtime_hours,
        rec.source.value, int(rec.is_present), int(rec.is_verified), rec.verification_method.value,
        int(rec.has_discrepancy),
        rec.discrepancy_kind.value if rec.discrepancy_kind else None,
        rec.discrepancy_minutes,
        int(rec.is_leave), rec.leave_kind.value if rec.leave_kind else None, rec.leave_reference_id,
        rec.approval_status.value, rec.work_location.value, rec.risk_level.value,
        int(rec.is_late), int(rec.auto_closed),
        rec.employee_notes, rec.system_notes,
    )


def _lock_name(employee_id: str, work_date: date) -> str:
    # MySQL named locks are limited to 64 characters.
    digest = hashlib.sha1(f"{employee_id}|{work_date.isoformat()}".encode("utf-8")).hexdigest()
    return f"attendance:{digest}"


class _MySQLSlot:
    def __init__(self, cur, record: Optional[AttendanceRecord]):
        self._cur = cur
        self.record = record

    def save(self, record: AttendanceRecord) -> AttendanceRecord:
        self._cur.execute(_UPSERT, _to_values(record))
        self._cur.execute(
            _SELECT + " WHERE employee_id=%s AND work_date=%s",
            (record.employee_id, record.work_date),
        )
        stored = _from_row(fetchone(self._cur))
        self.record = stored
        return stored


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_employee_and_date(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE employee_id=%s AND work_date=%s", (str(employee_id), work_date))
            r = fetchone(cur)
            return _from_row(r) if r else None

    @contextmanager
    def locked(self, employee_id: str, work_date: date) -> Iterator[_MySQLSlot]:
        """Named lock covers the not-yet-inserted case; FOR UPDATE covers the row."""
        name = _lock_name(str(employee_id), work_date)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT GET_LOCK(%s, %s) AS acquired", (name, _KEY_LOCK_TIMEOUT_SECONDS))
            acquired = fetchone(cur)
            if not acquired or not acquired.get("acquired"):
                raise ConflictError(
                    "Attendance record is busy, retry later",
                    details={"employee_id": str(employee_id), "date": work_date.isoformat()},
                )
            try:
                cur.execute(
                    _SELECT + " WHERE employee_id=%s AND work_date=%s FOR UPDATE",
                    (str(employee_id), work_date),
                )
                r = fetchone(cur)
                yield _MySQLSlot(cur, _from_row(r) if r else None)
            finally:
                cur.execute("SELECT RELEASE_LOCK(%s)", (name,))
                fetchall(cur)

    def list_for_employee(self, employee_id: str, *, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE employee_id=%s AND work_date BETWEEN %s AND %s ORDER BY work_date ASC",
                (str(employee_id), start_date, end_date),
            )
            return [_from_row(r) for r in fetchall(cur)]

    def list_open(self, *, on_or_before: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT
                + " WHERE self_reported_in IS NOT NULL AND self_reported_out IS NULL"
                " AND biometric_out IS NULL AND work_date <= %s"
                " ORDER BY work_date ASC, employee_id ASC",
                (on_or_before,),
            )
            return [_from_row(r) for r in fetchall(cur)]
