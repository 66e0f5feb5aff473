from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import time
from types import ModuleType
from typing import Optional
from zoneinfo import ZoneInfo

from .attendance.memory_repository import InMemoryAttendanceRepository
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.reconciliation import ReconciliationEngine, ReconciliationPolicy
from .attendance.repository import AttendanceRepository
from .attendance.rules.factory import checkout_rule_for
from .attendance.service import AttendanceService
from .core.events import EventBus
from .core.exceptions import ValidationError
from .database.connection import DBConfig, DatabaseConnection
from .geolocation.model import GeoSettings, LocationPolicy
from .geolocation.mysql_location_policy_repository import MySQLLocationPolicyRepository
from .geolocation.repository import InMemoryLocationPolicyRepository, LocationPolicyRepository
from .geolocation.validator import GeolocationValidator
from .importing.directory import EmployeeDirectory, InMemoryEmployeeDirectory
from .importing.model import ImportLimits
from .importing.mysql_employee_directory import MySQLEmployeeDirectory
from .importing.pipeline import BulkImportPipeline
from .payroll.calculator.standard_calculator import StandardPayrollCalculator
from .payroll.model import PayrollPolicy
from .payroll.mysql_payroll_repository import MySQLCompensationRepository, MySQLPayrollResultRepository
from .payroll.repository import (
    CompensationRepository,
    InMemoryCompensationRepository,
    InMemoryPayrollResultRepository,
    PayrollResultRepository,
)
from .payroll.service import PayrollService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    tz: ZoneInfo
    events: EventBus

    attendance_repo: AttendanceRepository
    directory: EmployeeDirectory
    policies_repo: LocationPolicyRepository
    compensation_repo: CompensationRepository
    payroll_results_repo: PayrollResultRepository

    engine: ReconciliationEngine
    attendance_service: AttendanceService
    import_pipeline: BulkImportPipeline
    payroll_service: PayrollService


def _late_after(value) -> time:
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value))
    except ValueError as exc:
        raise ValidationError(f"LATE_AFTER must look like HH:MM, got {value!r}") from exc


def build_container(*, settings: ModuleType) -> Container:
    tz = ZoneInfo(str(getattr(settings, "REFERENCE_TIMEZONE", "Asia/Kolkata")))
    storage = str(getattr(settings, "STORAGE", "mysql")).lower()
    block_on_high_risk = bool(getattr(settings, "BLOCK_ON_HIGH_RISK", False))

    conn: Optional[DatabaseConnection] = None
    if storage == "memory":
        attendance_repo = InMemoryAttendanceRepository()
        directory = InMemoryEmployeeDirectory()
        policies_repo = InMemoryLocationPolicyRepository()
        compensation_repo = InMemoryCompensationRepository()
        payroll_results_repo = InMemoryPayrollResultRepository()
    elif storage == "mysql":
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(getattr(settings, "DB_CONFIG")))
        attendance_repo = MySQLAttendanceRepository(conn)
        directory = MySQLEmployeeDirectory(conn)
        policies_repo = MySQLLocationPolicyRepository(conn, block_on_high_risk=block_on_high_risk)
        compensation_repo = MySQLCompensationRepository(conn)
        payroll_results_repo = MySQLPayrollResultRepository(conn)
    else:
        raise ValidationError(f"Unknown STORAGE backend: {storage}")

    events = EventBus()
    engine = ReconciliationEngine(
        attendance_repo,
        policy=ReconciliationPolicy(
            break_minutes=int(getattr(settings, "BREAK_MINUTES", 0)),
            late_after=_late_after(getattr(settings, "LATE_AFTER", "09:15")),
        ),
        tz=tz,
    )

    geo = GeoSettings.from_config(
        list(getattr(settings, "OFFICES", [])),
        default_policy=replace(LocationPolicy(), block_on_high_risk=block_on_high_risk),
    )
    if not geo.offices:
        logger.warning("no offices configured; every check-in will need a remote allowance")

    attendance_service = AttendanceService(
        attendance_repo,
        engine,
        geo=geo,
        validator=GeolocationValidator(),
        policies=policies_repo,
        checkout_rule=checkout_rule_for(str(getattr(settings, "CHECKOUT_RULE", "none"))),
        events=events,
        tz=tz,
        max_working_hours=float(getattr(settings, "MAX_WORKING_HOURS", 8)),
        auto_close_enabled=bool(getattr(settings, "AUTO_CLOSE_ENABLED", True)),
    )
    import_pipeline = BulkImportPipeline(
        engine,
        directory,
        limits=ImportLimits(
            max_bytes=int(getattr(settings, "MAX_UPLOAD_BYTES", ImportLimits.max_bytes)),
            max_rows=int(getattr(settings, "MAX_IMPORT_ROWS", ImportLimits.max_rows)),
        ),
        tz=tz,
    )
    payroll_policy = PayrollPolicy(
        required_days_ceiling=int(getattr(settings, "REQUIRED_DAYS_CEILING", PayrollPolicy.required_days_ceiling)),
        overtime_excellence_bonus=float(getattr(settings, "OVERTIME_EXCELLENCE_BONUS", PayrollPolicy.overtime_excellence_bonus)),
        late_penalty_per_day=float(getattr(settings, "LATE_PENALTY_PER_DAY", PayrollPolicy.late_penalty_per_day)),
        discrepancy_penalty_each=float(getattr(settings, "DISCREPANCY_PENALTY_EACH", PayrollPolicy.discrepancy_penalty_each)),
    )
    payroll_service = PayrollService(
        attendance_repo,
        compensation_repo,
        results=payroll_results_repo,
        directory=directory,
        calculator=StandardPayrollCalculator(payroll_policy),
        tz=tz,
    )

    return Container(
        conn=conn,
        tz=tz,
        events=events,
        attendance_repo=attendance_repo,
        directory=directory,
        policies_repo=policies_repo,
        compensation_repo=compensation_repo,
        payroll_results_repo=payroll_results_repo,
        engine=engine,
        attendance_service=attendance_service,
        import_pipeline=import_pipeline,
        payroll_service=payroll_service,
    )
