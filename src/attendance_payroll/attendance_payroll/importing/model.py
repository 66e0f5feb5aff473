from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from ..core.constants import MAX_IMPORT_ROWS, MAX_UPLOAD_BYTES
from ..core.enums import RecommendationAction, RowOutcome


@dataclass(frozen=True)
class ImportLimits:
    max_bytes: int = MAX_UPLOAD_BYTES
    max_rows: int = MAX_IMPORT_ROWS


@dataclass(frozen=True)
class ImportIssue:
    row: int
    message: str
    raw_value: Any = None
    severity: str = "error"

    def to_dict(self) -> dict:
        raw = self.raw_value
        if raw is not None and not isinstance(raw, (str, int, float, bool)):
            raw = str(raw)
        return {"row": self.row, "message": self.message, "raw_value": raw, "severity": self.severity}


@dataclass(frozen=True)
class RowResult:
    row: int
    outcome: RowOutcome
    employee_id: Optional[str] = None
    work_date: Optional[date] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "row": self.row,
            "outcome": self.outcome.value,
            "employee_id": self.employee_id,
            "date": self.work_date.isoformat() if self.work_date else None,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class RowRecommendation:
    """Advisory outcome of comparing one biometric row with the self-reported side."""

    row: int
    employee_id: str
    work_date: date
    action: RecommendationAction
    confidence: float
    reason: str
    time_in_diff_minutes: Optional[float] = None
    time_out_diff_minutes: Optional[float] = None
    has_discrepancy: bool = False

    def to_dict(self) -> dict:
        return {
            "row": self.row,
            "employee_id": self.employee_id,
            "date": self.work_date.isoformat(),
            "action": self.action.value,
            "confidence": self.confidence,
            "reason": self.reason,
            "time_in_diff_minutes": self.time_in_diff_minutes,
            "time_out_diff_minutes": self.time_out_diff_minutes,
            "has_discrepancy": self.has_discrepancy,
        }


@dataclass
class ImportBatch:
    """Outcome of one spreadsheet upload; filled in row by row."""

    batch_id: str
    filename: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    detected_format: str = "Unknown"
    column_mapping: dict[str, str] = field(default_factory=dict)

    total_rows: int = 0
    processed: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    employees_not_found: int = 0
    cancelled: bool = False

    rows: list[RowResult] = field(default_factory=list)
    issues: list[ImportIssue] = field(default_factory=list)
    recommendations: list[RowRecommendation] = field(default_factory=list)
    summary: dict[str, Any] = field(default_factory=dict)

    @property
    def errors(self) -> list[ImportIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[ImportIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    def record(self, result: RowResult) -> None:
        self.rows.append(result)
        if result.outcome is RowOutcome.CREATED:
            self.created += 1
        elif result.outcome is RowOutcome.UPDATED:
            self.updated += 1
        elif result.outcome is RowOutcome.SKIPPED:
            self.skipped += 1

    def to_dict(self) -> dict:
        return {
            "batch_id": self.batch_id,
            "filename": self.filename,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "detected_format": self.detected_format,
            "column_mapping": dict(self.column_mapping),
            "counts": {
                "total_rows": self.total_rows,
                "processed": self.processed,
                "created": self.created,
                "updated": self.updated,
                "skipped": self.skipped,
                "errors": len(self.errors),
                "warnings": len(self.warnings),
                "employees_not_found": self.employees_not_found,
            },
            "cancelled": self.cancelled,
            "rows": [r.to_dict() for r in self.rows],
            "issues": [i.to_dict() for i in self.issues],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "summary": self.summary,
        }
