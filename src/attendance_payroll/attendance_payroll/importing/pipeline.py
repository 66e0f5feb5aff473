from __future__ import annotations

import io
import logging
import threading
import uuid
import zipfile
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo

import numpy as np
import pandas as pd

from ..attendance.model import AttendanceRecord, BiometricObservation
from ..attendance.reconciliation import ReconciliationEngine
from ..common.datetime_utils import hours_between, minutes_between, now_local
from ..core.constants import CLOSE_MATCH_MINUTES, MINOR_DRIFT_MINUTES
from ..core.enums import RecommendationAction, RowOutcome
from ..core.exceptions import PartialFailure, PolicyViolation, ValidationError
from . import columns as col
from .directory import EmployeeDirectory, resolve_employee
from .model import ImportBatch, ImportIssue, ImportLimits, RowRecommendation, RowResult
from .parsing import cell_text, is_blank, parse_date, parse_time

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

_ZIP_MAGIC = b"PK\x03\x04"
_OLE_MAGIC = b"\xd0\xcf\x11\xe0"

# Header is spreadsheet row 1; the first data row is row 2.
_FIRST_DATA_ROW = 2


@dataclass(frozen=True)
class ParsedRow:
    row: int
    employee_ref: Optional[str]
    employee_name: Optional[str]
    work_date: date
    time_in: datetime
    time_out: Optional[datetime]
    device_id: Optional[str]
    location: Optional[str]

    @property
    def hours(self) -> float:
        if self.time_out is None or self.time_out < self.time_in:
            return 0.0
        return hours_between(self.time_in, self.time_out)


class _SkipRow(Exception):
    """Row lacks data it needs; recorded as a warning, not an error."""


def recommend(row: int, record: AttendanceRecord) -> RowRecommendation:
    """Compare the biometric side with the self-reported side of a record."""
    if record.self_reported_in is None:
        return RowRecommendation(
            row=row,
            employee_id=record.employee_id,
            work_date=record.work_date,
            action=RecommendationAction.ACCEPT_BIOMETRIC,
            confidence=0.95,
            reason="No self-reported record to compare against",
        )

    in_diff = minutes_between(record.biometric_in, record.self_reported_in)
    out_diff = 0.0
    if record.biometric_out is not None and record.self_reported_out is not None:
        out_diff = minutes_between(record.biometric_out, record.self_reported_out)

    discrepant = in_diff > CLOSE_MATCH_MINUTES or out_diff > CLOSE_MATCH_MINUTES
    if not discrepant:
        action, confidence, reason = RecommendationAction.ACCEPT_BIOMETRIC, 0.95, "Times match within acceptable range"
    elif in_diff <= MINOR_DRIFT_MINUTES and out_diff <= MINOR_DRIFT_MINUTES:
        action, confidence, reason = (
            RecommendationAction.ACCEPT_BIOMETRIC,
            0.7,
            "Minor time difference, biometric likely more accurate",
        )
    else:
        action, confidence, reason = RecommendationAction.MANUAL_REVIEW, 0.3, "Significant time difference requires review"

    return RowRecommendation(
        row=row,
        employee_id=record.employee_id,
        work_date=record.work_date,
        action=action,
        confidence=confidence,
        reason=reason,
        time_in_diff_minutes=round(in_diff, 2),
        time_out_diff_minutes=round(out_diff, 2),
        has_discrepancy=discrepant,
    )


class BulkImportPipeline:
    """Biometric spreadsheet -> reconciled attendance records.

    Rows are independent: a bad row becomes an entry in ``ImportBatch.issues``
    and the rest of the file is still processed. Only an unreadable file
    fails the whole upload.
    """

    def __init__(
        self,
        engine: ReconciliationEngine,
        directory: EmployeeDirectory,
        *,
        limits: ImportLimits | None = None,
        tz: ZoneInfo | None = None,
    ):
        self._engine = engine
        self._directory = directory
        self._limits = limits or ImportLimits()
        self._tz = tz

    def _is_csv(self, file_bytes: bytes, filename: Optional[str]) -> bool:
        name = (filename or "").lower()
        if name.endswith(".csv"):
            return True
        if name.endswith((".xlsx", ".xlsm", ".xls")):
            return False
        return not (file_bytes.startswith(_ZIP_MAGIC) or file_bytes.startswith(_OLE_MAGIC))

    def read_frame(self, file_bytes: bytes, filename: Optional[str] = None) -> pd.DataFrame:
        buffer = io.BytesIO(file_bytes)
        try:
            if self._is_csv(file_bytes, filename):
                frame = pd.read_csv(buffer, dtype=object, skip_blank_lines=True)
            else:
                frame = pd.read_excel(buffer, sheet_name=0, dtype=object)
        except (ValueError, OSError, KeyError, ImportError, UnicodeDecodeError, zipfile.BadZipFile) as exc:
            raise ValidationError("Unable to read spreadsheet", details={"filename": filename, "error": str(exc)})

        frame.columns = [str(c).strip() for c in frame.columns]
        # Whitespace-only cells count as empty so blank rows drop out entirely.
        frame = frame.replace(r"^\s*$", np.nan, regex=True)
        return frame.dropna(how="all")

    def _parse_row(self, row_no: int, values: dict[str, Any], mapping: col.ColumnMapping) -> ParsedRow:
        def cell(logical: str) -> Any:
            header = mapping.header_for(logical)
            return values.get(header) if header is not None else None

        employee_ref = cell_text(cell(col.EMPLOYEE_ID))
        employee_name = cell_text(cell(col.EMPLOYEE_NAME))
        if not employee_ref and not employee_name:
            raise _SkipRow("Employee ID or name is missing")

        raw_date = cell(col.DATE)
        if is_blank(raw_date):
            raise _SkipRow("Date is missing")
        try:
            work_date = parse_date(raw_date)
        except ValueError as exc:
            raise PartialFailure(str(exc), row=row_no, raw_value=raw_date)

        if not mapping.has(col.TIME_IN) or is_blank(cell(col.TIME_IN)):
            raise _SkipRow("Time in is missing")

        parsed_times = []
        for logical in (col.TIME_IN, col.TIME_OUT):
            raw = cell(logical)
            try:
                parsed_times.append(parse_time(raw, work_date))
            except ValueError as exc:
                raise PartialFailure(str(exc), row=row_no, raw_value=raw)
        time_in, time_out = parsed_times

        return ParsedRow(
            row=row_no,
            employee_ref=employee_ref,
            employee_name=employee_name,
            work_date=work_date,
            time_in=time_in,
            time_out=time_out,
            device_id=cell_text(cell(col.DEVICE_ID)),
            location=cell_text(cell(col.LOCATION)),
        )

    def import_spreadsheet(
        self,
        file_bytes: bytes,
        *,
        filename: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> ImportBatch:
        if not file_bytes:
            raise ValidationError("Uploaded file is empty")
        if len(file_bytes) > self._limits.max_bytes:
            raise PolicyViolation(
                "File too large",
                details={"size_bytes": len(file_bytes), "max_bytes": self._limits.max_bytes},
            )

        frame = self.read_frame(file_bytes, filename)
        if len(frame) > self._limits.max_rows:
            raise PolicyViolation(
                "Too many rows in spreadsheet",
                details={"rows": len(frame), "max_rows": self._limits.max_rows},
            )

        headers = [str(h) for h in frame.columns]
        mapping = col.detect_columns(headers)
        batch = ImportBatch(
            batch_id=uuid.uuid4().hex,
            filename=filename,
            started_at=now_local(self._tz),
            detected_format=col.detect_format(headers),
            column_mapping=mapping.to_dict(),
            total_rows=len(frame),
        )

        missing = mapping.missing_required()
        if missing:
            batch.issues.append(
                ImportIssue(row=1, message=f"Missing required column(s): {', '.join(missing)}", raw_value=headers, severity="warning")
            )

        parsed_rows: list[ParsedRow] = []
        total = len(frame)
        for position, (index, series) in enumerate(frame.iterrows(), start=1):
            if cancel_event is not None and cancel_event.is_set():
                batch.cancelled = True
                logger.info("import %s cancelled after %d of %d rows", batch.batch_id, position - 1, total)
                break

            row_no = int(index) + _FIRST_DATA_ROW
            if missing:
                batch.record(RowResult(row=row_no, outcome=RowOutcome.SKIPPED, reason="required column missing"))
            else:
                parsed = self._process_row(batch, row_no, series.to_dict(), mapping)
                if parsed is not None:
                    parsed_rows.append(parsed)

            if progress is not None:
                progress(position, total)

        batch.summary = self._summarize(parsed_rows)
        batch.finished_at = now_local(self._tz)
        logger.info(
            "import %s finished: %d rows, %d created, %d updated, %d skipped, %d errors, %d not found",
            batch.batch_id,
            batch.total_rows,
            batch.created,
            batch.updated,
            batch.skipped,
            len(batch.errors),
            batch.employees_not_found,
        )
        return batch

    def _process_row(self, batch: ImportBatch, row_no: int, values: dict, mapping: col.ColumnMapping) -> Optional[ParsedRow]:
        try:
            parsed = self._parse_row(row_no, values, mapping)
        except _SkipRow as exc:
            batch.issues.append(ImportIssue(row=row_no, message=str(exc), severity="warning"))
            batch.record(RowResult(row=row_no, outcome=RowOutcome.SKIPPED, reason=str(exc)))
            return None
        except PartialFailure as exc:
            logger.warning("import row %d rejected: %s", row_no, exc.message)
            batch.issues.append(ImportIssue(row=exc.row, message=exc.message, raw_value=exc.raw_value))
            batch.record(RowResult(row=row_no, outcome=RowOutcome.ERROR, reason=exc.message))
            return None

        employee = resolve_employee(self._directory, parsed.employee_ref, parsed.employee_name)
        if employee is None:
            batch.employees_not_found += 1
            ref = parsed.employee_ref or parsed.employee_name
            batch.issues.append(ImportIssue(row=row_no, message="employee not found", raw_value=ref, severity="warning"))
            batch.record(RowResult(row=row_no, outcome=RowOutcome.SKIPPED, work_date=parsed.work_date, reason="employee not found"))
            return None

        observation = BiometricObservation(
            check_in=parsed.time_in,
            check_out=parsed.time_out,
            device_id=parsed.device_id,
            location=parsed.location,
        )
        result = self._engine.apply(employee.employee_id, parsed.work_date, observation)
        batch.processed += 1

        if result.created:
            outcome, reason = RowOutcome.CREATED, None
        elif result.changed:
            outcome, reason = RowOutcome.UPDATED, None
        else:
            outcome, reason = RowOutcome.SKIPPED, "already up to date"
        batch.record(RowResult(row=row_no, outcome=outcome, employee_id=employee.employee_id, work_date=parsed.work_date, reason=reason))
        batch.recommendations.append(recommend(row_no, result.record))
        return parsed

    @staticmethod
    def _summarize(parsed_rows: list[ParsedRow]) -> dict:
        if not parsed_rows:
            return {"date_range": {"start": None, "end": None}, "employees": 0, "average_hours": 0.0, "rows": 0}
        dates = sorted(p.work_date for p in parsed_rows)
        refs = {p.employee_ref or p.employee_name for p in parsed_rows}
        avg = sum(p.hours for p in parsed_rows) / len(parsed_rows)
        return {
            "date_range": {"start": dates[0].isoformat(), "end": dates[-1].isoformat()},
            "employees": len(refs),
            "average_hours": round(avg, 2),
            "rows": len(parsed_rows),
        }
