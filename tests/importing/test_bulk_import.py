from __future__ import annotations

import io
import threading
from datetime import date, datetime, timedelta

import pandas as pd
import pytest

from src.attendance_payroll.attendance_payroll.attendance.memory_repository import InMemoryAttendanceRepository
from src.attendance_payroll.attendance_payroll.attendance.model import SelfReportedObservation
from src.attendance_payroll.attendance_payroll.attendance.reconciliation import ReconciliationEngine
from src.attendance_payroll.attendance_payroll.core.enums import AttendanceSource, RecommendationAction, RowOutcome
from src.attendance_payroll.attendance_payroll.core.exceptions import PolicyViolation, ValidationError
from src.attendance_payroll.attendance_payroll.importing.directory import Employee, InMemoryEmployeeDirectory
from src.attendance_payroll.attendance_payroll.importing.model import ImportLimits
from src.attendance_payroll.attendance_payroll.importing.pipeline import BulkImportPipeline

EMPLOYEES = [Employee(f"E{i}", f"Worker {i}", f"worker{i}@example.com") for i in range(10)]


def make_pipeline(limits=None):
    repo = InMemoryAttendanceRepository()
    engine = ReconciliationEngine(repo)
    pipeline = BulkImportPipeline(engine, InMemoryEmployeeDirectory(EMPLOYEES), limits=limits)
    return pipeline, engine, repo


def csv_bytes(rows: list[list[str]], header=("Employee ID", "Date", "Time In", "Time Out")) -> bytes:
    lines = [",".join(header)] + [",".join(r) for r in rows]
    return ("\n".join(lines) + "\n").encode("utf-8")


def hundred_rows(bad_row_index: int | None = None) -> list[list[str]]:
    rows = []
    for i in range(100):
        day = date(2024, 1, 1) + timedelta(days=i // 10)
        time_in = "25:99" if i == bad_row_index else "09:00"
        rows.append([f"E{i % 10}", day.isoformat(), time_in, "17:00"])
    return rows


def test_one_malformed_row_does_not_sink_the_batch():
    pipeline, _, repo = make_pipeline()

    batch = pipeline.import_spreadsheet(csv_bytes(hundred_rows(bad_row_index=41)), filename="punches.csv")

    assert batch.total_rows == 100
    assert batch.processed == 99
    assert batch.created == 99
    assert len(batch.errors) == 1
    error = batch.errors[0]
    assert error.row == 43
    assert error.raw_value == "25:99"
    assert batch.detected_format == "Standard"
    assert batch.summary["employees"] == 10
    assert batch.summary["average_hours"] == 8.0
    assert repo.get_for_employee_and_date("E0", date(2024, 1, 1)).source is AttendanceSource.BIOMETRIC


def test_reimport_is_idempotent():
    pipeline, _, _ = make_pipeline()
    data = csv_bytes(hundred_rows()[:5])

    first = pipeline.import_spreadsheet(data, filename="a.csv")
    second = pipeline.import_spreadsheet(data, filename="a.csv")

    assert first.created == 5
    assert second.created == 0
    assert second.updated == 0
    assert [r.outcome for r in second.rows] == [RowOutcome.SKIPPED] * 5


def test_xlsx_upload():
    frame = pd.DataFrame(
        {
            "Emp Code": ["E1", "E2"],
            "Attendance Date": [datetime(2024, 1, 15), datetime(2024, 1, 15)],
            "Punch In": ["09:00", "08:45"],
            "Punch Out": ["18:00", "17:15"],
        }
    )
    buffer = io.BytesIO()
    frame.to_excel(buffer, index=False)
    pipeline, _, repo = make_pipeline()

    batch = pipeline.import_spreadsheet(buffer.getvalue(), filename="punches.xlsx")

    assert batch.created == 2
    assert batch.errors == []
    record = repo.get_for_employee_and_date("E1", date(2024, 1, 15))
    assert record.hours_worked == pytest.approx(9.0)
    assert record.overtime_hours == pytest.approx(1.0)


def test_rows_resolve_by_name_and_email():
    pipeline, _, repo = make_pipeline()
    data = csv_bytes(
        [["", "worker 3", "2024-01-15", "09:00", "17:00"], ["worker4@example.com", "", "2024-01-15", "09:00", "17:00"]],
        header=("Employee ID", "Employee Name", "Date", "Time In", "Time Out"),
    )

    batch = pipeline.import_spreadsheet(data, filename="x.csv")

    assert batch.created == 2
    assert repo.get_for_employee_and_date("E3", date(2024, 1, 15)) is not None
    assert repo.get_for_employee_and_date("E4", date(2024, 1, 15)) is not None


def test_unknown_employee_and_incomplete_rows_are_warnings():
    pipeline, _, _ = make_pipeline()
    data = csv_bytes(
        [
            ["E99", "2024-01-15", "09:00", "17:00"],
            ["E1", "", "09:00", "17:00"],
            ["E2", "2024-01-15", "", "17:00"],
            ["E3", "2024-01-15", "09:00", ""],
        ]
    )

    batch = pipeline.import_spreadsheet(data, filename="x.csv")

    assert batch.employees_not_found == 1
    assert batch.errors == []
    assert [w.row for w in batch.warnings] == [2, 3, 4]
    assert batch.skipped == 3
    assert batch.created == 1


def test_missing_required_column_skips_every_row():
    pipeline, _, _ = make_pipeline()
    data = csv_bytes([["09:00", "17:00"]] * 3, header=("Time In", "Time Out"))

    batch = pipeline.import_spreadsheet(data, filename="x.csv")

    assert batch.skipped == 3
    assert batch.processed == 0
    assert len(batch.warnings) == 1
    assert batch.warnings[0].row == 1
    assert batch.detected_format == "Custom"


def test_recommendations_compare_against_self_reported_side():
    pipeline, engine, _ = make_pipeline()
    day = date(2024, 1, 15)
    engine.reconcile("E1", day, SelfReportedObservation(check_in=datetime(2024, 1, 15, 9, 0)))
    engine.reconcile("E2", day, SelfReportedObservation(check_in=datetime(2024, 1, 15, 9, 0)))
    engine.reconcile("E3", day, SelfReportedObservation(check_in=datetime(2024, 1, 15, 9, 0)))
    data = csv_bytes(
        [
            ["E1", "2024-01-15", "09:10", "17:00"],
            ["E2", "2024-01-15", "09:20", "17:00"],
            ["E3", "2024-01-15", "10:00", "17:00"],
            ["E4", "2024-01-15", "09:00", "17:00"],
        ]
    )

    batch = pipeline.import_spreadsheet(data, filename="x.csv")

    by_employee = {r.employee_id: r for r in batch.recommendations}
    assert (by_employee["E1"].action, by_employee["E1"].confidence) == (RecommendationAction.ACCEPT_BIOMETRIC, 0.95)
    assert (by_employee["E2"].action, by_employee["E2"].confidence) == (RecommendationAction.ACCEPT_BIOMETRIC, 0.7)
    assert (by_employee["E3"].action, by_employee["E3"].confidence) == (RecommendationAction.MANUAL_REVIEW, 0.3)
    assert by_employee["E4"].confidence == 0.95
    assert batch.updated == 3
    assert batch.created == 1


def test_limits_and_unreadable_files():
    pipeline, _, _ = make_pipeline(limits=ImportLimits(max_bytes=64, max_rows=2))

    with pytest.raises(ValidationError):
        pipeline.import_spreadsheet(b"", filename="x.csv")
    with pytest.raises(PolicyViolation):
        pipeline.import_spreadsheet(b"x" * 65, filename="x.csv")
    with pytest.raises(PolicyViolation):
        pipeline.import_spreadsheet(b"Employee ID,Date\nE1,2024-01-01\nE1,2024-01-02\nE1,2024-01-03\n", filename="x.csv")
    with pytest.raises(ValidationError):
        pipeline.import_spreadsheet(b"PK\x03\x04garbage", filename="x.xlsx")


def test_progress_and_cancellation():
    pipeline, _, _ = make_pipeline()
    cancel = threading.Event()
    seen = []

    def progress(done, total):
        seen.append((done, total))
        if done == 3:
            cancel.set()

    batch = pipeline.import_spreadsheet(csv_bytes(hundred_rows()[:10]), filename="x.csv", cancel_event=cancel, progress=progress)

    assert batch.cancelled
    assert batch.processed == 3
    assert seen == [(1, 10), (2, 10), (3, 10)]
    assert batch.to_dict()["counts"]["processed"] == 3
