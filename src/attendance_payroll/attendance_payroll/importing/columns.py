from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

EMPLOYEE_ID = "employee_id"
EMPLOYEE_NAME = "employee_name"
DATE = "date"
TIME_IN = "time_in"
TIME_OUT = "time_out"
DEVICE_ID = "device_id"
LOCATION = "location"

# Logical field -> header fragments. Headers are compared after normalize_header().
SYNONYMS: dict[str, tuple[str, ...]] = {
    EMPLOYEE_ID: ("employee_id", "emp_id", "id", "employee_code", "emp_code"),
    EMPLOYEE_NAME: ("employee_name", "emp_name", "name", "full_name"),
    DATE: ("date", "attendance_date", "work_date", "day"),
    TIME_IN: ("time_in", "in_time", "check_in", "start_time", "punch_in", "entry_time"),
    TIME_OUT: ("time_out", "out_time", "check_out", "end_time", "punch_out", "exit_time"),
    DEVICE_ID: ("device_id", "device", "terminal_id", "machine_id"),
    LOCATION: ("location", "office", "branch", "site"),
}

STANDARD_HEADERS = (EMPLOYEE_ID, DATE, TIME_IN, TIME_OUT)


def normalize_header(header) -> str:
    text = str(header).strip().lower()
    for ch in (" ", "-", "."):
        text = text.replace(ch, "_")
    while "__" in text:
        text = text.replace("__", "_")
    return text


@dataclass(frozen=True)
class ColumnMapping:
    """Logical field -> original spreadsheet header."""

    columns: dict[str, str] = field(default_factory=dict)

    def header_for(self, logical: str) -> Optional[str]:
        return self.columns.get(logical)

    def has(self, logical: str) -> bool:
        return logical in self.columns

    def missing_required(self) -> list[str]:
        missing = []
        if not (self.has(EMPLOYEE_ID) or self.has(EMPLOYEE_NAME)):
            missing.append(f"{EMPLOYEE_ID} or {EMPLOYEE_NAME}")
        if not self.has(DATE):
            missing.append(DATE)
        return missing

    def to_dict(self) -> dict[str, str]:
        return dict(self.columns)


def detect_columns(headers: Sequence) -> ColumnMapping:
    """Map each logical field to the first header containing one of its synonyms."""
    normalized = [(normalize_header(h), str(h)) for h in headers]
    found: dict[str, str] = {}
    for logical, names in SYNONYMS.items():
        for norm, original in normalized:
            if any(name in norm for name in names):
                found[logical] = original
                break
    logger.debug("detected column mapping: %s", found)
    return ColumnMapping(columns=found)


def detect_format(headers: Sequence) -> str:
    matches = sum(1 for h in headers if any(s in normalize_header(h) for s in STANDARD_HEADERS))
    if matches >= 3:
        return "Standard"
    if matches >= 2:
        return "Custom"
    return "Unknown"
