from __future__ import annotations

from datetime import date
from typing import ContextManager, Optional, Protocol, Sequence

from .model import AttendanceRecord


class RecordSlot(Protocol):
    """Exclusive handle on one (employee, date) key for a read-modify-write."""

    record: Optional[AttendanceRecord]

    def save(self, record: AttendanceRecord) -> AttendanceRecord:
        raise NotImplementedError


class AttendanceRepository(Protocol):
    def get_for_employee_and_date(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def locked(self, employee_id: str, work_date: date) -> ContextManager[RecordSlot]:
        """Serialize writers of one key.

        Two concurrent reconciliations of the same key must never both read
        the pre-merge state; the slot is released when the block exits.
        """

        raise NotImplementedError

    def list_for_employee(self, employee_id: str, *, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_open(self, *, on_or_before: date) -> Sequence[AttendanceRecord]:
        """Records with a self-reported check-in and no end-of-day observation."""

        raise NotImplementedError
