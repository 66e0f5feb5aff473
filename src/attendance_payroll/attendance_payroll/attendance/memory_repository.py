from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from typing import Iterator, Optional, Sequence

from .model import AttendanceRecord


class _MemorySlot:
    def __init__(self, repo: "InMemoryAttendanceRepository", record: Optional[AttendanceRecord]):
        self._repo = repo
        self.record = record

    def save(self, record: AttendanceRecord) -> AttendanceRecord:
        stored = self._repo._store(record)
        self.record = stored
        return stored


class InMemoryAttendanceRepository:
    """Process-local store with one lock per (employee, date) key."""

    def __init__(self):
        self._by_key: dict[tuple[str, date], AttendanceRecord] = {}
        self._locks: dict[tuple[str, date], threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._id = 0

    def _lock_for(self, key: tuple[str, date]) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def _store(self, record: AttendanceRecord) -> AttendanceRecord:
        with self._registry_lock:
            if record.record_id is None:
                existing = self._by_key.get(record.key)
                if existing is not None:
                    record = replace(record, record_id=existing.record_id)
                else:
                    self._id += 1
                    record = replace(record, record_id=self._id)
            self._by_key[record.key] = record
            return record

    def get_for_employee_and_date(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        return self._by_key.get((str(employee_id), work_date))

    @contextmanager
    def locked(self, employee_id: str, work_date: date) -> Iterator[_MemorySlot]:
        key = (str(employee_id), work_date)
        with self._lock_for(key):
            yield _MemorySlot(self, self._by_key.get(key))

    def list_for_employee(self, employee_id: str, *, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        items = [
            r for r in self._by_key.values()
            if r.employee_id == str(employee_id) and start_date <= r.work_date <= end_date
        ]
        items.sort(key=lambda r: r.work_date)
        return items

    def list_open(self, *, on_or_before: date) -> Sequence[AttendanceRecord]:
        items = [r for r in self._by_key.values() if r.is_open and r.work_date <= on_or_before]
        items.sort(key=lambda r: (r.work_date, r.employee_id))
        return items
