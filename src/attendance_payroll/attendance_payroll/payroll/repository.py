from __future__ import annotations

import threading
from typing import Iterable, Optional, Protocol, Sequence

from .model import CompensationConfig, PayrollResult


class CompensationRepository(Protocol):
    """Read-only port onto the payroll administration store."""

    def get_for_employee(self, employee_id: str) -> Optional[CompensationConfig]:
        raise NotImplementedError


class PayrollResultRepository(Protocol):
    def save(self, result: PayrollResult) -> None:
        raise NotImplementedError

    def list_for_period(self, year: int, month: int) -> Sequence[dict]:
        raise NotImplementedError


class InMemoryCompensationRepository:
    def __init__(self, configs: Iterable[CompensationConfig] = ()):
        self._by_employee = {str(c.employee_id): c for c in configs}

    def put(self, config: CompensationConfig) -> None:
        self._by_employee[str(config.employee_id)] = config

    def get_for_employee(self, employee_id: str) -> Optional[CompensationConfig]:
        return self._by_employee.get(str(employee_id))


class InMemoryPayrollResultRepository:
    """Keeps the latest result per (employee, year, month)."""

    def __init__(self):
        self._results: dict[tuple[str, int, int], dict] = {}
        self._lock = threading.Lock()

    def save(self, result: PayrollResult) -> None:
        with self._lock:
            self._results[(result.employee_id, result.year, result.month)] = result.to_dict()

    def list_for_period(self, year: int, month: int) -> Sequence[dict]:
        with self._lock:
            return [v for (emp, y, m), v in sorted(self._results.items()) if y == year and m == month]
