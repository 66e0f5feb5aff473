from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Sequence

from ...attendance.model import AttendanceRecord
from ..model import CompensationConfig, PayrollResult


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
    def calculate(
        self,
        employee_id: str,
        year: int,
        month: int,
        config: CompensationConfig,
        records: Sequence[AttendanceRecord],
        *,
        calculated_at: Optional[datetime] = None,
    ) -> PayrollResult:
        raise NotImplementedError
