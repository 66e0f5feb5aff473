from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..model import AttendanceRecord


@dataclass(frozen=True)
class CheckoutRequest:
    notes: Optional[str] = None
    aim_completed: bool = False


@dataclass(frozen=True)
class RuleDecision:
    allowed: bool
    reason: Optional[str] = None


class CheckoutRule(ABC):
    """Strategy Pattern: what an employee must provide before ending the day."""

    name: str = "base"

    @abstractmethod
    def evaluate(self, *, record: AttendanceRecord, request: CheckoutRequest) -> RuleDecision:
        raise NotImplementedError
