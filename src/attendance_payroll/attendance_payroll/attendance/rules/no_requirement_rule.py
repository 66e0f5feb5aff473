from __future__ import annotations

from ..model import AttendanceRecord
from .base import CheckoutRequest, CheckoutRule, RuleDecision


class NoRequirementRule(CheckoutRule):
    """Check-out is always allowed."""

    name = "none"

    def evaluate(self, *, record: AttendanceRecord, request: CheckoutRequest) -> RuleDecision:
        return RuleDecision(allowed=True)
