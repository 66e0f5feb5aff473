from __future__ import annotations

from ..model import AttendanceRecord
from .base import CheckoutRequest, CheckoutRule, RuleDecision


class NotesRequiredRule(CheckoutRule):
    """Ending the day requires progress notes."""

    name = "notes"

    def evaluate(self, *, record: AttendanceRecord, request: CheckoutRequest) -> RuleDecision:
        if not (request.notes or "").strip():
            return RuleDecision(allowed=False, reason="Progress notes are required to end the day")
        return RuleDecision(allowed=True)
