from __future__ import annotations

from ...core.enums import WorkLocation
from ..model import AttendanceRecord
from .base import CheckoutRequest, CheckoutRule, RuleDecision


class AimCompletionRule(CheckoutRule):
    """Ending the day requires the daily aim to be marked complete.

    Work-from-home days also need notes, since nobody saw the work happen.
    """

    name = "aim"

    def evaluate(self, *, record: AttendanceRecord, request: CheckoutRequest) -> RuleDecision:
        if not request.aim_completed:
            return RuleDecision(allowed=False, reason="Complete your daily aim before ending the day")
        if record.work_location is not WorkLocation.OFFICE and not (request.notes or "").strip():
            return RuleDecision(allowed=False, reason="Remote days require progress notes")
        return RuleDecision(allowed=True)
