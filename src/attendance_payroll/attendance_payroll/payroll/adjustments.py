"""Evaluation of ad-hoc adjustments, one function per kind."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable

from ..common.money import round_money
from ..core.enums import AdjustmentKind
from .model import Adjustment, LineItem

ALLOWANCE = "allowance"
BONUS = "bonus"
DEDUCTION = "deduction"


@dataclass(frozen=True)
class AdjustmentEffect:
    bucket: str
    line: LineItem


def adjustment_value(adjustment: Adjustment, base_pay: float) -> float:
    if adjustment.percentage is not None:
        return base_pay * adjustment.percentage / 100.0
    return adjustment.amount


def _describe(adjustment: Adjustment, fallback: str) -> str:
    return adjustment.reason or fallback


def _bonus(adjustment: Adjustment, base_pay: float) -> AdjustmentEffect:
    amount = round_money(adjustment_value(adjustment, base_pay))
    return AdjustmentEffect(BONUS, LineItem(BONUS, _describe(adjustment, "Bonus"), amount))


def _increment(adjustment: Adjustment, base_pay: float) -> AdjustmentEffect:
    amount = round_money(adjustment_value(adjustment, base_pay))
    return AdjustmentEffect(BONUS, LineItem(BONUS, _describe(adjustment, "Increment"), amount))


def _overtime(adjustment: Adjustment, base_pay: float) -> AdjustmentEffect:
    amount = round_money(adjustment_value(adjustment, base_pay))
    return AdjustmentEffect(BONUS, LineItem(BONUS, _describe(adjustment, "Overtime Adjustment"), amount))


def _allowance(adjustment: Adjustment, base_pay: float) -> AdjustmentEffect:
    amount = round_money(adjustment_value(adjustment, base_pay))
    return AdjustmentEffect(ALLOWANCE, LineItem(ALLOWANCE, _describe(adjustment, "Special Allowance"), amount))


def _deduction(adjustment: Adjustment, base_pay: float) -> AdjustmentEffect:
    # Stored amounts may be signed either way; a deduction always reduces pay.
    amount = round_money(abs(adjustment_value(adjustment, base_pay)))
    return AdjustmentEffect(DEDUCTION, LineItem(DEDUCTION, _describe(adjustment, "Deduction"), amount))


EVALUATORS: dict[AdjustmentKind, Callable[[Adjustment, float], AdjustmentEffect]] = {
    AdjustmentKind.BONUS: _bonus,
    AdjustmentKind.INCREMENT: _increment,
    AdjustmentKind.OVERTIME: _overtime,
    AdjustmentKind.ALLOWANCE: _allowance,
    AdjustmentKind.DEDUCTION: _deduction,
}


def evaluate_adjustments(
    adjustments: Iterable[Adjustment],
    *,
    base_pay: float,
    period_start: date,
    period_end: date,
) -> list[AdjustmentEffect]:
    effects = []
    for adjustment in adjustments:
        if not adjustment.applies_to(period_start, period_end):
            continue
        effect = EVALUATORS[adjustment.kind](adjustment, base_pay)
        if effect.line.amount:
            effects.append(effect)
    return effects
