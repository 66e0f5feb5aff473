from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")


def round_money(value: float) -> float:
    """Round half-up to 2 decimals (``round()`` would use banker's rounding)."""
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))
