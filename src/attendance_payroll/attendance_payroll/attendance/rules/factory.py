from __future__ import annotations

from ...core.exceptions import ValidationError
from .aim_completion_rule import AimCompletionRule
from .base import CheckoutRule
from .no_requirement_rule import NoRequirementRule
from .notes_required_rule import NotesRequiredRule

_RULES: dict[str, type[CheckoutRule]] = {
    NoRequirementRule.name: NoRequirementRule,
    NotesRequiredRule.name: NotesRequiredRule,
    AimCompletionRule.name: AimCompletionRule,
}


def checkout_rule_for(name: str) -> CheckoutRule:
    """Factory Pattern: pick the configured end-of-day rule."""
    try:
        return _RULES[(name or "none").strip().lower()]()
    except KeyError:
        raise ValidationError(f"Unknown checkout rule: {name!r}", details={"known": sorted(_RULES)})
