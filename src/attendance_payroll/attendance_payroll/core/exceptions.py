from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for business rule violations.

    ``details`` carries the structured context a caller needs to act on the
    error (distances, thresholds, conflicting ids ...).
    """

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details or {})


class ValidationError(DomainError):
    """Raised when input data is malformed or missing; no state was changed."""


class NotFoundError(DomainError):
    """Raised when a referenced employee, compensation config or open record does not exist."""


class ConflictError(DomainError):
    """Raised for duplicate check-ins, check-outs without check-in and overlapping leave."""


class PolicyViolation(DomainError):
    """Raised when a request is well-formed but breaks a policy (location radius, file size)."""


class PartialFailure(DomainError):
    """Row-scoped failure inside a batch. Collected into the batch report, never re-raised."""

    def __init__(self, message: str, *, row: int, raw_value: Any = None, details: Optional[dict[str, Any]] = None):
        super().__init__(message, details=details)
        self.row = row
        self.raw_value = raw_value
