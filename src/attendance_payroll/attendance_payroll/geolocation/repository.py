from __future__ import annotations

from typing import Optional, Protocol

from .model import LocationPolicy


class LocationPolicyRepository(Protocol):
    """Per-employee location restrictions, owned by the employee administration side."""

    def get_for_employee(self, employee_id: str) -> Optional[LocationPolicy]:
        raise NotImplementedError


class InMemoryLocationPolicyRepository:
    def __init__(self, policies: Optional[dict[str, LocationPolicy]] = None):
        self._policies = {str(k): v for k, v in (policies or {}).items()}

    def set(self, employee_id: str, policy: LocationPolicy) -> None:
        self._policies[str(employee_id)] = policy

    def get_for_employee(self, employee_id: str) -> Optional[LocationPolicy]:
        return self._policies.get(str(employee_id))
