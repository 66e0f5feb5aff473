from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Sequence


@dataclass(frozen=True)
class Employee:
    employee_id: str
    name: str
    email: Optional[str] = None
    department: Optional[str] = None


class EmployeeDirectory(Protocol):
    """Read-only view of the employee master data."""

    def get_by_id(self, employee_id: str) -> Optional[Employee]:
        raise NotImplementedError

    def find_by_name(self, pattern: re.Pattern) -> Optional[Employee]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[Employee]:
        raise NotImplementedError

    def list_ids(self) -> Sequence[str]:
        raise NotImplementedError


class InMemoryEmployeeDirectory:
    def __init__(self, employees: Iterable[Employee] = ()):
        self._by_id: dict[str, Employee] = {}
        for e in employees:
            self.add(e)

    def add(self, employee: Employee) -> None:
        self._by_id[str(employee.employee_id)] = employee

    def get_by_id(self, employee_id: str) -> Optional[Employee]:
        return self._by_id.get(str(employee_id))

    def find_by_name(self, pattern: re.Pattern) -> Optional[Employee]:
        for e in self._by_id.values():
            if pattern.search(e.name or ""):
                return e
        return None

    def get_by_email(self, email: str) -> Optional[Employee]:
        email = email.lower()
        for e in self._by_id.values():
            if e.email and e.email.lower() == email:
                return e
        return None

    def list_ids(self) -> Sequence[str]:
        return sorted(self._by_id)


def resolve_employee(directory: EmployeeDirectory, employee_ref: Optional[str], employee_name: Optional[str]) -> Optional[Employee]:
    """Exact id, then case-insensitive name match, then email-shaped id."""
    if employee_ref:
        found = directory.get_by_id(employee_ref)
        if found:
            return found
    if employee_name:
        found = directory.find_by_name(re.compile(re.escape(employee_name.strip()), re.IGNORECASE))
        if found:
            return found
    if employee_ref and "@" in employee_ref:
        return directory.get_by_email(employee_ref.strip().lower())
    return None
