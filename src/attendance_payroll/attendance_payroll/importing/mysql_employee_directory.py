from __future__ import annotations

import re
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .directory import Employee, EmployeeDirectory

_SELECT = "SELECT employee_id, full_name, email, department FROM employees"


def _from_row(r: dict) -> Employee:
    return Employee(
        employee_id=str(r["employee_id"]),
        name=r["full_name"],
        email=r.get("email"),
        department=r.get("department"),
    )


class MySQLEmployeeDirectory(EmployeeDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, employee_id: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE employee_id=%s AND is_active=1", (str(employee_id),))
            r = fetchone(cur)
            return _from_row(r) if r else None

    def find_by_name(self, pattern: re.Pattern) -> Optional[Employee]:
        # REGEXP in MySQL 8 is case-insensitive under the default collation.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE full_name REGEXP %s AND is_active=1 ORDER BY employee_id LIMIT 1",
                (pattern.pattern,),
            )
            r = fetchone(cur)
            return _from_row(r) if r else None

    def get_by_email(self, email: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE LOWER(email)=%s AND is_active=1", (email.lower(),))
            r = fetchone(cur)
            return _from_row(r) if r else None

    def list_ids(self) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT employee_id FROM employees WHERE is_active=1 ORDER BY employee_id")
            return [str(r["employee_id"]) for r in fetchall(cur)]
