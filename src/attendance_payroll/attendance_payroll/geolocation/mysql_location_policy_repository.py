from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchone
from .model import LocationPolicy
from .repository import LocationPolicyRepository


class MySQLLocationPolicyRepository(LocationPolicyRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, block_on_high_risk: bool = False):
        self._conn_factory = conn_factory
        self._block_on_high_risk = block_on_high_risk

    def get_for_employee(self, employee_id: str) -> Optional[LocationPolicy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT allow_remote, strict_location_check, office_radius, allow_after_hours
                FROM employees
                WHERE employee_id=%s
                """,
                (str(employee_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return LocationPolicy(
                allow_remote=bool(r.get("allow_remote")),
                strict_location_check=bool(r.get("strict_location_check")),
                office_radius=as_float(r.get("office_radius")),
                allow_after_hours=bool(r.get("allow_after_hours")),
                block_on_high_risk=self._block_on_high_risk,
            )
