from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, dump_json, fetchall, fetchone, load_json
from .model import Adjustment, CompensationConfig, PayrollResult
from .repository import CompensationRepository, PayrollResultRepository


class MySQLCompensationRepository(CompensationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_employee(self, employee_id: str) -> Optional[CompensationConfig]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT employee_id, base_salary, allowances, deductions, adjustments
                FROM compensation_configs
                WHERE employee_id=%s
                """,
                (str(employee_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            allowances = load_json(r.get("allowances")) or {}
            deductions = load_json(r.get("deductions")) or {}
            adjustments = load_json(r.get("adjustments")) or []
            return CompensationConfig(
                employee_id=str(r["employee_id"]),
                base_salary=as_float(r["base_salary"]),
                allowances={k: float(v or 0) for k, v in allowances.items()},
                deductions={k: float(v or 0) for k, v in deductions.items()},
                adjustments=tuple(Adjustment.from_dict(a) for a in adjustments),
            )


class MySQLPayrollResultRepository(PayrollResultRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def save(self, result: PayrollResult) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO payroll_results(employee_id, pay_year, pay_month, net_pay, payload, calculated_at)
                VALUES(%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE net_pay=VALUES(net_pay), payload=VALUES(payload), calculated_at=VALUES(calculated_at)
                """,
                (
                    result.employee_id,
                    result.year,
                    result.month,
                    result.net_pay,
                    dump_json(result.to_dict()),
                    result.calculated_at,
                ),
            )

    def list_for_period(self, year: int, month: int) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT payload FROM payroll_results
                WHERE pay_year=%s AND pay_month=%s
                ORDER BY employee_id ASC
                """,
                (int(year), int(month)),
            )
            return [load_json(r["payload"]) for r in fetchall(cur)]
