from __future__ import annotations

from flask import Flask

from ..common.http import json_body, json_endpoint
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    service = container.payroll_service

    @app.route("/api/payroll/<employee_id>/<int:year>/<int:month>", methods=["GET"], endpoint="payroll_monthly")
    @json_endpoint
    def monthly(employee_id: str, year: int, month: int):
        return service.calculate_monthly(employee_id, year, month).to_dict(), 200

    @app.route("/api/payroll/<employee_id>/<int:year>/<int:month>/slip", methods=["GET"], endpoint="payroll_slip")
    @json_endpoint
    def slip(employee_id: str, year: int, month: int):
        return service.salary_slip(employee_id, year, month).to_dict(), 200

    @app.route("/api/payroll/bulk", methods=["POST"], endpoint="payroll_bulk")
    @json_endpoint
    def bulk():
        data = json_body()
        employee_ids = data.get("employee_ids") or []
        if not isinstance(employee_ids, list):
            raise ValidationError("employee_ids must be a list")
        result = service.calculate_bulk([str(e) for e in employee_ids], data.get("year"), data.get("month"))
        return result.to_dict(), 200
