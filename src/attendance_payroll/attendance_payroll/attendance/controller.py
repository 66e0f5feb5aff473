from __future__ import annotations

from flask import Flask, request

from ..common.http import as_bool, json_body, json_endpoint, optional_str, require_date
from ..common.validators import optional_float, require_timestamp
from ..container import Container
from ..geolocation.model import DeviceInfo


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    def _timestamp(data: dict, key: str = "timestamp"):
        value = data.get(key)
        return require_timestamp(value, key) if value not in (None, "") else None

    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="attendance_check_in")
    @json_endpoint
    def check_in():
        data = json_body()
        device = DeviceInfo(
            user_agent=request.headers.get("User-Agent", ""),
            device_type=str(data.get("device_type") or ""),
        )
        result = service.check_in(
            data.get("employee_id"),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            timestamp=_timestamp(data),
            accuracy=data.get("accuracy"),
            address=optional_str(data.get("address")),
            work_from_home=as_bool(data.get("work_from_home")),
            device=device,
        )
        return result.to_dict(), 201

    @app.route("/api/attendance/check-out", methods=["POST"], endpoint="attendance_check_out")
    @json_endpoint
    def check_out():
        data = json_body()
        record = service.check_out(
            data.get("employee_id"),
            timestamp=_timestamp(data),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            accuracy=data.get("accuracy"),
            address=optional_str(data.get("address")),
            notes=optional_str(data.get("notes")),
            aim_completed=as_bool(data.get("aim_completed")),
        )
        return record.to_dict(), 200

    @app.route("/api/attendance/leave", methods=["POST"], endpoint="attendance_leave")
    @json_endpoint
    def apply_leave():
        data = json_body()
        records = service.apply_leave(
            data.get("employee_id"),
            require_date(data.get("start"), "start"),
            require_date(data.get("end"), "end"),
            leave_kind=data.get("leave_kind"),
            leave_reference_id=optional_str(data.get("leave_reference_id")),
        )
        return [r.to_dict() for r in records], 200

    @app.route("/api/attendance/auto-close", methods=["POST"], endpoint="attendance_auto_close")
    @json_endpoint
    def auto_close():
        data = json_body()
        events = service.auto_close_tick(
            _timestamp(data, "now"),
            max_working_hours=optional_float(data.get("max_working_hours"), "max_working_hours"),
        )
        return [e.to_dict() for e in events], 200

    @app.route("/api/attendance/<employee_id>/<work_date>", methods=["GET"], endpoint="attendance_record")
    @json_endpoint
    def get_record(employee_id: str, work_date: str):
        return service.get_record(employee_id, require_date(work_date, "date")).to_dict(), 200

    @app.route(
        "/api/attendance/<employee_id>/<work_date>/verification",
        methods=["GET"],
        endpoint="attendance_verification",
    )
    @json_endpoint
    def verification(employee_id: str, work_date: str):
        return service.verification(employee_id, require_date(work_date, "date")).to_dict(), 200

    @app.route(
        "/api/attendance/<employee_id>/summary/<int:year>/<int:month>",
        methods=["GET"],
        endpoint="attendance_verification_summary",
    )
    @json_endpoint
    def verification_summary(employee_id: str, year: int, month: int):
        return service.verification_summary(employee_id, year, month), 200
