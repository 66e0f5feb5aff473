from __future__ import annotations

import io

import pytest

from src.attendance_payroll.attendance_payroll.importing.directory import Employee
from src.attendance_payroll.attendance_payroll.main import create_app
from src.attendance_payroll.attendance_payroll.payroll.model import CompensationConfig

OFFICE = {"latitude": 19.1628987, "longitude": 72.8355871}


@pytest.fixture()
def app(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    app = create_app()
    container = app.extensions["attendance_payroll"]
    container.directory.add(Employee("E1", "Asha Rao", "asha@example.com"))
    container.compensation_repo.put(CompensationConfig("E1", 26000))
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def check_in(client, **overrides):
    body = {"employee_id": "E1", "timestamp": "2024-01-15T09:00:00", **OFFICE, **overrides}
    return client.post("/api/attendance/check-in", json=body)


def test_check_in_and_out_round_trip(client):
    resp = check_in(client)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"] is True
    assert body["data"]["record"]["self_reported_in"] == "2024-01-15T09:00:00"
    assert body["data"]["geolocation"]["office_id"] == "main"

    assert check_in(client, timestamp="2024-01-15T09:30:00").status_code == 409

    resp = client.post(
        "/api/attendance/check-out",
        json={"employee_id": "E1", "timestamp": "2024-01-15T17:00:00", **OFFICE, "notes": "done"},
    )
    assert resp.status_code == 200
    assert resp.get_json()["data"]["hours_worked"] == 8.0

    resp = client.post("/api/attendance/check-out", json={"employee_id": "E1", "timestamp": "2024-01-15T17:30:00"})
    assert resp.status_code == 409

    resp = client.get("/api/attendance/E1/2024-01-15")
    assert resp.status_code == 200
    resp = client.get("/api/attendance/E1/2024-01-15/verification")
    assert resp.get_json()["data"]["score"] == 75.0


def test_check_in_far_from_office_is_unprocessable(client):
    resp = check_in(client, latitude=19.1673953)
    assert resp.status_code == 422
    body = resp.get_json()
    assert body["error"] == "PolicyViolation"
    assert body["details"]["required_radius"] == 100.0
    assert body["details"]["distance_meters"] == pytest.approx(500, abs=1)


def test_bad_input_is_rejected(client):
    assert check_in(client, latitude="north").status_code == 400
    assert client.get("/api/attendance/E1/not-a-date").status_code == 400
    assert client.get("/api/attendance/E1/2024-01-20").status_code == 404


def test_leave_and_auto_close(client):
    resp = client.post(
        "/api/attendance/leave",
        json={"employee_id": "E1", "start": "2024-01-16", "end": "2024-01-17", "leave_kind": "Sick", "leave_reference_id": "L-9"},
    )
    assert resp.status_code == 200
    assert len(resp.get_json()["data"]) == 2

    check_in(client)
    resp = client.post("/api/attendance/auto-close", json={"now": "2024-01-15T18:00:00"})
    assert [e["employee_id"] for e in resp.get_json()["data"]] == ["E1"]


def test_spreadsheet_upload(client):
    csv = b"Employee ID,Date,Time In,Time Out\nE1,2024-01-15,09:00,17:00\nE7,2024-01-15,09:00,17:00\n"
    resp = client.post(
        "/api/attendance/import",
        data={"file": (io.BytesIO(csv), "punches.csv")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    counts = resp.get_json()["data"]["counts"]
    assert counts["created"] == 1
    assert counts["employees_not_found"] == 1

    assert client.post("/api/attendance/import", data={}, content_type="multipart/form-data").status_code == 400


def test_payroll_endpoints(client):
    resp = client.get("/api/payroll/E1/2024/1")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["period"]["label"] == "January 2024"

    assert client.get("/api/payroll/E2/2024/1").status_code == 404
    assert client.get("/api/payroll/E1/2024/1/slip").get_json()["data"]["slip_number"] == "SAL-202401-E1"

    resp = client.post("/api/payroll/bulk", json={"employee_ids": "E1", "year": 2024, "month": 1})
    assert resp.status_code == 400
    resp = client.post("/api/payroll/bulk", json={"year": 2024, "month": 1})
    assert resp.get_json()["data"]["summary"]["success_count"] == 1
