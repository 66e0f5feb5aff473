"""Example: drive the service layer directly, without Flask.

Uses the in-memory storage backend so it runs without a database:

    APP_ENV=testing python examples/example_usage.py
"""

import importlib
import logging
import sys
from datetime import datetime
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.attendance_payroll.attendance_payroll.container import build_container
from src.attendance_payroll.attendance_payroll.importing.directory import Employee
from src.attendance_payroll.attendance_payroll.payroll.model import CompensationConfig

logger = logging.getLogger("example")


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    settings = importlib.import_module(get_settings_module())
    container = build_container(settings=settings)

    container.directory.add(Employee("E1", "Asha Rao", "asha@example.com"))
    container.compensation_repo.put(CompensationConfig("E1", 26000, allowances={"housing": 1500}))

    office = settings.OFFICES[0]
    container.attendance_service.check_in(
        "E1",
        latitude=office["latitude"],
        longitude=office["longitude"],
        timestamp=datetime(2024, 1, 15, 9, 5),
    )
    csv = b"Employee ID,Date,Time In,Time Out\nE1,2024-01-15,09:25,17:40\n"
    batch = container.import_pipeline.import_spreadsheet(csv, filename="punches.csv")
    logger.info("import recommendations: %s", [r.to_dict() for r in batch.recommendations])

    record = container.attendance_service.get_record("E1", datetime(2024, 1, 15).date())
    logger.info("reconciled record: %s", record.to_dict())

    result = container.payroll_service.calculate_monthly("E1", 2024, 1)
    logger.info("net pay for %s: %.2f", result.period_label, result.net_pay)


if __name__ == "__main__":
    main()
