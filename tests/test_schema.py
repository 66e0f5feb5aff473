import re
from pathlib import Path

SCHEMA = Path(__file__).resolve().parents[1] / "database" / "schema.sql"


def test_observation_columns_keep_microseconds():
    sql = SCHEMA.read_text(encoding="utf-8")
    for column in ("biometric_in", "biometric_out", "self_reported_in", "self_reported_out"):
        match = re.search(rf"^\s*{column}\s+(\S+)", sql, re.MULTILINE)
        assert match is not None, column
        assert match.group(1) == "DATETIME(6)", column
