from __future__ import annotations

import json
from datetime import datetime

from sheetbatch.models import FILE_SYSTEM_FIELD, Severity, ValidationError
from sheetbatch.models.error_record import ErrorRecord

KEYS = {"timestamp", "batch", "task", "file", "row", "field", "severity", "message", "value"}


def test_create_and_json_line():
    rec = ErrorRecord.create("b1", "t1", "a.xlsx", 3, "Amount", "error", "non-numeric value", "xyz")
    data = json.loads(rec.to_json_line())
    assert set(data) == KEYS
    assert data["timestamp"].endswith("Z")
    assert data["row"] == 3
    assert data["value"] == "xyz"


def test_from_validation_error_uses_source_file():
    err = ValidationError(row=0, field=FILE_SYSTEM_FIELD, value="bad.xlsx", message="cannot parse", source_file="bad.xlsx")
    rec = ErrorRecord.from_validation_error("b1", "t1", err)
    assert rec.file == "bad.xlsx"
    assert rec.row == 0
    assert rec.severity == "error"


def test_non_json_values_are_stringified():
    err = ValidationError(row=2, field="When", value=datetime(2024, 1, 2, 3, 4), message="m", severity=Severity.WARNING)
    data = json.loads(ErrorRecord.from_validation_error("b", "t", err).to_json_line())
    assert data["value"] == "2024-01-02T03:04:00"
    assert data["severity"] == "warning"
    assert data["file"] == ""
