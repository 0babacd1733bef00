from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

from .processed import ValidationError

"""ErrorRecord model for the structured error log.

Every ValidationError produced while running a batch is written as one JSON
line. The key set is fixed; FILE_SYSTEM failures carry row 0.
"""

__all__ = [
    "ErrorRecord",
]


def _json_safe(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        batch: Batch id
        task: Task id
        file: Source file name ('' when the finding is not tied to a file)
        row: 1-based source row, 0 when unknown
        field: Target field / header name or FILE_SYSTEM
        severity: error / warning
        message: Description of the finding
        value: Offending raw value, JSON-safe
    """
    timestamp: str  # ISO8601 UTC
    batch: str
    task: str
    file: str
    row: int
    field: str
    severity: str
    message: str
    value: Any

    @staticmethod
    def create(
        batch: str,
        task: str,
        file: str,
        row: int,
        field: str,
        severity: str,
        message: str,
        value: Any = None,
    ) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            batch=batch,
            task=task,
            file=file,
            row=row,
            field=field,
            severity=severity,
            message=message,
            value=_json_safe(value),
        )

    @staticmethod
    def from_validation_error(batch: str, task: str, error: ValidationError) -> ErrorRecord:
        return ErrorRecord.create(
            batch=batch,
            task=task,
            file=error.source_file,
            row=error.row,
            field=error.field,
            severity=error.severity.value,
            message=error.message,
            value=error.value,
        )

    def to_json_line(self) -> str:
        """Serialize ErrorRecord to JSON Lines format (fixed key set)."""
        return json.dumps(asdict(self), ensure_ascii=False)
