from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

"""Task output models: validation errors, processed rows and field statistics.

Two disjoint error classes share the ValidationError shape:
- structural failures (file unreadable, sheet missing, template/schema
  missing) are recorded with field == FILE_SYSTEM_FIELD
- data-quality findings (required field missing, non-numeric value,
  missing expected header) carry the target field or header name
"""

__all__ = [
    "FILE_SYSTEM_FIELD",
    "Severity",
    "ValidationError",
    "FieldStat",
    "ProcessedRow",
    "ProcessedData",
    "FileValidationResult",
]

FILE_SYSTEM_FIELD = "FILE_SYSTEM"


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationError:
    """One finding against one row/field.

    Attributes:
        row: 1-based source row (offset by the header position); 0 when the
            row is unknown (file-level failures)
        field: target field name, header name, or FILE_SYSTEM_FIELD
        value: offending raw value (file name for file-level failures)
        message: human readable description
        severity: error / warning
        source_file: name of the file the row belongs to
    """
    row: int
    field: str
    value: Any
    message: str
    severity: Severity = Severity.ERROR
    source_file: str = ""

    @property
    def is_structural(self) -> bool:
        return self.field == FILE_SYSTEM_FIELD


@dataclass(frozen=True)
class FieldStat:
    mismatch_count: int = 0


@dataclass(frozen=True)
class ProcessedRow:
    """One output row in schema field order plus its provenance.

    ``values`` always has exactly one key per schema field; provenance lives
    outside ``values`` so the data keys stay exactly the schema's.
    """
    values: dict[str, Any]
    source_file: str
    source_sheet: str
    row_number: int


@dataclass(frozen=True)
class ProcessedData:
    rows: list[ProcessedRow]
    errors: list[ValidationError]
    file_count: int
    field_stats: dict[str, FieldStat] = field(default_factory=dict)

    @property
    def structural_errors(self) -> list[ValidationError]:
        return [e for e in self.errors if e.is_structural]

    def mismatch_count(self, field_name: str) -> int:
        stat = self.field_stats.get(field_name)
        return stat.mismatch_count if stat else 0


@dataclass(frozen=True)
class FileValidationResult:
    """Outcome of the header pre-check for one candidate source file."""
    file_name: str
    is_valid: bool
    missing_headers: tuple[str, ...] = ()
    found_headers: tuple[str, ...] = ()
    errors: tuple[ValidationError, ...] = ()
    error: str | None = None  # 読み込み失敗時のメッセージ
    is_duplicate: bool = False
