from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""TransformationTemplate model.

A template records how one source spreadsheet layout maps onto one Schema:
which sheet to read, where the header row is, an optional end row, which
source column feeds each target field, and how the output is named.
"""

__all__ = [
    "FileNamePosition",
    "RowFilterOperator",
    "RowFilter",
    "Template",
]


class FileNamePosition(Enum):
    FRONT = "front"
    BACK = "back"


class RowFilterOperator(Enum):
    NOT_NULL = "not_null"
    NOT_EMPTY = "not_empty"
    NOT_ZERO = "not_zero"
    EQUALS = "equals"
    CONTAINS = "contains"


@dataclass(frozen=True)
class RowFilter:
    """Keep only source rows whose ``column`` satisfies ``operator``."""
    column: str
    operator: RowFilterOperator = RowFilterOperator.NOT_NULL
    value: str = ""


@dataclass(frozen=True)
class Template:
    """Saved mapping from one Schema to one source spreadsheet layout.

    ``mapping`` is field id -> source column name and need not be total;
    unmapped fields always resolve to a null raw value. ``expected_headers``
    is a snapshot of the header row used for header pre-validation.
    ``start_row`` is the 0-based header row; ``end_row`` (exclusive, same
    coordinate system) bounds the data region when given.
    """
    id: str
    name: str
    schema_id: str
    sheet_name: str
    start_row: int = 0
    end_row: int | None = None
    mapping: dict[str, str] = field(default_factory=dict)
    expected_headers: tuple[str, ...] = ()
    export_file_name: str = ""
    export_sheet_name: str = ""
    include_file_name: bool = False
    file_name_position: FileNamePosition = FileNamePosition.FRONT
    row_filter: RowFilter | None = None
    updated_at: str = ""

    def __post_init__(self) -> None:
        if self.start_row < 0:
            raise ValueError(f"template '{self.id}': start_row must be >= 0 (got {self.start_row})")
        if self.end_row is not None and self.end_row < self.start_row:
            raise ValueError(
                f"template '{self.id}': end_row {self.end_row} is before start_row {self.start_row}"
            )

    def source_column(self, field_id: str) -> str | None:
        column = self.mapping.get(field_id)
        # 空文字のマッピングは未設定扱い
        return column or None
