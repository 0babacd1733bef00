from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..models.row_data import CellValue

"""Spreadsheet adapter contract.

The engine depends only on this narrow surface; the pandas/openpyxl
implementation lives in excel.reader (reading) and excel.writer (writing).
Tests substitute an in-memory adapter.
"""

__all__ = [
    "SpreadsheetError",
    "SourceReadError",
    "SheetNotFoundError",
    "OutputTable",
    "SpreadsheetAdapter",
]


class SpreadsheetError(Exception):
    """Base class for structural spreadsheet failures."""


class SourceReadError(SpreadsheetError):
    """Raised when the byte stream cannot be parsed as a spreadsheet."""


class SheetNotFoundError(SpreadsheetError):
    """Raised when a requested sheet (or any sheet at all) is unavailable."""


@dataclass(frozen=True)
class OutputTable:
    """One named output table: column order + row records keyed by column."""
    name: str
    columns: list[str]
    rows: list[dict[str, Any]] = field(default_factory=list)


class SpreadsheetAdapter(Protocol):
    def list_sheets(self, data: bytes) -> list[str]:
        ...

    def read_rows(
        self, data: bytes, sheet_name: str, header_row_offset: int, limit: int | None = None
    ) -> list[list[CellValue]]:
        """Rows starting at ``header_row_offset`` (row 0 of the result is the header row)."""
        ...

    def write_workbook(self, tables: Sequence[OutputTable]) -> bytes:
        ...
