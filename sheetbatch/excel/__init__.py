"""Spreadsheet access: adapter contract, pandas implementation, headers, extraction."""

from .adapter import (
    OutputTable,
    SheetNotFoundError,
    SourceReadError,
    SpreadsheetAdapter,
    SpreadsheetError,
)
from .extract import ExtractedSheet, check_headers, extract_rows, validate_sources
from .headers import column_label, resolve_headers
from .reader import PandasSpreadsheetAdapter

__all__ = [
    "OutputTable",
    "SheetNotFoundError",
    "SourceReadError",
    "SpreadsheetAdapter",
    "SpreadsheetError",
    "ExtractedSheet",
    "check_headers",
    "extract_rows",
    "validate_sources",
    "column_label",
    "resolve_headers",
    "PandasSpreadsheetAdapter",
]
