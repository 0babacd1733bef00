from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace

from ..models.processed import FileValidationResult, Severity, ValidationError
from ..models.row_data import CellValue, RowData
from ..models.source_file import SourceFile
from ..models.template import RowFilter, RowFilterOperator, Template
from .adapter import SheetNotFoundError, SpreadsheetAdapter, SpreadsheetError
from .headers import cell_text, resolve_headers

"""Row extraction and header pre-validation.

extract_rows() pulls the data region of one source file for one template:
header row at start_row (0-based), data rows after it, optionally bounded by
end_row (exclusive, counted in the same coordinates). Rows come back keyed by
resolved header; absent cells are None, never ''.

check_headers() is the cheap pre-run check: it reads only the header row and
a small sample, never the full data region.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "ExtractedSheet",
    "resolve_sheet_name",
    "extract_rows",
    "row_passes_filter",
    "read_header_row",
    "check_headers",
    "validate_sources",
    "HEADER_SAMPLE_ROWS",
    "MISSING_HEADER_MESSAGE",
]

HEADER_SAMPLE_ROWS = 20
MISSING_HEADER_MESSAGE = "missing expected header"


@dataclass(frozen=True)
class ExtractedSheet:
    file_name: str
    sheet_name: str  # 実際に読み込んだシート名 (フォールバック後)
    headers: list[str]
    rows: list[RowData]


def resolve_sheet_name(source: SourceFile, sheet_name: str, adapter: SpreadsheetAdapter) -> str:
    """Return ``sheet_name`` if present, else the first sheet of the workbook.

    Raises:
        SourceReadError: bytes are not a spreadsheet
        SheetNotFoundError: the workbook has no sheet at all
    """
    names = adapter.list_sheets(source.data)
    if not names:
        raise SheetNotFoundError(
            f"sheet '{sheet_name}' not found in '{source.name}' and no alternative sheets available"
        )
    if sheet_name in names:
        return sheet_name
    logger.warning(
        "sheet '%s' not found in file '%s'; using first sheet '%s'", sheet_name, source.name, names[0]
    )
    return names[0]


def _is_blank(row: Sequence[CellValue]) -> bool:
    return all(v is None for v in row)


def row_passes_filter(value: CellValue, row_filter: RowFilter) -> bool:
    text = cell_text(value)
    op = row_filter.operator
    if op is RowFilterOperator.NOT_NULL:
        return value is not None and value != ""
    if op is RowFilterOperator.NOT_EMPTY:
        return text != ""
    if op is RowFilterOperator.NOT_ZERO:
        if value is None or isinstance(value, bool):
            return False
        try:
            return float(value) != 0  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return False
    if op is RowFilterOperator.EQUALS:
        return text == (row_filter.value or "")
    if op is RowFilterOperator.CONTAINS:
        return (row_filter.value or "") in text
    return True


def extract_rows(
    source: SourceFile,
    sheet_name: str,
    start_row: int,
    end_row: int | None = None,
    *,
    adapter: SpreadsheetAdapter,
    row_filter: RowFilter | None = None,
) -> ExtractedSheet:
    """Extract the data region of one file as header-keyed records.

    Fully blank rows are skipped. A row filter whose column is not among the
    resolved headers keeps every row.
    """
    actual_sheet = resolve_sheet_name(source, sheet_name, adapter)
    limit = None if end_row is None else 1 + max(0, end_row - start_row)
    raw_rows = adapter.read_rows(source.data, actual_sheet, start_row, limit)
    headers = resolve_headers(raw_rows)

    filter_key = None
    if row_filter is not None and row_filter.column:
        if row_filter.column in headers:
            filter_key = row_filter.column
        else:
            logger.debug("row filter column '%s' not in headers of '%s'", row_filter.column, source.name)

    rows: list[RowData] = []
    skipped = 0
    for idx, raw in enumerate(raw_rows[1:]):
        if _is_blank(raw):
            continue
        values = {key: (raw[i] if i < len(raw) else None) for i, key in enumerate(headers)}
        if filter_key is not None and not row_passes_filter(values[filter_key], row_filter):  # type: ignore[arg-type]
            skipped += 1
            continue
        rows.append(RowData(row_number=idx + start_row + 2, values=values))

    logger.debug(
        "extracted file=%s sheet=%s headers=%d rows=%d filtered=%d",
        source.name,
        actual_sheet,
        len(headers),
        len(rows),
        skipped,
    )
    return ExtractedSheet(file_name=source.name, sheet_name=actual_sheet, headers=headers, rows=rows)


def read_header_row(
    source: SourceFile,
    sheet_name: str,
    start_row: int,
    *,
    adapter: SpreadsheetAdapter,
    min_columns: int = 0,
    sample_rows: int = HEADER_SAMPLE_ROWS,
) -> list[str]:
    """Resolve the header keys of one file reading only header + sample rows."""
    actual_sheet = resolve_sheet_name(source, sheet_name, adapter)
    raw_rows = adapter.read_rows(source.data, actual_sheet, start_row, 1 + sample_rows)
    return resolve_headers(raw_rows, sample_rows=sample_rows, min_columns=min_columns)


def check_headers(
    source: SourceFile,
    template: Template,
    *,
    adapter: SpreadsheetAdapter,
    sample_rows: int = HEADER_SAMPLE_ROWS,
) -> FileValidationResult:
    """Check that every expected header of ``template`` exists in ``source``.

    Missing headers are data-quality findings (warnings), not exceptions; an
    unreadable file yields an invalid result carrying the error message.
    """
    try:
        found = read_header_row(
            source,
            template.sheet_name,
            template.start_row,
            adapter=adapter,
            min_columns=len(template.expected_headers),
            sample_rows=sample_rows,
        )
    except SpreadsheetError as e:
        logger.error("header check failed for %s: %s", source.name, e)
        return FileValidationResult(file_name=source.name, is_valid=False, error=str(e))

    found_set = set(found)
    missing = tuple(h for h in template.expected_headers if h not in found_set)
    if missing:
        logger.warning(
            "header check file=%s sheet=%s found=%d missing=%s",
            source.name,
            template.sheet_name,
            len(found),
            list(missing[:20]),
        )
    errors = tuple(
        ValidationError(
            row=template.start_row + 1,
            field=h,
            value=None,
            message=MISSING_HEADER_MESSAGE,
            severity=Severity.WARNING,
            source_file=source.name,
        )
        for h in missing
    )
    return FileValidationResult(
        file_name=source.name,
        is_valid=not missing,
        missing_headers=missing,
        found_headers=tuple(found),
        errors=errors,
    )


def validate_sources(
    sources: Sequence[SourceFile],
    template: Template,
    *,
    adapter: SpreadsheetAdapter,
    sample_rows: int = HEADER_SAMPLE_ROWS,
) -> list[FileValidationResult]:
    """Header-check every file; repeated (name, size) pairs are marked duplicate."""
    seen: set[tuple[str, int]] = set()
    results: list[FileValidationResult] = []
    for source in sources:
        key = (source.name, source.size)
        is_duplicate = key in seen
        seen.add(key)
        res = check_headers(source, template, adapter=adapter, sample_rows=sample_rows)
        if is_duplicate:
            res = replace(res, is_valid=False, is_duplicate=True)
        results.append(res)
    return results
