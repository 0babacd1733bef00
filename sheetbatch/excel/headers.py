from __future__ import annotations

from collections.abc import Sequence

from openpyxl.utils import get_column_letter

from ..models.row_data import CellValue

"""Header resolution.

Derives a stable ordered list of column keys from the header row of a sheet
slice (row 0 of the slice is the header row):

- width = max(len(header row), longest of the next N data rows, min_columns)
  so trailing blank header cells never drop trailing data columns
- key = trimmed header text, or "Column <letters>" (spreadsheet-style
  base-26) for blank headers, so identical blank layouts in different files
  resolve to identical keys
- repeated header text gets _1, _2, ... suffixes left to right
- real header text always keeps its name; a suffix or fallback label that
  would collide with an existing key takes the next free suffix instead, so
  every key is unique
"""

__all__ = [
    "column_label",
    "resolve_headers",
]

FALLBACK_PREFIX = "Column"


def column_label(index: int) -> str:
    """Positional fallback key for a 0-based column index ("Column A", ..., "Column AA")."""
    return f"{FALLBACK_PREFIX} {get_column_letter(index + 1)}"


def _header_text(value: CellValue) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        # 2024.0 のような数値ヘッダは "2024" として扱う
        return str(int(value))
    return str(value).strip()


def resolve_headers(
    rows: Sequence[Sequence[CellValue]],
    sample_rows: int | None = None,
    min_columns: int = 0,
) -> list[str]:
    """Resolve column keys for a slice whose first row is the header row.

    Args:
        rows: header row followed by data rows (ragged rows allowed)
        sample_rows: number of data rows inspected for width (None = all)
        min_columns: lower bound for the width (e.g. len(expected_headers))

    Returns:
        One key per column position; empty list for an empty slice
    """
    if not rows and min_columns <= 0:
        return []
    header_row = list(rows[0]) if rows else []
    data_rows = rows[1:] if sample_rows is None else rows[1 : 1 + sample_rows]
    width = max([len(header_row), min_columns, *(len(r) for r in data_rows)])

    texts = [_header_text(header_row[idx]) if idx < len(header_row) else "" for idx in range(width)]
    # 実在するヘッダ名を優先して予約する (接尾辞・代替名と衝突させない)
    used: set[str] = set()
    first_index: dict[str, int] = {}
    for idx, text in enumerate(texts):
        if text and text not in first_index:
            first_index[text] = idx
            used.add(text)

    keys: list[str] = []
    for idx, text in enumerate(texts):
        if text and first_index[text] == idx:
            keys.append(text)
            continue
        base = text or column_label(idx)
        if not text and base not in used:
            key = base
        else:
            n = 1
            while f"{base}_{n}" in used:
                n += 1
            key = f"{base}_{n}"
        used.add(key)
        keys.append(key)
    return keys


def cell_text(value: CellValue) -> str:
    """Trimmed display text of a cell ('' for blanks), integral floats without '.0'."""
    return _header_text(value)
