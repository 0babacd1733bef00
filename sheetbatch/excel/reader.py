from __future__ import annotations

import io
import math
from collections.abc import Sequence
from datetime import datetime
from typing import Any

import numpy as np
import pandas as pd

from ..models.row_data import CellValue
from .adapter import OutputTable, SheetNotFoundError, SourceReadError
from .writer import write_workbook

"""pandas-backed spreadsheet adapter.

Sheets are parsed raw (header=None, dtype=object) so that cell values keep
the type openpyxl produced; header resolution happens later in
excel.headers. NaN/NaT become None, numpy scalars become Python scalars and
trailing empty cells are trimmed so rows are ragged, as the contract expects.
"""

__all__ = [
    "PandasSpreadsheetAdapter",
    "normalize_cell",
]


def normalize_cell(value: Any) -> CellValue:
    """Convert one raw pandas cell to a plain Python value (None for blanks)."""
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.generic):
        value = value.item()
        if isinstance(value, float) and math.isnan(value):
            return None
        return value
    if isinstance(value, (str, int, float, bool, datetime)):
        return value
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def _trim_trailing_blanks(row: list[CellValue]) -> list[CellValue]:
    end = len(row)
    while end > 0 and row[end - 1] is None:
        end -= 1
    return row[:end]


class PandasSpreadsheetAdapter:
    """SpreadsheetAdapter implementation over pandas.ExcelFile (openpyxl engine).

    Parameters
    ----------
    keep_na_strings: 既定の NaN 変換から除外する文字列 (例: ['NA'])。
        None の場合は pandas 既定の NA 文字列がすべて欠損扱いになる。
    """

    def __init__(self, keep_na_strings: Sequence[str] | None = None) -> None:
        self.keep_na_strings = list(keep_na_strings) if keep_na_strings else None

    def _na_options(self) -> dict[str, Any]:
        # pandas._libs.parsers.STR_NA_VALUES には既定のNA文字列集合が格納されている
        import pandas._libs.parsers as parsers

        if self.keep_na_strings:
            custom_na = parsers.STR_NA_VALUES.copy() - set(self.keep_na_strings)
            return {"keep_default_na": False, "na_values": list(custom_na)}
        return {"keep_default_na": True, "na_values": None}

    def _open(self, data: bytes) -> pd.ExcelFile:
        try:
            return pd.ExcelFile(io.BytesIO(data))
        except Exception as e:
            raise SourceReadError(f"cannot parse spreadsheet: {e}") from e

    def list_sheets(self, data: bytes) -> list[str]:
        with self._open(data) as xls:
            return [str(name) for name in xls.sheet_names]

    def read_rows(
        self, data: bytes, sheet_name: str, header_row_offset: int, limit: int | None = None
    ) -> list[list[CellValue]]:
        with self._open(data) as xls:
            names = [str(n) for n in xls.sheet_names]
            if sheet_name not in names:
                raise SheetNotFoundError(f"sheet '{sheet_name}' not found (available: {names})")
            try:
                df = xls.parse(
                    xls.sheet_names[names.index(sheet_name)],
                    header=None,
                    dtype=object,
                    skiprows=header_row_offset,
                    nrows=limit,
                    **self._na_options(),
                )
            except Exception as e:
                raise SourceReadError(f"cannot read sheet '{sheet_name}': {e}") from e

        rows: list[list[CellValue]] = []
        for raw in df.itertuples(index=False, name=None):
            rows.append(_trim_trailing_blanks([normalize_cell(v) for v in raw]))
        return rows

    def write_workbook(self, tables: Sequence[OutputTable]) -> bytes:
        return write_workbook(tables)
