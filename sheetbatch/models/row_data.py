from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time

"""RowData model: one extracted source row.

Values are keyed by the resolved header key (see excel.headers) and are
normalized once by the spreadsheet adapter; downstream code never re-infers
cell types.
"""

__all__ = [
    "CellValue",
    "RowData",
]

CellValue = str | int | float | bool | datetime | date | time | None


@dataclass(frozen=True)
class RowData:
    """Logical representation of a single source row after header resolution.

    row_number is the 1-based spreadsheet row, i.e. the position in the
    extracted slice + start_row + 2.
    """
    row_number: int
    values: dict[str, CellValue]

    def get(self, key: str | None) -> CellValue:
        if key is None:
            return None
        return self.values.get(key)
