from __future__ import annotations

import io
from collections.abc import Sequence

import pandas as pd

from .adapter import OutputTable

"""Workbook writer: output tables -> xlsx bytes (pandas + openpyxl)."""

__all__ = [
    "write_workbook",
]


def write_workbook(tables: Sequence[OutputTable]) -> bytes:
    """Write every table as one sheet of a single workbook and return its bytes.

    Raises:
        ValueError: when no table is given (an xlsx needs at least one sheet)
    """
    if not tables:
        raise ValueError("write_workbook requires at least one table")
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for table in tables:
            df = pd.DataFrame(table.rows, columns=table.columns)
            df.to_excel(writer, sheet_name=table.name, index=False)
    return buffer.getvalue()
