from __future__ import annotations

import io
from datetime import datetime

import numpy as np
import openpyxl
import pandas as pd
import pytest

from sheetbatch.excel.adapter import OutputTable, SheetNotFoundError, SourceReadError
from sheetbatch.excel.reader import PandasSpreadsheetAdapter, normalize_cell


def test_normalize_cell_variants():
    assert normalize_cell(float("nan")) is None
    assert normalize_cell(pd.NaT) is None
    assert normalize_cell(None) is None
    assert normalize_cell(np.int64(5)) == 5
    assert type(normalize_cell(np.int64(5))) is int
    assert normalize_cell(pd.Timestamp("2024-01-02")) == datetime(2024, 1, 2)
    assert normalize_cell("x") == "x"


def test_list_sheets(xlsx_bytes):
    data = xlsx_bytes({"First": [["a"]], "Second": [["b"]]})
    assert PandasSpreadsheetAdapter().list_sheets(data) == ["First", "Second"]


def test_read_rows_with_offset_and_limit(xlsx_bytes):
    data = xlsx_bytes({"Data": [["Title", None], ["id", "name"], [1, "Alice"], [2, "Bob"], [3, "Carol"]]})
    adapter = PandasSpreadsheetAdapter()
    rows = adapter.read_rows(data, "Data", 1, 3)
    assert rows == [["id", "name"], [1, "Alice"], [2, "Bob"]]


def test_read_rows_trims_trailing_blanks(xlsx_bytes):
    data = xlsx_bytes({"Data": [["a", "b", "c"], [1, None, None]]})
    rows = PandasSpreadsheetAdapter().read_rows(data, "Data", 0)
    assert rows[1] == [1]


def test_read_rows_unknown_sheet(xlsx_bytes):
    data = xlsx_bytes({"Data": [["a"]]})
    with pytest.raises(SheetNotFoundError):
        PandasSpreadsheetAdapter().read_rows(data, "Missing", 0)


def test_corrupt_bytes_raise_source_read_error():
    with pytest.raises(SourceReadError):
        PandasSpreadsheetAdapter().list_sheets(b"definitely not a workbook")


def test_keep_na_strings(xlsx_bytes):
    data = xlsx_bytes({"Data": [["code"], ["NA"], ["N/A"]]})
    default_rows = PandasSpreadsheetAdapter().read_rows(data, "Data", 0)
    kept_rows = PandasSpreadsheetAdapter(keep_na_strings=["NA"]).read_rows(data, "Data", 0)
    assert default_rows[1:] == [[], []]
    assert kept_rows[1:] == [["NA"], []]


def test_write_workbook_roundtrip_sheets():
    tables = [
        OutputTable(name="One", columns=["A", "B"], rows=[{"A": 1, "B": "x"}]),
        OutputTable(name="Two", columns=["C"], rows=[]),
    ]
    data = PandasSpreadsheetAdapter().write_workbook(tables)
    wb = openpyxl.load_workbook(io.BytesIO(data))
    assert wb.sheetnames == ["One", "Two"]
    assert [c.value for c in wb["One"][1]] == ["A", "B"]
    assert [c.value for c in wb["One"][2]] == [1, "x"]
    assert [c.value for c in wb["Two"][1]] == ["C"]


def test_write_workbook_requires_tables():
    with pytest.raises(ValueError):
        PandasSpreadsheetAdapter().write_workbook([])
