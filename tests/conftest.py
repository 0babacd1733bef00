# Shared pytest fixtures
from __future__ import annotations

import io
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from sheetbatch.excel.adapter import OutputTable, SheetNotFoundError, SourceReadError
from sheetbatch.logging.init import reset_logging
from sheetbatch.models import (
    BatchConfiguration,
    BatchTask,
    FieldDefinition,
    FieldType,
    Schema,
    SourceFile,
    Template,
)


class FakeSpreadsheetAdapter:
    """In-memory SpreadsheetAdapter: bytes -> {sheet: rows}.

    Unknown bytes raise SourceReadError, like a corrupt upload would.
    """

    def __init__(self) -> None:
        self.workbooks: dict[bytes, dict[str, list[list[Any]]]] = {}
        self.written: list[list[OutputTable]] = []
        self.read_calls: list[tuple[str, int, int | None]] = []

    def add(self, name: str, sheets: dict[str, list[list[Any]]]) -> SourceFile:
        data = f"{name}#{len(self.workbooks)}".encode()
        self.workbooks[data] = sheets
        return SourceFile(name=name, data=data)

    def _book(self, data: bytes) -> dict[str, list[list[Any]]]:
        if data not in self.workbooks:
            raise SourceReadError("cannot parse spreadsheet: not a workbook")
        return self.workbooks[data]

    def list_sheets(self, data: bytes) -> list[str]:
        return list(self._book(data).keys())

    def read_rows(self, data: bytes, sheet_name: str, header_row_offset: int, limit: int | None = None):
        book = self._book(data)
        if sheet_name not in book:
            raise SheetNotFoundError(f"sheet '{sheet_name}' not found")
        self.read_calls.append((sheet_name, header_row_offset, limit))
        rows = book[sheet_name][header_row_offset:]
        if limit is not None:
            rows = rows[:limit]
        return [list(r) for r in rows]

    def write_workbook(self, tables: Sequence[OutputTable]) -> bytes:
        self.written.append(list(tables))
        return b"xlsx:" + ",".join(t.name for t in tables).encode()


def build_xlsx(sheets: dict[str, list[list[Any]]]) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for sheet, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
    return buffer.getvalue()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def fake_adapter() -> FakeSpreadsheetAdapter:
    return FakeSpreadsheetAdapter()


@pytest.fixture()
def xlsx_bytes():
    return build_xlsx


@pytest.fixture()
def invoice_schema() -> Schema:
    return Schema(
        id="s-invoice",
        name="Invoice",
        fields=(
            FieldDefinition(id="f-date", name="InvoiceDate", type=FieldType.DATE, required=True),
            FieldDefinition(id="f-amount", name="Amount", type=FieldType.NUMBER, required=True),
        ),
    )


@pytest.fixture()
def invoice_template() -> Template:
    return Template(
        id="t-invoice",
        name="Invoice layout",
        schema_id="s-invoice",
        sheet_name="Data",
        mapping={"f-date": "Date", "f-amount": "Amt"},
        expected_headers=("Date", "Amt"),
        export_file_name="invoices",
        export_sheet_name="Invoices",
    )


@pytest.fixture()
def make_batch():
    def _make(*tasks: BatchTask, **kwargs: Any) -> BatchConfiguration:
        return BatchConfiguration(id=kwargs.pop("id", "b1"), name=kwargs.pop("name", "Batch 1"), tasks=tasks, **kwargs)
    return _make
