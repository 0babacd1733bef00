from __future__ import annotations

from dataclasses import replace

import pytest

from sheetbatch.models import BatchTask, ExportStrategy, FileNamePosition, TaskStatus
from sheetbatch.services.consolidation import (
    DEFAULT_FILE_NAME_COLUMN,
    build_table,
    consolidate,
    sanitize_file_name,
    sanitize_sheet_name,
    write_artifacts,
)
from sheetbatch.services.task_runner import run_task


@pytest.fixture()
def completed(fake_adapter, invoice_template, invoice_schema):
    def _make(task_id: str, rows: int = 1, **task_kwargs) -> BatchTask:
        data = [["Date", "Amt"]] + [[f"d{i}", i] for i in range(rows)]
        src = fake_adapter.add(f"{task_id}.xlsx", {"Data": data})
        task = BatchTask(id=task_id, template_id=invoice_template.id, files=(src,), **task_kwargs)
        return run_task(task, invoice_template, invoice_schema, adapter=fake_adapter)
    return _make


@pytest.fixture()
def configs(invoice_template, invoice_schema):
    return {invoice_template.id: invoice_template}, {invoice_schema.id: invoice_schema}


def test_sanitize_sheet_name():
    assert sanitize_sheet_name("a/b:c*d?[e]\\f") == "a_b_c_d__e__f"
    assert sanitize_sheet_name("x" * 40) == "x" * 31
    assert sanitize_sheet_name("  ") == "Sheet1"
    assert sanitize_sheet_name(None, "Model_Sheet") == "Model_Sheet"


def test_sanitize_file_name():
    assert sanitize_file_name('a<b>:"c"', "F") == "a_b___c_"
    assert sanitize_file_name("", "Fallback") == "Fallback"


def test_split_one_artifact_per_task(completed, configs, make_batch):
    templates, schemas = configs
    batch = make_batch(
        completed("t1", custom_output_file_name="north", custom_output_sheet_name="North"),
        completed("t2", custom_output_file_name="south"),
    )
    artifacts = consolidate(batch, templates, schemas)
    assert [a.file_name for a in artifacts] == ["north", "south"]
    assert [[t.name for t in a.tables] for a in artifacts] == [["North"], ["Invoices"]]
    assert [a.task_ids for a in artifacts] == [["t1"], ["t2"]]


def test_split_fallback_names(completed, configs, make_batch, invoice_template):
    templates, schemas = configs
    templates = {k: replace(v, export_file_name="", export_sheet_name="") for k, v in templates.items()}
    batch = make_batch(completed("t1"), completed("t2"), global_sheet_name="Global")
    artifacts = consolidate(batch, templates, schemas)
    assert [a.file_name for a in artifacts] == ["Task_Output", "Task_Output_2"]
    assert artifacts[0].tables[0].name == "Global"


def test_unified_single_artifact(completed, configs, make_batch):
    templates, schemas = configs
    batch = make_batch(
        completed("t1", custom_output_sheet_name="Data"),
        completed("t2", custom_output_sheet_name="data"),
        completed("t3"),
        export_strategy=ExportStrategy.UNIFIED,
        global_file_name="All",
    )
    artifacts = consolidate(batch, templates, schemas)
    assert len(artifacts) == 1
    assert artifacts[0].file_name == "All"
    assert [t.name for t in artifacts[0].tables] == ["Data", "data_2", "Model_Sheet"]


def test_unified_default_file_name(completed, configs, make_batch):
    templates, schemas = configs
    batch = make_batch(completed("t1"), export_strategy=ExportStrategy.UNIFIED)
    artifacts = consolidate(batch, templates, schemas)
    assert artifacts[0].file_name == "Consolidated_Batch"


def test_strategy_override(completed, configs, make_batch):
    templates, schemas = configs
    batch = make_batch(completed("t1"), completed("t2"))
    assert len(consolidate(batch, templates, schemas, strategy=ExportStrategy.UNIFIED)) == 1


def test_only_completed_tasks_with_rows_exported(completed, configs, make_batch, fake_adapter):
    templates, schemas = configs
    empty = completed("t-empty", rows=0)
    assert empty.status is TaskStatus.COMPLETED
    batch = make_batch(
        completed("t1"),
        empty,
        BatchTask(id="t-pending", template_id="t-invoice"),
        replace(completed("t-err"), status=TaskStatus.ERROR),
    )
    artifacts = consolidate(batch, templates, schemas)
    assert [a.task_ids for a in artifacts] == [["t1"]]


def test_nothing_exportable(configs, make_batch):
    templates, schemas = configs
    assert consolidate(make_batch(BatchTask(id="t", template_id="t-invoice")), templates, schemas) == []


@pytest.mark.parametrize("position", [FileNamePosition.FRONT, FileNamePosition.BACK])
def test_build_table_file_name_column(completed, invoice_template, invoice_schema, position):
    task = completed("t1", rows=2)
    template = replace(invoice_template, include_file_name=True, file_name_position=position)
    table = build_table("S", task, template, invoice_schema)
    expected_cols = ["InvoiceDate", "Amount"]
    if position is FileNamePosition.FRONT:
        expected_cols.insert(0, DEFAULT_FILE_NAME_COLUMN)
    else:
        expected_cols.append(DEFAULT_FILE_NAME_COLUMN)
    assert table.columns == expected_cols
    assert list(table.rows[0]) == expected_cols
    assert table.rows[0][DEFAULT_FILE_NAME_COLUMN] == "t1.xlsx_Data"
    assert table.rows[1]["Amount"] == 1


def test_build_table_without_file_name(completed, invoice_template, invoice_schema):
    table = build_table("S", completed("t1"), invoice_template, invoice_schema, file_name_column="Origin")
    assert table.columns == ["InvoiceDate", "Amount"]


def test_write_artifacts_one_call_per_artifact(completed, configs, make_batch, fake_adapter, tmp_path):
    templates, schemas = configs
    batch = make_batch(completed("t1"), completed("t2", custom_output_file_name="second"))
    artifacts = consolidate(batch, templates, schemas)
    paths = write_artifacts(artifacts, tmp_path / "out", adapter=fake_adapter)
    assert [p.name for p in paths] == ["invoices.xlsx", "second.xlsx"]
    assert len(fake_adapter.written) == 2
    assert paths[0].read_bytes() == b"xlsx:Invoices"


@pytest.mark.parametrize("position", [FileNamePosition.FRONT, FileNamePosition.BACK])
def test_file_name_column_clashing_with_field_is_renamed(completed, invoice_template, invoice_schema, position):
    task = completed("t1", rows=1)
    template = replace(invoice_template, include_file_name=True, file_name_position=position)
    table = build_table("S", task, template, invoice_schema, file_name_column="Amount")
    assert sorted(table.columns) == sorted(["InvoiceDate", "Amount", "Amount_1"])
    assert len(table.columns) == len(set(table.columns))
    assert table.rows[0]["Amount"] == 0
    assert table.rows[0]["Amount_1"] == "t1.xlsx_Data"
    assert list(table.rows[0]) == table.columns
