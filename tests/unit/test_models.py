from __future__ import annotations

import pytest

from sheetbatch.models import (
    FILE_SYSTEM_FIELD,
    BatchConfiguration,
    BatchTask,
    ExportStrategy,
    FieldStat,
    ProcessedData,
    RowData,
    SourceFile,
    Template,
    ValidationError,
)
from sheetbatch.models.processing_result import FileTimingAccumulator


def test_template_row_bounds():
    with pytest.raises(ValueError):
        Template(id="t", name="", schema_id="s", sheet_name="S", start_row=-1)
    with pytest.raises(ValueError):
        Template(id="t", name="", schema_id="s", sheet_name="S", start_row=5, end_row=4)
    Template(id="t", name="", schema_id="s", sheet_name="S", start_row=5, end_row=5)


def test_template_source_column():
    tpl = Template(id="t", name="", schema_id="s", sheet_name="S", mapping={"a": "Col", "b": ""})
    assert tpl.source_column("a") == "Col"
    assert tpl.source_column("b") is None
    assert tpl.source_column("zzz") is None


def test_row_data_get():
    row = RowData(row_number=2, values={"A": 1})
    assert row.get("A") == 1
    assert row.get("B") is None
    assert row.get(None) is None


def test_source_file_repr_hides_bytes(tmp_path):
    p = tmp_path / "a.xlsx"
    p.write_bytes(b"12345")
    src = SourceFile.from_path(p)
    assert src.name == "a.xlsx"
    assert src.size == 5
    assert repr(src) == "SourceFile(name='a.xlsx', size=5)"


def test_processed_data_helpers():
    structural = ValidationError(row=0, field=FILE_SYSTEM_FIELD, value="f", message="m")
    field_err = ValidationError(row=2, field="A", value=None, message="m")
    data = ProcessedData(rows=[], errors=[structural, field_err], file_count=1, field_stats={"A": FieldStat(1)})
    assert data.structural_errors == [structural]
    assert data.mismatch_count("A") == 1
    assert data.mismatch_count("B") == 0


def test_export_strategy_parse():
    assert ExportStrategy.parse("split") is ExportStrategy.SPLIT
    assert ExportStrategy.parse("unified") is ExportStrategy.UNIFIED
    assert ExportStrategy.parse("multi-sheet") is ExportStrategy.SPLIT
    with pytest.raises(ValueError):
        ExportStrategy.parse("zip")


def test_task_by_id():
    batch = BatchConfiguration(id="b", name="B", tasks=(BatchTask(id="t1", template_id="x"),))
    assert batch.task_by_id("t1") is batch.tasks[0]
    assert batch.task_by_id("t2") is None


def test_file_timing_accumulator():
    acc = FileTimingAccumulator()
    assert acc.get_stats() == (0, 0.0, 0.0)
    acc.add_file_time(2.0)
    assert acc.get_stats() == (1, 2.0, 2.0)
    for t in (1.0, 3.0, 4.0):
        acc.add_file_time(t)
    n, avg, p95 = acc.get_stats()
    assert n == 4
    assert avg == 2.5
    assert 3.0 < p95 <= 4.0
