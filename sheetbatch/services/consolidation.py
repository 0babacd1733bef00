from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..excel.adapter import OutputTable, SpreadsheetAdapter
from ..models.batch import BatchConfiguration, BatchTask, ExportStrategy, TaskStatus
from ..models.definitions import Schema
from ..models.template import FileNamePosition, Template

"""Consolidation writer: completed task outputs -> named output tables.

Only tasks with status ``completed`` and at least one row are exported.

- split: one artifact per task (file = task custom file name,
  table = task custom sheet name)
- unified: one artifact (global file name) holding one table per task,
  each named by the task's custom sheet name

Sheet names are truncated to the xlsx limit (31) with illegal characters
replaced by '_'. When the template asks for it every row gains a
"<sourceFile>_<sourceSheet>" column at the front or the back.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "MAX_SHEET_NAME_LENGTH",
    "DEFAULT_FILE_NAME_COLUMN",
    "OutputTable",
    "OutputArtifact",
    "sanitize_sheet_name",
    "sanitize_file_name",
    "build_table",
    "consolidate",
    "write_artifacts",
]

MAX_SHEET_NAME_LENGTH = 31
DEFAULT_FILE_NAME_COLUMN = "Source File"
_ILLEGAL_SHEET_CHARS = re.compile(r"[\[\]\*\?/\\:]")
_ILLEGAL_FILE_CHARS = re.compile(r'[\[\]\*\?/\\:<>|"]')


@dataclass(frozen=True)
class OutputArtifact:
    """One output workbook: file name (without extension) and its tables."""
    file_name: str
    tables: list[OutputTable]
    task_ids: list[str] = field(default_factory=list)


def sanitize_sheet_name(name: str | None, fallback: str = "Sheet1") -> str:
    text = (name or "").strip() or fallback
    return _ILLEGAL_SHEET_CHARS.sub("_", text[:MAX_SHEET_NAME_LENGTH])


def sanitize_file_name(name: str | None, fallback: str) -> str:
    text = (name or "").strip() or fallback
    return _ILLEGAL_FILE_CHARS.sub("_", text)


def _unique(name: str, used: set[str], max_length: int | None = None) -> str:
    # Excel のシート名は大文字小文字を区別しない
    candidate = name
    n = 2
    while candidate.casefold() in used:
        suffix = f"_{n}"
        base = name if max_length is None else name[: max_length - len(suffix)]
        candidate = f"{base}{suffix}"
        n += 1
    used.add(candidate.casefold())
    return candidate


def _file_column_name(name: str, field_names: list[str]) -> str:
    # スキーマ項目と同名なら接尾辞を付けて退避する (項目値を上書きしない)
    if name not in field_names:
        return name
    n = 1
    while f"{name}_{n}" in field_names:
        n += 1
    logger.warning("file name column '%s' clashes with a schema field; using '%s_%d'", name, name, n)
    return f"{name}_{n}"


def build_table(
    name: str,
    task: BatchTask,
    template: Template,
    schema: Schema | None,
    file_name_column: str = DEFAULT_FILE_NAME_COLUMN,
) -> OutputTable:
    """Build one output table from a task's processed rows."""
    results = task.results
    rows_in = results.rows if results is not None else []
    if schema is not None:
        field_names = schema.field_names
    else:
        field_names = list(rows_in[0].values.keys()) if rows_in else []

    if template.include_file_name:
        file_name_column = _file_column_name(file_name_column, field_names)
    front = template.include_file_name and template.file_name_position is FileNamePosition.FRONT
    back = template.include_file_name and template.file_name_position is FileNamePosition.BACK
    columns = ([file_name_column] if front else []) + field_names + ([file_name_column] if back else [])

    rows: list[dict[str, Any]] = []
    for row in rows_in:
        info = f"{row.source_file}_{row.source_sheet}"
        out: dict[str, Any] = {}
        if front:
            out[file_name_column] = info
        for name_ in field_names:
            out[name_] = row.values.get(name_)
        if back:
            out[file_name_column] = info
        rows.append(out)
    return OutputTable(name=name, columns=columns, rows=rows)


def _exportable(task: BatchTask) -> bool:
    return task.status is TaskStatus.COMPLETED and task.results is not None and len(task.results.rows) > 0


def consolidate(
    batch: BatchConfiguration,
    templates: Mapping[str, Template],
    schemas: Mapping[str, Schema],
    *,
    strategy: ExportStrategy | None = None,
    file_name_column: str = DEFAULT_FILE_NAME_COLUMN,
) -> list[OutputArtifact]:
    """Group completed task outputs into artifacts per the export strategy.

    Args:
        batch: Batch whose tasks already carry results
        templates: Template id -> Template
        schemas: Schema id -> Schema
        strategy: Override for batch.export_strategy
        file_name_column: Header of the optional source file column

    Returns:
        Artifacts in task order (empty when nothing is exportable)
    """
    strategy = strategy or batch.export_strategy
    entries: list[tuple[BatchTask, Template, Schema | None]] = []
    for task in batch.tasks:
        if not _exportable(task):
            continue
        template = templates.get(task.template_id)
        if template is None:
            logger.warning("task %s skipped on export: template '%s' not found", task.id, task.template_id)
            continue
        entries.append((task, template, schemas.get(template.schema_id)))

    if not entries:
        return []

    if strategy is ExportStrategy.SPLIT:
        artifacts: list[OutputArtifact] = []
        used_files: set[str] = set()
        for task, template, schema in entries:
            sheet = sanitize_sheet_name(
                task.custom_output_sheet_name or batch.global_sheet_name or template.export_sheet_name
            )
            file_name = _unique(
                sanitize_file_name(task.custom_output_file_name or template.export_file_name, "Task_Output"),
                used_files,
            )
            table = build_table(sheet, task, template, schema, file_name_column)
            artifacts.append(OutputArtifact(file_name=file_name, tables=[table], task_ids=[task.id]))
        return artifacts

    used_sheets: set[str] = set()
    tables: list[OutputTable] = []
    for task, template, schema in entries:
        sheet = _unique(
            sanitize_sheet_name(task.custom_output_sheet_name, "Model_Sheet"),
            used_sheets,
            MAX_SHEET_NAME_LENGTH,
        )
        tables.append(build_table(sheet, task, template, schema, file_name_column))
    return [
        OutputArtifact(
            file_name=sanitize_file_name(batch.global_file_name, "Consolidated_Batch"),
            tables=tables,
            task_ids=[t.id for t, _, _ in entries],
        )
    ]


def write_artifacts(
    artifacts: list[OutputArtifact],
    out_dir: Path,
    *,
    adapter: SpreadsheetAdapter,
) -> list[Path]:
    """Write each artifact as ``<out_dir>/<file_name>.xlsx`` (one write_workbook call each)."""
    out_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for artifact in artifacts:
        path = out_dir / f"{artifact.file_name}.xlsx"
        path.write_bytes(adapter.write_workbook(artifact.tables))
        logger.info("wrote %s tables=%d", path, len(artifact.tables))
        written.append(path)
    return written
