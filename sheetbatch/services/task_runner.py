from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace

from ..excel.adapter import SpreadsheetAdapter
from ..excel.extract import ExtractedSheet, extract_rows
from ..models.batch import BatchTask, TaskStatus
from ..models.definitions import Schema
from ..models.processed import (
    FILE_SYSTEM_FIELD,
    FieldStat,
    ProcessedData,
    ProcessedRow,
    Severity,
    ValidationError,
)
from ..models.processing_result import FileTimingAccumulator
from ..models.source_file import SourceFile
from ..models.template import Template
from .validator import validate_field

"""Transformation task runner: one (template, schema, files) triple.

Failure semantics:
- a file that cannot be read/parsed adds exactly one FILE_SYSTEM error and
  the remaining files are still processed; the task ends in ``error``
- field-level findings are counted in field_stats and never change the
  task status
- a task without files stays ``pending`` and gets no results

Output row order is file order x in-file row order, also when files are
parsed on worker threads.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "FileOutcome",
    "extract_files",
    "transform_rows",
    "run_task",
]


@dataclass(frozen=True)
class FileOutcome:
    source: SourceFile
    sheet: ExtractedSheet | None
    error: str | None
    elapsed_seconds: float


def _extract_one(source: SourceFile, template: Template, adapter: SpreadsheetAdapter) -> FileOutcome:
    start = time.perf_counter()
    try:
        sheet = extract_rows(
            source,
            template.sheet_name,
            template.start_row,
            template.end_row,
            adapter=adapter,
            row_filter=template.row_filter,
        )
    except Exception as e:
        # ファイル単位で隔離: 1ファイルの失敗でタスク全体を止めない
        logger.error("failed to process file %s: %s", source.name, e)
        return FileOutcome(source, None, str(e) or "Failed to process file", time.perf_counter() - start)
    return FileOutcome(source, sheet, None, time.perf_counter() - start)


def extract_files(
    files: Sequence[SourceFile],
    template: Template,
    *,
    adapter: SpreadsheetAdapter,
    max_workers: int = 1,
) -> list[FileOutcome]:
    """Extract every file; the result list is always in ``files`` order."""
    if max_workers <= 1 or len(files) <= 1:
        return [_extract_one(f, template, adapter) for f in files]
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        # map() は入力順で結果を返す
        return list(pool.map(lambda f: _extract_one(f, template, adapter), files))


def transform_rows(
    sheet: ExtractedSheet,
    schema: Schema,
    template: Template,
    rows: list[ProcessedRow],
    errors: list[ValidationError],
    mismatches: dict[str, int],
) -> None:
    """Validate every extracted row against every schema field, appending in place."""
    for record in sheet.rows:
        values = {}
        for field in schema.fields:
            value, error = validate_field(field, record, template.mapping, source_file=sheet.file_name)
            if error is not None:
                errors.append(error)
                mismatches[field.name] += 1
            values[field.name] = value
        rows.append(
            ProcessedRow(
                values=values,
                source_file=sheet.file_name,
                source_sheet=sheet.sheet_name,
                row_number=record.row_number,
            )
        )


def _structural_failure(task: BatchTask, message: str, value: str, schema: Schema | None) -> BatchTask:
    logger.error("task %s: %s", task.id, message)
    stats = {f.name: FieldStat() for f in schema.fields} if schema is not None else {}
    results = ProcessedData(
        rows=[],
        errors=[
            ValidationError(
                row=0,
                field=FILE_SYSTEM_FIELD,
                value=value,
                message=message,
                severity=Severity.ERROR,
            )
        ],
        file_count=len(task.files),
        field_stats=stats,
    )
    return replace(task, status=TaskStatus.ERROR, results=results)


def run_task(
    task: BatchTask,
    template: Template | None,
    schema: Schema | None,
    *,
    adapter: SpreadsheetAdapter,
    max_workers: int = 1,
    timings: FileTimingAccumulator | None = None,
) -> BatchTask:
    """Run one task and return it in its final state.

    ``template`` / ``schema`` are None when they could not be resolved by the
    caller; that is a structural failure of the task, not an exception.
    """
    if not task.files:
        logger.info("task %s has no files; left pending", task.id)
        return replace(task, status=TaskStatus.PENDING, results=None)
    if template is None:
        return _structural_failure(task, f"template '{task.template_id}' not found", task.template_id, schema)
    if schema is None:
        return _structural_failure(task, f"schema '{template.schema_id}' not found", template.schema_id, None)
    if schema.id != template.schema_id:
        return _structural_failure(
            task,
            f"template '{template.id}' targets schema '{template.schema_id}', got '{schema.id}'",
            template.schema_id,
            schema,
        )

    rows: list[ProcessedRow] = []
    errors: list[ValidationError] = []
    mismatches = {f.name: 0 for f in schema.fields}
    has_failure = False

    for outcome in extract_files(task.files, template, adapter=adapter, max_workers=max_workers):
        if timings is not None:
            timings.add_file_time(outcome.elapsed_seconds)
        if outcome.sheet is None:
            has_failure = True
            errors.append(
                ValidationError(
                    row=0,
                    field=FILE_SYSTEM_FIELD,
                    value=outcome.source.name,
                    message=outcome.error or "Failed to process file",
                    severity=Severity.ERROR,
                    source_file=outcome.source.name,
                )
            )
            continue
        transform_rows(outcome.sheet, schema, template, rows, errors, mismatches)

    status = TaskStatus.ERROR if has_failure else TaskStatus.COMPLETED
    results = ProcessedData(
        rows=rows,
        errors=errors,
        file_count=len(task.files),
        field_stats={name: FieldStat(count) for name, count in mismatches.items()},
    )
    logger.info(
        "task %s %s files=%d rows=%d errors=%d",
        task.id,
        status.value,
        len(task.files),
        len(rows),
        len(errors),
    )
    return replace(task, status=status, results=results)
