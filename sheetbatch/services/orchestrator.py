from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace
from datetime import UTC, datetime

from ..excel.adapter import SpreadsheetAdapter
from ..excel.extract import HEADER_SAMPLE_ROWS, validate_sources
from ..models.batch import BatchConfiguration, BatchTask, TaskStatus
from ..models.definitions import Schema
from ..models.processing_result import BatchRunResult, FileTimingAccumulator, TaskStat
from ..models.source_file import SourceFile
from ..models.template import Template
from .progress import ProgressTracker
from .task_runner import run_task

"""Batch orchestration.

Tasks run strictly one at a time in list order. Each task's status change is
published through ``on_task_update`` before the next task starts. There is no
retry and no batch-level success flag; re-running a task is an explicit
rerun_task() call. Schemas and templates are passed in explicitly and never
mutated; this module keeps no state between calls.
"""

logger = logging.getLogger(__name__)

TaskCallback = Callable[[BatchTask], None]


class ProcessingError(Exception):
    """Raised for caller errors that prevent a batch operation (e.g. unknown task id)."""
    pass


def resolve_task_config(
    task: BatchTask,
    templates: Mapping[str, Template],
    schemas: Mapping[str, Schema],
) -> tuple[Template | None, Schema | None]:
    template = templates.get(task.template_id)
    schema = schemas.get(template.schema_id) if template is not None else None
    return template, schema


def attach_files(
    task: BatchTask,
    files: Sequence[SourceFile],
    template: Template,
    *,
    adapter: SpreadsheetAdapter,
    sample_rows: int = HEADER_SAMPLE_ROWS,
) -> BatchTask:
    """Attach files to a task after the header pre-check.

    Every file is attached; the pre-check outcome is recorded in
    ``validation_results`` for the caller to act on. Attaching resets the
    task to ``pending`` and drops earlier results.
    """
    results = validate_sources(files, template, adapter=adapter, sample_rows=sample_rows)
    invalid = [r.file_name for r in results if not r.is_valid]
    if invalid:
        logger.warning("task %s: %d/%d files failed header check: %s", task.id, len(invalid), len(files), invalid)
    return replace(
        task,
        files=tuple(files),
        status=TaskStatus.PENDING,
        validation_results=tuple(results),
        results=None,
    )


def _execute_task(
    task: BatchTask,
    templates: Mapping[str, Template],
    schemas: Mapping[str, Schema],
    adapter: SpreadsheetAdapter,
    max_workers: int,
    on_task_update: TaskCallback | None,
) -> tuple[BatchTask, TaskStat]:
    template, schema = resolve_task_config(task, templates, schemas)
    started = datetime.now(UTC)
    if task.files and template is not None and schema is not None:
        processing = replace(task, status=TaskStatus.PROCESSING, results=None)
        logger.debug("task %s processing template=%s files=%d", task.id, template.id, len(task.files))
        if on_task_update is not None:
            on_task_update(processing)
        task = processing

    timings = FileTimingAccumulator()
    finished = run_task(task, template, schema, adapter=adapter, max_workers=max_workers, timings=timings)
    if on_task_update is not None:
        on_task_update(finished)

    elapsed = (datetime.now(UTC) - started).total_seconds()
    _, avg_file, p95_file = timings.get_stats()
    results = finished.results
    stat = TaskStat(
        task_id=finished.id,
        template_id=finished.template_id,
        status=finished.status.value,
        file_count=len(finished.files),
        row_count=len(results.rows) if results is not None else 0,
        error_count=len(results.errors) if results is not None else 0,
        elapsed_seconds=elapsed,
        avg_file_seconds=avg_file,
        p95_file_seconds=p95_file,
    )
    return finished, stat


def run_batch(
    batch: BatchConfiguration,
    templates: Mapping[str, Template],
    schemas: Mapping[str, Schema],
    *,
    adapter: SpreadsheetAdapter,
    on_task_update: TaskCallback | None = None,
    max_workers: int = 1,
    show_progress: bool | None = None,
) -> BatchRunResult:
    """Run every task of ``batch`` sequentially and return the aggregated result.

    Args:
        batch: Batch configuration with files attached to its tasks
        templates: Template id -> Template
        schemas: Schema id -> Schema
        adapter: Spreadsheet adapter used for every file
        on_task_update: Called with each task state change, in order
        max_workers: Worker threads for per-file parsing inside a task
        show_progress: Force the tqdm bar on/off (None = TTY detection)

    Returns:
        BatchRunResult holding the batch with final task states
    """
    start_time = datetime.now(UTC)
    tasks: list[BatchTask] = list(batch.tasks)
    task_stats: list[TaskStat] = []

    with ProgressTracker(len(tasks), description="Running tasks", enabled=show_progress) as progress:
        for idx, task in enumerate(tasks):
            progress.start_task(task.custom_output_sheet_name or task.id)
            finished, stat = _execute_task(task, templates, schemas, adapter, max_workers, on_task_update)
            tasks[idx] = finished
            task_stats.append(stat)
            progress.finish_task()
            progress.set_postfix(
                completed=sum(1 for t in tasks[: idx + 1] if t.status is TaskStatus.COMPLETED),
                error=sum(1 for t in tasks[: idx + 1] if t.status is TaskStatus.ERROR),
            )

    end_time = datetime.now(UTC)
    result = BatchRunResult(
        batch=replace(batch, tasks=tuple(tasks)),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        task_stats=task_stats,
    )
    logger.info(
        "batch %s finished completed=%d error=%d pending=%d rows=%d",
        batch.id,
        result.completed_tasks,
        result.error_tasks,
        result.pending_tasks,
        result.total_rows,
    )
    return result


def rerun_task(
    batch: BatchConfiguration,
    task_id: str,
    templates: Mapping[str, Template],
    schemas: Mapping[str, Schema],
    *,
    adapter: SpreadsheetAdapter,
    on_task_update: TaskCallback | None = None,
    max_workers: int = 1,
) -> BatchConfiguration:
    """User-initiated re-run of one task; the other tasks are left untouched.

    Raises:
        ProcessingError: ``task_id`` is not part of ``batch``
    """
    for idx, task in enumerate(batch.tasks):
        if task.id == task_id:
            finished, _ = _execute_task(task, templates, schemas, adapter, max_workers, on_task_update)
            tasks = list(batch.tasks)
            tasks[idx] = finished
            return replace(batch, tasks=tuple(tasks))
    raise ProcessingError(f"task not found in batch '{batch.id}': {task_id}")
