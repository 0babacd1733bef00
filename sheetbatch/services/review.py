from __future__ import annotations

import json
import uuid
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..models.batch import BatchConfiguration, TaskStatus
from ..models.definitions import Schema
from ..models.template import Template
from .consolidation import DEFAULT_FILE_NAME_COLUMN, build_table

"""Review snapshot: an auditable, self-contained record of a batch's completed outputs."""

__all__ = [
    "FieldMetadata",
    "ReviewTask",
    "ReviewEntry",
    "health_score",
    "build_review_entry",
    "write_review",
]


@dataclass(frozen=True)
class FieldMetadata:
    name: str
    type: str
    mismatch_count: int


@dataclass(frozen=True)
class ReviewTask:
    model_name: str
    row_count: int
    sheet_name: str
    file_name: str
    rows: list[dict[str, Any]]
    error_count: int
    field_metadata: list[FieldMetadata]
    health_score: float


@dataclass(frozen=True)
class ReviewEntry:
    id: str
    batch_name: str
    timestamp: str
    strategy: str
    total_rows: int
    total_errors: int
    tasks: list[ReviewTask]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def health_score(rows: int, errors: int, field_count: int) -> float:
    """Share of field checks that passed, in percent (100.0 when there is nothing to check)."""
    if rows == 0 or field_count == 0:
        return 100.0
    total_checks = rows * field_count
    return round(max(0.0, 100 - errors / total_checks * 100), 1)


def build_review_entry(
    batch: BatchConfiguration,
    templates: Mapping[str, Template],
    schemas: Mapping[str, Schema],
    *,
    file_name_column: str = DEFAULT_FILE_NAME_COLUMN,
) -> ReviewEntry | None:
    """Snapshot every completed task of ``batch``; None when no task is completed."""
    tasks: list[ReviewTask] = []
    for task in batch.tasks:
        if task.status is not TaskStatus.COMPLETED or task.results is None:
            continue
        template = templates.get(task.template_id)
        if template is None:
            continue
        schema = schemas.get(template.schema_id)
        results = task.results
        table = build_table(task.custom_output_sheet_name, task, template, schema, file_name_column)
        fields = schema.fields if schema is not None else ()
        tasks.append(
            ReviewTask(
                model_name=template.name,
                row_count=len(results.rows),
                sheet_name=task.custom_output_sheet_name,
                file_name=task.custom_output_file_name,
                rows=table.rows,
                error_count=len(results.errors),
                field_metadata=[
                    FieldMetadata(f.name, f.type.value, results.mismatch_count(f.name)) for f in fields
                ],
                health_score=health_score(len(results.rows), len(results.errors), len(fields)),
            )
        )
    if not tasks:
        return None
    return ReviewEntry(
        id=str(uuid.uuid4()),
        batch_name=batch.name or "Unnamed Batch",
        timestamp=datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        strategy=batch.export_strategy.value,
        total_rows=sum(t.row_count for t in tasks),
        total_errors=sum(t.error_count for t in tasks),
        tasks=tasks,
    )


def _json_default(value: Any) -> Any:
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def write_review(entry: ReviewEntry, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(entry.to_dict(), ensure_ascii=False, indent=2, default=_json_default),
        encoding="utf-8",
    )
    return path
