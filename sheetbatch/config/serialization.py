from __future__ import annotations

from typing import Any

from ..models.batch import BatchConfiguration, BatchTask, ExportStrategy, TaskStatus
from ..models.definitions import FieldDefinition, FieldType, Schema
from ..models.template import FileNamePosition, RowFilter, RowFilterOperator, Template

"""Plain-structure (de)serialization of schemas, templates and batches.

Only definitions are serialized. Task files, results and validation results
never are, and a deserialized task is always ``pending``.
"""

__all__ = [
    "schema_to_dict",
    "schema_from_dict",
    "template_to_dict",
    "template_from_dict",
    "batch_to_dict",
    "batch_from_dict",
]


def schema_to_dict(schema: Schema) -> dict[str, Any]:
    return {
        "id": schema.id,
        "name": schema.name,
        "description": schema.description,
        "created_at": schema.created_at,
        "fields": [
            {
                "id": f.id,
                "name": f.name,
                "type": f.type.value,
                "required": f.required,
                "description": f.description,
            }
            for f in schema.fields
        ],
    }


def schema_from_dict(data: dict[str, Any]) -> Schema:
    return Schema(
        id=str(data["id"]),
        name=data.get("name", ""),
        description=data.get("description", ""),
        created_at=data.get("created_at", ""),
        fields=tuple(
            FieldDefinition(
                id=str(f["id"]),
                name=f["name"],
                type=FieldType(f.get("type", "string")),
                required=bool(f.get("required", False)),
                description=f.get("description", ""),
            )
            for f in data.get("fields", [])
        ),
    )


def template_to_dict(template: Template) -> dict[str, Any]:
    row_filter = None
    if template.row_filter is not None:
        row_filter = {
            "column": template.row_filter.column,
            "operator": template.row_filter.operator.value,
            "value": template.row_filter.value,
        }
    return {
        "id": template.id,
        "name": template.name,
        "schema_id": template.schema_id,
        "sheet_name": template.sheet_name,
        "start_row": template.start_row,
        "end_row": template.end_row,
        "mapping": dict(template.mapping),
        "expected_headers": list(template.expected_headers),
        "export_file_name": template.export_file_name,
        "export_sheet_name": template.export_sheet_name,
        "include_file_name": template.include_file_name,
        "file_name_position": template.file_name_position.value,
        "row_filter": row_filter,
        "updated_at": template.updated_at,
    }


def template_from_dict(data: dict[str, Any]) -> Template:
    rf = data.get("row_filter")
    row_filter = None
    if rf and rf.get("column"):
        row_filter = RowFilter(
            column=rf["column"],
            operator=RowFilterOperator(rf.get("operator", "not_null")),
            value=rf.get("value", "") or "",
        )
    end_row = data.get("end_row")
    return Template(
        id=str(data["id"]),
        name=data.get("name", ""),
        schema_id=str(data["schema_id"]),
        sheet_name=data.get("sheet_name", ""),
        start_row=int(data.get("start_row", 0)),
        end_row=int(end_row) if end_row is not None else None,
        mapping={str(k): v for k, v in (data.get("mapping") or {}).items()},
        expected_headers=tuple(data.get("expected_headers") or ()),
        export_file_name=data.get("export_file_name", ""),
        export_sheet_name=data.get("export_sheet_name", ""),
        include_file_name=bool(data.get("include_file_name", False)),
        file_name_position=FileNamePosition(data.get("file_name_position", "front")),
        row_filter=row_filter,
        updated_at=data.get("updated_at", ""),
    )


def _task_to_dict(task: BatchTask) -> dict[str, Any]:
    # files / results / validation_results は保存対象外
    return {
        "id": task.id,
        "template_id": task.template_id,
        "custom_output_sheet_name": task.custom_output_sheet_name,
        "custom_output_file_name": task.custom_output_file_name,
        "status": TaskStatus.PENDING.value,
    }


def batch_to_dict(batch: BatchConfiguration) -> dict[str, Any]:
    return {
        "id": batch.id,
        "name": batch.name,
        "description": batch.description,
        "created_at": batch.created_at,
        "export_strategy": batch.export_strategy.value,
        "global_file_name": batch.global_file_name,
        "global_sheet_name": batch.global_sheet_name,
        "tasks": [_task_to_dict(t) for t in batch.tasks],
    }


def batch_from_dict(data: dict[str, Any]) -> BatchConfiguration:
    tasks = tuple(
        BatchTask(
            id=str(t["id"]),
            template_id=str(t["template_id"]),
            custom_output_sheet_name=t.get("custom_output_sheet_name", ""),
            custom_output_file_name=t.get("custom_output_file_name", ""),
        )
        for t in data.get("tasks", [])
    )
    return BatchConfiguration(
        id=str(data["id"]),
        name=data.get("name", ""),
        description=data.get("description", ""),
        created_at=data.get("created_at", ""),
        tasks=tasks,
        export_strategy=ExportStrategy.parse(data.get("export_strategy", "split")),
        global_file_name=data.get("global_file_name"),
        global_sheet_name=data.get("global_sheet_name"),
    )
