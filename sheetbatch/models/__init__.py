"""Domain models for the sheetbatch transformation engine.

Schemas and templates are configuration (immutable while a task runs);
batch/task/result models carry run state produced by the orchestrator.
"""

from .batch import BatchConfiguration, BatchTask, ExportStrategy, TaskStatus
from .definitions import FieldDefinition, FieldType, Schema
from .processed import (
    FILE_SYSTEM_FIELD,
    FieldStat,
    FileValidationResult,
    ProcessedData,
    ProcessedRow,
    Severity,
    ValidationError,
)
from .row_data import CellValue, RowData
from .source_file import SourceFile
from .template import FileNamePosition, RowFilter, RowFilterOperator, Template

__all__ = [
    # Configuration models
    "FieldType",
    "FieldDefinition",
    "Schema",
    "FileNamePosition",
    "RowFilter",
    "RowFilterOperator",
    "Template",
    # Run models
    "SourceFile",
    "CellValue",
    "RowData",
    "FILE_SYSTEM_FIELD",
    "Severity",
    "ValidationError",
    "FieldStat",
    "ProcessedRow",
    "ProcessedData",
    "FileValidationResult",
    "TaskStatus",
    "ExportStrategy",
    "BatchTask",
    "BatchConfiguration",
]
