from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .processed import FileValidationResult, ProcessedData
from .source_file import SourceFile

"""Batch models: BatchTask, BatchConfiguration and their enums.

State transitions: pending -> processing -> (completed | error)

A task with no attached files stays pending. Transitions are produced by the
orchestrator only, as new frozen instances (dataclasses.replace); ``results``
is set exactly once, when the task leaves ``processing``.
"""

__all__ = [
    "TaskStatus",
    "ExportStrategy",
    "BatchTask",
    "BatchConfiguration",
]


class TaskStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class ExportStrategy(Enum):
    """split: one artifact per task / unified: one artifact, one table per task."""
    SPLIT = "split"
    UNIFIED = "unified"

    @classmethod
    def parse(cls, raw: str) -> ExportStrategy:
        # 旧名称 (multi-sheet / consolidated) も受け付ける
        legacy = {"multi-sheet": cls.SPLIT, "consolidated": cls.UNIFIED}
        if raw in legacy:
            return legacy[raw]
        return cls(raw)


@dataclass(frozen=True)
class BatchTask:
    """One template applied to one set of source files within a batch."""
    id: str
    template_id: str
    files: tuple[SourceFile, ...] = ()
    status: TaskStatus = TaskStatus.PENDING
    custom_output_sheet_name: str = ""
    custom_output_file_name: str = ""
    validation_results: tuple[FileValidationResult, ...] | None = None
    results: ProcessedData | None = None


@dataclass(frozen=True)
class BatchConfiguration:
    """Ordered collection of tasks sharing an export strategy."""
    id: str
    name: str
    tasks: tuple[BatchTask, ...] = ()
    export_strategy: ExportStrategy = ExportStrategy.SPLIT
    description: str = ""
    global_file_name: str | None = None
    global_sheet_name: str | None = None
    created_at: str = ""

    def task_by_id(self, task_id: str) -> BatchTask | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None
