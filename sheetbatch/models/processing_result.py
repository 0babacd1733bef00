from __future__ import annotations

import statistics
from dataclasses import dataclass
from datetime import datetime

from .batch import BatchConfiguration, BatchTask, TaskStatus

"""Batch run result models.

BatchRunResult aggregates what the orchestrator observed while running one
batch; it carries the final task instances so callers can consolidate or
review without re-running anything.
"""


@dataclass(frozen=True)
class TaskStat:
    """Per-task run statistics (internal helper for BatchRunResult).

    File timing statistics are collected with FileTimingAccumulator.
    """
    task_id: str
    template_id: str
    status: str  # pending/completed/error
    file_count: int
    row_count: int
    error_count: int
    elapsed_seconds: float
    avg_file_seconds: float = 0.0
    p95_file_seconds: float = 0.0


@dataclass(frozen=True)
class BatchRunResult:
    """Aggregated results for one batch run.

    There is no batch-level success flag: a batch is done when no task is
    left un-attempted. Counts are derived from the final task statuses.
    """
    batch: BatchConfiguration  # 最終状態のタスクを保持
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    task_stats: list[TaskStat] | None = None

    @property
    def tasks(self) -> tuple[BatchTask, ...]:
        return self.batch.tasks

    def _count(self, status: TaskStatus) -> int:
        return sum(1 for t in self.tasks if t.status is status)

    @property
    def completed_tasks(self) -> int:
        return self._count(TaskStatus.COMPLETED)

    @property
    def error_tasks(self) -> int:
        return self._count(TaskStatus.ERROR)

    @property
    def pending_tasks(self) -> int:
        return self._count(TaskStatus.PENDING)

    @property
    def total_rows(self) -> int:
        return sum(len(t.results.rows) for t in self.tasks if t.results is not None)

    @property
    def total_errors(self) -> int:
        return sum(len(t.results.errors) for t in self.tasks if t.results is not None)


class FileTimingAccumulator:
    """Collects per-file parse timings for one task and summarizes them."""

    def __init__(self) -> None:
        self.file_times: list[float] = []

    def add_file_time(self, elapsed_seconds: float) -> None:
        self.file_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Calculate file timing statistics.

        Returns:
            tuple: (total_files, avg_file_seconds, p95_file_seconds)
        """
        if not self.file_times:
            return (0, 0.0, 0.0)

        total_files = len(self.file_times)
        avg_file_seconds = statistics.mean(self.file_times)

        if total_files == 1:
            p95_file_seconds = self.file_times[0]
        else:
            # 20分位の19番目 = p95
            p95_file_seconds = statistics.quantiles(
                self.file_times, n=20, method='inclusive'
            )[18]

        return (total_files, avg_file_seconds, p95_file_seconds)
