from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.batch import BatchConfiguration
from ..models.error_record import ErrorRecord

"""Error log buffering.

ValidationErrors from a batch run are buffered as ErrorRecords and written
once as JSON Lines to ``<logs_dir>/errors-YYYYMMDD-HHMMSS.log`` (UTC). The
file is only created when there is something to write.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush writes JSON Lines.

    Not thread safe; the orchestrator runs serially.
    """
    def __init__(self, logs_dir: Path = LOGS_DIR) -> None:
        self.logs_dir = logs_dir
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self.logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def extend_from_batch(self, batch: BatchConfiguration) -> int:
        """Buffer every validation/pre-check error of every task; returns the count added."""
        added = 0
        for task in batch.tasks:
            for vr in task.validation_results or ():
                for err in vr.errors:
                    self.append(ErrorRecord.from_validation_error(batch.id, task.id, err))
                    added += 1
            if task.results is None:
                continue
            for err in task.results.errors:
                self.append(ErrorRecord.from_validation_error(batch.id, task.id, err))
                added += 1
        return added

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Append buffered records to the log file; None when nothing was buffered."""
        if not self._records:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
