from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

"""SourceFile: an in-memory spreadsheet handed to a task run.

Files are never persisted by the engine; they live only as long as the
caller keeps the task around.
"""

__all__ = [
    "SourceFile",
]


@dataclass(frozen=True)
class SourceFile:
    name: str  # 表示名 (通常はファイル名)
    data: bytes

    @classmethod
    def from_path(cls, path: Path) -> SourceFile:
        return cls(name=path.name, data=path.read_bytes())

    @property
    def size(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:  # bytes を repr に出さない
        return f"SourceFile(name={self.name!r}, size={self.size})"
