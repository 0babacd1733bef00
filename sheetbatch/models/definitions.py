from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Target schema models (data definitions).

A Schema is the canonical, ordered list of fields that every transformed row
must carry. Field order is the order of processing and of output columns.
"""

__all__ = [
    "FieldType",
    "FieldDefinition",
    "Schema",
]


class FieldType(Enum):
    """Declared type of a target field.

    Only NUMBER is coerced by the validator; the other types travel as raw
    cell values.
    """
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class FieldDefinition:
    """One target field. Identity is ``id``; renaming produces a new id."""
    id: str
    name: str
    type: FieldType = FieldType.STRING
    required: bool = False
    description: str = ""


@dataclass(frozen=True)
class Schema:
    """Named ordered set of target fields (DataDefinition)."""
    id: str
    name: str
    fields: tuple[FieldDefinition, ...]
    description: str = ""
    created_at: str = ""

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def field_by_id(self, field_id: str) -> FieldDefinition | None:
        for f in self.fields:
            if f.id == field_id:
                return f
        return None
