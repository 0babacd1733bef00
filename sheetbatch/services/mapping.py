from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from ..models.definitions import FieldDefinition

"""Mapping suggestion seam.

The suggestion service itself lives outside the engine. Whatever it returns
is sanitized here: unknown fields and columns are dropped, and a failing or
empty service simply yields an empty mapping.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "MappingSuggester",
    "NullSuggester",
    "suggest_mapping",
]


class MappingSuggester(Protocol):
    def suggest(self, fields: Sequence[FieldDefinition], columns: Sequence[str]) -> dict[str, str]:
        ...


class NullSuggester:
    """Suggests nothing."""

    def suggest(self, fields: Sequence[FieldDefinition], columns: Sequence[str]) -> dict[str, str]:
        return {}


def suggest_mapping(
    fields: Sequence[FieldDefinition],
    columns: Sequence[str],
    suggester: MappingSuggester | None = None,
) -> dict[str, str]:
    """Ask ``suggester`` for field id -> column suggestions and keep only valid ones."""
    if suggester is None or not fields or not columns:
        return {}
    try:
        raw = suggester.suggest(fields, columns) or {}
    except Exception as e:
        logger.warning("mapping suggestion failed: %s", e)
        return {}

    field_ids = {f.id for f in fields}
    available = set(columns)
    mapping: dict[str, str] = {}
    for field_id, column in raw.items():
        if field_id in field_ids and isinstance(column, str) and column in available:
            mapping[field_id] = column
        else:
            logger.debug("dropping suggestion %r -> %r", field_id, column)
    return mapping
