from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any

from ..models.definitions import FieldDefinition, FieldType
from ..models.processed import Severity, ValidationError
from ..models.row_data import RowData

"""Schema validator: one target field x one raw cell value.

Rules:
- unmapped field -> raw value is None
- required and (None or '') -> "required field missing", value stays None
- a registered coercer (NUMBER only) that fails -> error, raw value retained
- a registered coercer that succeeds -> coerced value
- string / date / boolean are pass-through (presence only)

TYPE_COERCERS is the extension point for stricter date/boolean handling.
"""

__all__ = [
    "REQUIRED_MESSAGE",
    "NON_NUMERIC_MESSAGE",
    "TypeCoercer",
    "TYPE_COERCERS",
    "coerce_number",
    "is_missing",
    "error_row_number",
    "check_value",
    "validate_field",
]

REQUIRED_MESSAGE = "required field missing"
NON_NUMERIC_MESSAGE = "non-numeric value"


def coerce_number(value: Any) -> int | float:
    """Coerce a raw cell value to a number.

    Numeric strings are trimmed; integral strings become int. Booleans map to
    1/0. Dates, NaN/inf and everything else are rejected.

    Raises:
        ValueError: value is not numeric
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"non-finite number: {value!r}")
        return value
    if isinstance(value, (datetime, date, time)):
        raise ValueError(f"date/time value is not numeric: {value!r}")
    if isinstance(value, str):
        text = value.strip()
        # int()/float() は '1_000' を受け付けるため除外
        if not text or "_" in text:
            raise ValueError(f"not a number: {value!r}")
        try:
            return int(text)
        except ValueError:
            pass
        number = float(text)
        if not math.isfinite(number):
            raise ValueError(f"non-finite number: {value!r}")
        return number
    raise ValueError(f"unsupported value type {type(value).__name__}")


@dataclass(frozen=True)
class TypeCoercer:
    coerce: Callable[[Any], Any]
    message: str


TYPE_COERCERS: dict[FieldType, TypeCoercer] = {
    FieldType.NUMBER: TypeCoercer(coerce_number, NON_NUMERIC_MESSAGE),
}


def is_missing(value: Any) -> bool:
    return value is None or value == ""


def error_row_number(slice_index: int, start_row: int) -> int:
    """1-based source row for the data row at ``slice_index`` below the header."""
    return slice_index + start_row + 2


def check_value(
    field: FieldDefinition,
    raw_value: Any,
    row_number: int,
    source_file: str = "",
) -> tuple[Any, ValidationError | None]:
    """Validate one raw value against one field.

    Returns:
        (value, error) where value is the coerced value, or the raw value when
        coercion failed or the type is pass-through.
    """
    if is_missing(raw_value):
        if field.required:
            return None, ValidationError(
                row=row_number,
                field=field.name,
                value=raw_value,
                message=REQUIRED_MESSAGE,
                severity=Severity.ERROR,
                source_file=source_file,
            )
        # 空文字は None に寄せない (生値をそのまま流す)
        return raw_value, None

    coercer = TYPE_COERCERS.get(field.type)
    if coercer is None:
        return raw_value, None
    try:
        return coercer.coerce(raw_value), None
    except ValueError:
        return raw_value, ValidationError(
            row=row_number,
            field=field.name,
            value=raw_value,
            message=coercer.message,
            severity=Severity.ERROR,
            source_file=source_file,
        )


def validate_field(
    field: FieldDefinition,
    record: RowData,
    mapping: Mapping[str, str],
    row_number: int | None = None,
    source_file: str = "",
) -> tuple[Any, ValidationError | None]:
    """Resolve the raw value of ``field`` through ``mapping`` then validate it."""
    column = mapping.get(field.id) or None
    raw_value = record.get(column)
    return check_value(
        field,
        raw_value,
        record.row_number if row_number is None else row_number,
        source_file,
    )
