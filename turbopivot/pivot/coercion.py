"""Normalize UI filter literals into tagged scalars.

Coercion never fails: anything that is not a number, a boolean literal or
(for temporal targets) an ISO date falls through to a string.
"""
from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass
from typing import Any, Literal

from .models import LogicalType

ScalarKind = Literal["integer", "float", "boolean", "string", "date", "null"]

_NUMERIC_KINDS = {"integer", "float"}


@dataclass(frozen=True)
class Scalar:
    kind: ScalarKind
    value: Any

    @property
    def is_numeric(self) -> bool:
        return self.kind in _NUMERIC_KINDS


NULL = Scalar("null", None)


def coerce_scalar(raw: Any, target_type: LogicalType | None = None) -> Scalar:
    """Coerce one literal: integer, then float, then boolean literal, else string.

    Text aimed at a string column is kept verbatim so codes like ``"007"``
    still match.
    """
    if raw is None:
        return NULL
    if isinstance(raw, bool):
        return Scalar("boolean", raw)
    if isinstance(raw, int):
        return Scalar("integer", raw)
    if isinstance(raw, float):
        return Scalar("float", raw)
    if isinstance(raw, (dt.date, dt.datetime)):
        return Scalar("date", raw)

    text = str(raw)
    if target_type == "string":
        return Scalar("string", text)
    stripped = text.strip()

    try:
        return Scalar("integer", int(stripped))
    except ValueError:
        pass

    try:
        number = float(stripped)
    except ValueError:
        number = None
    if number is not None and math.isfinite(number):
        return Scalar("float", number)

    lowered = stripped.lower()
    if lowered == "true":
        return Scalar("boolean", True)
    if lowered == "false":
        return Scalar("boolean", False)

    if target_type == "date":
        parsed = parse_iso_temporal(stripped)
        if parsed is not None:
            return Scalar("date", parsed)

    return Scalar("string", text)


def coerce_list(raw: Any, target_type: LogicalType | None = None) -> list[Scalar]:
    """Coerce every element independently; the result may mix kinds."""
    return [coerce_scalar(item, target_type) for item in raw]


def parse_iso_temporal(text: str) -> dt.date | dt.datetime | None:
    try:
        if len(text) == 10:
            return dt.date.fromisoformat(text)
        return dt.datetime.fromisoformat(text)
    except ValueError:
        return None


def as_datetime(value: dt.date | dt.datetime) -> dt.datetime:
    """Lift dates onto the naive datetime axis so mixed temporal values compare.

    Aware datetimes are converted to UTC first.
    """
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            return value.astimezone(dt.timezone.utc).replace(tzinfo=None)
        return value
    return dt.datetime(value.year, value.month, value.day)


def values_equal(left_kind: ScalarKind, left: Any, right: Scalar) -> bool:
    """Type-aware equality: same kind only, except numeric vs numeric."""
    if left_kind == "null" or left is None:
        return right.kind == "null"
    if right.kind == "null":
        return False
    if left_kind in _NUMERIC_KINDS and right.is_numeric:
        return left == right.value
    if left_kind != right.kind:
        return False
    if left_kind == "date":
        return as_datetime(left) == as_datetime(right.value)
    return left == right.value


def comparable(column_type: LogicalType, scalar: Scalar) -> bool:
    """True when ``scalar`` can be ordered against values of ``column_type``."""
    if column_type in _NUMERIC_KINDS:
        return scalar.is_numeric
    if column_type == "date":
        return scalar.kind == "date"
    return False
