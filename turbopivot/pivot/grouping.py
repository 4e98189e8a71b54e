"""Derive row-dimension and column-dimension keys for included rows."""
from __future__ import annotations

import datetime as dt
from typing import Any, Iterable, Sequence

from .coercion import as_datetime
from .models import Dataset

GroupKey = tuple[Any, ...]

# Segment ranks keep mixed-type keys totally ordered; nulls sort last.
_RANK_BOOLEAN = 0
_RANK_NUMBER = 1
_RANK_DATE = 2
_RANK_STRING = 3
_RANK_OTHER = 4
_RANK_NULL = 5


class GroupKeyBuilder:
    """Builds composite keys from each field's native scalar values.

    Nulls stay in the key as ``None`` so rows with missing dimension values
    still land in a bucket.
    """

    def __init__(self, dataset: Dataset, rows: Sequence[str], columns: Sequence[str]) -> None:
        self._row_values = [dataset.column(name).values for name in rows]
        self._column_values = [dataset.column(name).values for name in columns]

    def row_key(self, index: int) -> GroupKey:
        return tuple(values[index] for values in self._row_values)

    def column_key(self, index: int) -> GroupKey:
        return tuple(values[index] for values in self._column_values)

    def keys(self, index: int) -> tuple[GroupKey, GroupKey]:
        return self.row_key(index), self.column_key(index)


def segment_sort_key(value: Any) -> tuple[int, Any]:
    if value is None:
        return (_RANK_NULL, 0)
    if isinstance(value, bool):
        return (_RANK_BOOLEAN, value)
    if isinstance(value, (int, float)):
        return (_RANK_NUMBER, value)
    if isinstance(value, dt.date):
        return (_RANK_DATE, as_datetime(value))
    if isinstance(value, str):
        return (_RANK_STRING, value)
    return (_RANK_OTHER, repr(value))


def key_sort_key(key: GroupKey) -> tuple[tuple[int, Any], ...]:
    return tuple(segment_sort_key(value) for value in key)


def sorted_keys(keys: Iterable[GroupKey]) -> list[GroupKey]:
    """Ascending lexicographic order over key segments, independent of scan order."""
    return sorted(keys, key=key_sort_key)


def render_segment(value: Any, null_label: str = "null") -> str:
    if value is None:
        return null_label
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    return str(value)


def render_key(key: GroupKey, null_label: str = "null") -> list[str]:
    return [render_segment(value, null_label) for value in key]
