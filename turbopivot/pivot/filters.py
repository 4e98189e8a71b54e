"""Evaluate ANDed filter conditions into a row inclusion mask."""
from __future__ import annotations

import datetime as dt
import logging
import operator
from typing import Any, Callable, Sequence

from .coercion import (
    Scalar,
    as_datetime,
    coerce_list,
    coerce_scalar,
    comparable,
    values_equal,
)
from .errors import TypeMismatchError, UnknownColumnError
from .models import (
    Column,
    Dataset,
    FilterCondition,
    FilterOperator,
    ORDERABLE_TYPES,
    RELATIONAL_OPS,
)

logger = logging.getLogger(__name__)

Predicate = Callable[[Any], bool]

_RELATIONAL: dict[FilterOperator, Callable[[Any, Any], bool]] = {
    FilterOperator.GREATER_THAN: operator.gt,
    FilterOperator.LESS_THAN: operator.lt,
    FilterOperator.GREATER_THAN_OR_EQUAL: operator.ge,
    FilterOperator.LESS_THAN_OR_EQUAL: operator.le,
}


class FilterEngine:
    """Pure function of a dataset and a list of conditions."""

    def __init__(self, dataset: Dataset) -> None:
        self._dataset = dataset

    def compile(self, conditions: Sequence[FilterCondition]) -> list[tuple[Column, Predicate]]:
        """Resolve columns and coerce literals once, before any row is scanned."""
        for cond in conditions:
            if not self._dataset.has_column(cond.column):
                raise UnknownColumnError(f"Filter column '{cond.column}' not found in dataset")

        compiled: list[tuple[Column, Predicate]] = []
        for cond in conditions:
            column = self._dataset.column(cond.column)
            compiled.append((column, compile_condition(cond, column)))
        return compiled

    def mask(self, conditions: Sequence[FilterCondition]) -> list[bool]:
        n = self._dataset.row_count
        compiled = self.compile(conditions)
        included = [True] * n
        for column, predicate in compiled:
            values = column.values
            for i in range(n):
                if included[i] and not predicate(values[i]):
                    included[i] = False
        return included

    def select(self, conditions: Sequence[FilterCondition]) -> list[int]:
        """Positional indices of rows passing every condition, in dataset order."""
        if not conditions:
            return list(range(self._dataset.row_count))
        selected = [i for i, keep in enumerate(self.mask(conditions)) if keep]
        logger.debug(
            "Filters kept %d of %d row(s)", len(selected), self._dataset.row_count,
        )
        return selected


def compile_condition(cond: FilterCondition, column: Column) -> Predicate:
    op = cond.operator
    column_type = column.logical_type

    if op == FilterOperator.IN:
        if not isinstance(cond.value, list):
            raise TypeMismatchError(
                f"Operator 'In' requires a list value for column '{column.name}'"
            )
        candidates = coerce_list(cond.value, column_type)
        return lambda v: any(values_equal(column_type, v, c) for c in candidates)

    if isinstance(cond.value, list):
        raise TypeMismatchError(
            f"Operator '{op.value}' requires a scalar value for column '{column.name}'"
        )

    if op == FilterOperator.EQUAL:
        target = coerce_scalar(cond.value, column_type)
        return lambda v: values_equal(column_type, v, target)

    if op == FilterOperator.NOT_EQUAL:
        target = coerce_scalar(cond.value, column_type)
        return lambda v: not values_equal(column_type, v, target)

    if op == FilterOperator.CONTAINS:
        if column_type != "string":
            raise TypeMismatchError(
                f"Operator 'Contains' not valid for {column_type} column '{column.name}'"
            )
        if cond.value is None:
            raise TypeMismatchError(
                f"Operator 'Contains' requires a value for column '{column.name}'"
            )
        needle = str(cond.value)
        return lambda v: isinstance(v, str) and needle in v

    if op in RELATIONAL_OPS:
        return _compile_relational(op, cond, column)

    raise TypeMismatchError(f"Unsupported operator: {op}")


def _compile_relational(op: FilterOperator, cond: FilterCondition, column: Column) -> Predicate:
    column_type = column.logical_type
    if column_type not in ORDERABLE_TYPES:
        raise TypeMismatchError(
            f"Operator '{op.value}' not valid for {column_type} column '{column.name}'"
        )

    target: Scalar = coerce_scalar(cond.value, column_type)
    if not comparable(column_type, target):
        raise TypeMismatchError(
            f"Cannot compare {column_type} column '{column.name}' "
            f"with {target.kind} value {cond.value!r}"
        )

    compare = _RELATIONAL[op]

    if column_type == "date":
        bound = as_datetime(target.value)
        return lambda v: isinstance(v, dt.date) and compare(as_datetime(v), bound)

    bound = target.value
    # Nulls and stray non-numeric cells are excluded rather than raising.
    return lambda v: (
        isinstance(v, (int, float)) and not isinstance(v, bool) and compare(v, bound)
    )
