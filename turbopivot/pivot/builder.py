"""Assemble merged accumulators into a row-major PivotResult."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .aggregators import CellKey, PartialAggregate
from .errors import LabelCollisionError
from .grouping import GroupKey, render_key, sorted_keys
from .models import AggregationType, PivotRequest, PivotResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValueColumn:
    """One flattened output column: a column-key crossed with a value/aggregation pair."""
    label: str
    column_key: GroupKey
    field: str
    aggregation: AggregationType


class PivotBuilder:
    """Orders keys deterministically and emits one record per row-key.

    Every record carries every value column. Buckets that received no
    contributions hold ``None`` rather than being omitted.
    """

    def __init__(
        self,
        request: PivotRequest,
        *,
        key_separator: str = "_",
        null_label: str = "null",
    ) -> None:
        self._request = request
        self._separator = key_separator
        self._null_label = null_label

    def value_label(self, column_key: GroupKey, field: str, aggregation: AggregationType) -> str:
        parts = render_key(column_key, self._null_label)
        parts.extend([field, aggregation.value])
        return self._separator.join(parts)

    def value_columns(self, column_keys: list[GroupKey]) -> list[ValueColumn]:
        return [
            ValueColumn(
                label=self.value_label(column_key, measure.field, measure.aggregation),
                column_key=column_key,
                field=measure.field,
                aggregation=measure.aggregation,
            )
            for column_key in column_keys
            for measure in self._request.values
        ]

    def _check_labels(self, value_columns: list[ValueColumn]) -> None:
        """Every flattened key must be distinct from the others and from the row fields."""
        taken = {name: f"row field '{name}'" for name in self._request.rows}
        for vc in value_columns:
            owner = taken.get(vc.label)
            if owner is not None:
                logger.warning("Flattened label %r collides with %s", vc.label, owner)
                raise LabelCollisionError(
                    f"Output column '{vc.label}' for column key "
                    f"{render_key(vc.column_key, self._null_label)} collides with {owner}; "
                    f"choose a key separator that does not occur in the data"
                )
            taken[vc.label] = f"column key {render_key(vc.column_key, self._null_label)}"

    def build(self, aggregate: PartialAggregate) -> PivotResult:
        request = self._request
        row_keys = sorted_keys(aggregate.row_keys)
        column_keys = sorted_keys(aggregate.column_keys)
        value_columns = self.value_columns(column_keys)

        self._check_labels(value_columns)

        data: list[dict[str, Any]] = []
        for row_key in row_keys:
            record: dict[str, Any] = dict(zip(request.rows, row_key))
            for vc in value_columns:
                acc = aggregate.cells.get(
                    CellKey(row_key, vc.column_key, vc.field, vc.aggregation)
                )
                record[vc.label] = acc.result() if acc is not None else None
            data.append(record)

        column_headers = (
            [render_key(key, self._null_label) for key in column_keys]
            if request.columns
            else []
        )

        return PivotResult(
            data=data,
            column_headers=column_headers,
            row_headers=list(request.rows),
        )
