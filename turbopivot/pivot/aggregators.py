"""Per-cell running statistics with associative, commutative merges.

Every accumulator skips nulls and reports ``None`` ("no data") until it
has received at least one non-null contribution. ``merge`` never mutates
either operand, so partial maps built over disjoint row ranges can be
combined in any grouping and give the single-pass answer.

Key invariant: Std/Var use Welford updates and Chan's pairwise
combination; a plain sum-of-squares formula loses precision on
large-magnitude values.
"""
from __future__ import annotations

import datetime as dt
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, NamedTuple, Sequence

from .coercion import as_datetime
from .grouping import GroupKey, GroupKeyBuilder
from .models import AggregationType, Dataset, ValueWithAggregation

logger = logging.getLogger(__name__)


class CellKey(NamedTuple):
    row_key: GroupKey
    column_key: GroupKey
    field: str
    aggregation: AggregationType


# ------------------------------------------------------------------
# Accumulators
# ------------------------------------------------------------------

class Accumulator:
    aggregation: AggregationType

    def add(self, value: Any, row_index: int) -> None:
        raise NotImplementedError

    def merge(self, other: "Accumulator") -> "Accumulator":
        raise NotImplementedError

    def result(self) -> Any:
        raise NotImplementedError


class SumAccumulator(Accumulator):
    aggregation = AggregationType.SUM

    def __init__(self, total: Any = 0, count: int = 0) -> None:
        self.total = total
        self.count = count

    def add(self, value: Any, row_index: int) -> None:
        self.total += value
        self.count += 1

    def merge(self, other: "SumAccumulator") -> "SumAccumulator":
        return SumAccumulator(self.total + other.total, self.count + other.count)

    def result(self) -> Any:
        return self.total if self.count else None


class CountAccumulator(Accumulator):
    """Counts non-null contributions, not rows in the bucket."""
    aggregation = AggregationType.COUNT

    def __init__(self, count: int = 0) -> None:
        self.count = count

    def add(self, value: Any, row_index: int) -> None:
        self.count += 1

    def merge(self, other: "CountAccumulator") -> "CountAccumulator":
        return CountAccumulator(self.count + other.count)

    def result(self) -> int | None:
        return self.count if self.count else None


class MeanAccumulator(Accumulator):
    """Keeps (sum, count) so partial means merge without pre-division."""
    aggregation = AggregationType.MEAN

    def __init__(self, total: Any = 0, count: int = 0) -> None:
        self.total = total
        self.count = count

    def add(self, value: Any, row_index: int) -> None:
        self.total += value
        self.count += 1

    def merge(self, other: "MeanAccumulator") -> "MeanAccumulator":
        return MeanAccumulator(self.total + other.total, self.count + other.count)

    def result(self) -> float | None:
        return self.total / self.count if self.count else None


def _ordering(value: Any) -> Any:
    if isinstance(value, dt.date):
        return as_datetime(value)
    return value


class _ExtremumAccumulator(Accumulator):
    _prefer_larger = False

    def __init__(self, value: Any = None, seen: bool = False) -> None:
        self.value = value
        self.seen = seen

    def _wins(self, candidate: Any) -> bool:
        if not self.seen:
            return True
        if self._prefer_larger:
            return _ordering(candidate) > _ordering(self.value)
        return _ordering(candidate) < _ordering(self.value)

    def add(self, value: Any, row_index: int) -> None:
        if self._wins(value):
            self.value = value
            self.seen = True

    def merge(self, other: "_ExtremumAccumulator") -> "_ExtremumAccumulator":
        merged = type(self)(self.value, self.seen)
        if other.seen:
            merged.add(other.value, -1)
        return merged

    def result(self) -> Any:
        return self.value if self.seen else None


class MinAccumulator(_ExtremumAccumulator):
    aggregation = AggregationType.MIN


class MaxAccumulator(_ExtremumAccumulator):
    aggregation = AggregationType.MAX
    _prefer_larger = True


class _PositionalAccumulator(Accumulator):
    """Remembers the contribution at the earliest (or latest) original row index."""
    _prefer_later = False

    def __init__(self, value: Any = None, row_index: int | None = None) -> None:
        self.value = value
        self.row_index = row_index

    def add(self, value: Any, row_index: int) -> None:
        if self.row_index is None:
            self.value, self.row_index = value, row_index
        elif self._prefer_later and row_index > self.row_index:
            self.value, self.row_index = value, row_index
        elif not self._prefer_later and row_index < self.row_index:
            self.value, self.row_index = value, row_index

    def merge(self, other: "_PositionalAccumulator") -> "_PositionalAccumulator":
        merged = type(self)(self.value, self.row_index)
        if other.row_index is not None:
            merged.add(other.value, other.row_index)
        return merged

    def result(self) -> Any:
        return self.value if self.row_index is not None else None


class FirstAccumulator(_PositionalAccumulator):
    aggregation = AggregationType.FIRST


class LastAccumulator(_PositionalAccumulator):
    aggregation = AggregationType.LAST
    _prefer_later = True


class MedianAccumulator(Accumulator):
    """Exact median; retains every contribution until the result is read."""
    aggregation = AggregationType.MEDIAN

    def __init__(self, values: list[Any] | None = None) -> None:
        self.values = values if values is not None else []

    def add(self, value: Any, row_index: int) -> None:
        self.values.append(value)

    def merge(self, other: "MedianAccumulator") -> "MedianAccumulator":
        return MedianAccumulator(self.values + other.values)

    def result(self) -> Any:
        n = len(self.values)
        if n == 0:
            return None
        ordered = sorted(self.values)
        mid = n // 2
        if n % 2:
            return ordered[mid]
        return (ordered[mid - 1] + ordered[mid]) / 2


class VarianceAccumulator(Accumulator):
    """Welford running (count, mean, M2); sample variance with ddof=1."""
    aggregation = AggregationType.VAR

    def __init__(self, count: int = 0, mean: float = 0.0, m2: float = 0.0) -> None:
        self.count = count
        self.mean = mean
        self.m2 = m2

    def add(self, value: Any, row_index: int) -> None:
        self.count += 1
        delta = value - self.mean
        self.mean += delta / self.count
        self.m2 += delta * (value - self.mean)

    def merge(self, other: "VarianceAccumulator") -> "VarianceAccumulator":
        if other.count == 0:
            return type(self)(self.count, self.mean, self.m2)
        if self.count == 0:
            return type(self)(other.count, other.mean, other.m2)
        count = self.count + other.count
        delta = other.mean - self.mean
        mean = self.mean + delta * other.count / count
        m2 = self.m2 + other.m2 + delta * delta * self.count * other.count / count
        return type(self)(count, mean, m2)

    def variance(self) -> float | None:
        # A single contribution has no sample variance.
        if self.count < 2:
            return None
        return max(self.m2, 0.0) / (self.count - 1)

    def result(self) -> float | None:
        return self.variance()


class StdAccumulator(VarianceAccumulator):
    aggregation = AggregationType.STD

    def result(self) -> float | None:
        variance = self.variance()
        return math.sqrt(variance) if variance is not None else None


ACCUMULATORS: dict[AggregationType, type[Accumulator]] = {
    AggregationType.SUM: SumAccumulator,
    AggregationType.MEAN: MeanAccumulator,
    AggregationType.COUNT: CountAccumulator,
    AggregationType.MIN: MinAccumulator,
    AggregationType.MAX: MaxAccumulator,
    AggregationType.FIRST: FirstAccumulator,
    AggregationType.LAST: LastAccumulator,
    AggregationType.MEDIAN: MedianAccumulator,
    AggregationType.STD: StdAccumulator,
    AggregationType.VAR: VarianceAccumulator,
}


def make_accumulator(aggregation: AggregationType) -> Accumulator:
    return ACCUMULATORS[aggregation]()


# ------------------------------------------------------------------
# Partial maps
# ------------------------------------------------------------------

@dataclass
class PartialAggregate:
    """Accumulators for one row range, keyed by canonical ``CellKey``."""
    cells: dict[CellKey, Accumulator] = field(default_factory=dict)
    rows_scanned: int = 0

    def merge(self, other: "PartialAggregate") -> "PartialAggregate":
        merged = dict(self.cells)
        for key, acc in other.cells.items():
            existing = merged.get(key)
            merged[key] = acc if existing is None else existing.merge(acc)
        return PartialAggregate(merged, self.rows_scanned + other.rows_scanned)

    @property
    def row_keys(self) -> set[GroupKey]:
        return {key.row_key for key in self.cells}

    @property
    def column_keys(self) -> set[GroupKey]:
        return {key.column_key for key in self.cells}


def merge_partials(partials: Iterable[PartialAggregate]) -> PartialAggregate:
    merged = PartialAggregate()
    for partial in partials:
        merged = merged.merge(partial)
    return merged


class Aggregator:
    """Single pass over filtered rows, updating every accumulator bound to each bucket."""

    def __init__(
        self,
        dataset: Dataset,
        key_builder: GroupKeyBuilder,
        values: Sequence[ValueWithAggregation],
    ) -> None:
        self._keys = key_builder
        grouped: dict[str, list[AggregationType]] = {}
        for measure in values:
            grouped.setdefault(measure.field, []).append(measure.aggregation)
        self._bindings = [
            (dataset.column(name).values, name, tuple(aggregations))
            for name, aggregations in grouped.items()
        ]

    def scan(self, row_indices: Iterable[int]) -> PartialAggregate:
        cells: dict[CellKey, Accumulator] = {}
        scanned = 0
        for i in row_indices:
            scanned += 1
            row_key, column_key = self._keys.keys(i)
            for values, name, aggregations in self._bindings:
                value = values[i]
                for aggregation in aggregations:
                    key = CellKey(row_key, column_key, name, aggregation)
                    acc = cells.get(key)
                    if acc is None:
                        acc = cells[key] = make_accumulator(aggregation)
                    if value is not None:
                        acc.add(value, i)
        logger.debug("Scanned %d row(s) into %d cell(s)", scanned, len(cells))
        return PartialAggregate(cells, scanned)
