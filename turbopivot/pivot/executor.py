"""Validate, filter, scan, merge and build a pivot for one request."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from ..config import Settings, get_settings
from .aggregators import Aggregator, PartialAggregate, merge_partials
from .builder import PivotBuilder
from .filters import FilterEngine
from .grouping import GroupKeyBuilder
from .models import Dataset, PivotRequest, PivotResult
from .validator import validate_request, validate_result

logger = logging.getLogger(__name__)


class PivotExecutor:
    """Runs the FilterEngine → GroupKeyBuilder → Aggregator → PivotBuilder pipeline.

    Each call owns its accumulator maps; only the read-only dataset is shared.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    @property
    def settings(self) -> Settings:
        return self._settings

    def execute(self, dataset: Dataset, request: PivotRequest) -> PivotResult:
        validate_request(request, dataset)

        selected = FilterEngine(dataset).select(request.filters)
        if not selected:
            logger.info("No rows survived filtering; returning an empty pivot")

        key_builder = GroupKeyBuilder(dataset, request.rows, request.columns)
        aggregator = Aggregator(dataset, key_builder, request.values)
        partitions = partition_rows(selected, self._settings.partition_size)
        aggregate = self._scan(aggregator, partitions)

        builder = PivotBuilder(
            request,
            key_separator=self._settings.key_separator,
            null_label=self._settings.null_label,
        )
        result = builder.build(aggregate)
        validate_result(result, request, len(selected))

        logger.info(
            "Pivot computed: %d of %d row(s) in %d partition(s) -> %d record(s), %d column key(s)",
            len(selected), dataset.row_count, len(partitions),
            len(result.data), len(result.column_headers),
        )
        return result

    def _scan(self, aggregator: Aggregator, partitions: list[list[int]]) -> PartialAggregate:
        workers = min(self._settings.max_workers, len(partitions))
        if workers <= 1:
            return merge_partials(aggregator.scan(part) for part in partitions)

        with ThreadPoolExecutor(max_workers=workers) as pool:
            # map() yields in submission order, so the merge order is fixed.
            partials = list(pool.map(aggregator.scan, partitions))
        return merge_partials(partials)


def partition_rows(rows: list[int], partition_size: int) -> list[list[int]]:
    """Split row indices into contiguous ranges preserving original order."""
    size = max(1, partition_size)
    return [rows[start:start + size] for start in range(0, len(rows), size)]


def compute_pivot(
    dataset: Dataset,
    request: PivotRequest,
    *,
    settings: Settings | None = None,
) -> PivotResult:
    """Compute a pivot; raises a PivotError subclass when the request is rejected."""
    return PivotExecutor(settings).execute(dataset, request)
