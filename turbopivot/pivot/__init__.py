"""Deterministic pivot (cross-tab) computation over in-memory columnar datasets."""
from .errors import (
    PivotError,
    UnknownColumnError,
    TypeMismatchError,
    AggregationNotApplicableError,
    EmptyValueFieldsError,
    DuplicateFieldError,
    LabelCollisionError,
    DatasetError,
    DatasetReadError,
    DatasetNotFoundError,
    UnsupportedFormatError,
)
from .models import (
    AggregationType,
    Column,
    Dataset,
    FilterCondition,
    FilterOperator,
    LogicalType,
    PivotRequest,
    PivotResult,
    ValueWithAggregation,
)
from .coercion import Scalar, coerce_scalar, coerce_list
from .filters import FilterEngine
from .grouping import GroupKeyBuilder
from .aggregators import Aggregator, CellKey, PartialAggregate, make_accumulator, merge_partials
from .builder import PivotBuilder
from .executor import PivotExecutor, compute_pivot, partition_rows
from .validator import validate_request, validate_result

__all__ = [
    "PivotError",
    "UnknownColumnError",
    "TypeMismatchError",
    "AggregationNotApplicableError",
    "EmptyValueFieldsError",
    "DuplicateFieldError",
    "LabelCollisionError",
    "DatasetError",
    "DatasetReadError",
    "DatasetNotFoundError",
    "UnsupportedFormatError",
    "AggregationType",
    "Column",
    "Dataset",
    "FilterCondition",
    "FilterOperator",
    "LogicalType",
    "PivotRequest",
    "PivotResult",
    "ValueWithAggregation",
    "Scalar",
    "coerce_scalar",
    "coerce_list",
    "FilterEngine",
    "GroupKeyBuilder",
    "Aggregator",
    "CellKey",
    "PartialAggregate",
    "make_accumulator",
    "merge_partials",
    "PivotBuilder",
    "PivotExecutor",
    "compute_pivot",
    "partition_rows",
    "validate_request",
    "validate_result",
]
