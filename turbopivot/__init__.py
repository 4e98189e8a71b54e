"""turbopivot: fast pivot tables over CSV, Parquet and Excel data."""
from .pivot import (
    AggregationType,
    Dataset,
    FilterCondition,
    FilterOperator,
    PivotError,
    PivotRequest,
    PivotResult,
    ValueWithAggregation,
    compute_pivot,
)

__version__ = "0.1.0"

__all__ = [
    "AggregationType",
    "Dataset",
    "FilterCondition",
    "FilterOperator",
    "PivotError",
    "PivotRequest",
    "PivotResult",
    "ValueWithAggregation",
    "compute_pivot",
]
