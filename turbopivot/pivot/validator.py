"""Validate pivot requests against the dataset and sanity-check results."""
from __future__ import annotations

import logging

from .errors import (
    AggregationNotApplicableError,
    DuplicateFieldError,
    EmptyValueFieldsError,
    TypeMismatchError,
    UnknownColumnError,
)
from .models import (
    AggregationType,
    Dataset,
    EXTREMUM_AGGREGATIONS,
    EXTREMUM_TYPES,
    FilterCondition,
    FilterOperator,
    NUMERIC_AGGREGATIONS,
    NUMERIC_TYPES,
    ORDERABLE_TYPES,
    PivotRequest,
    PivotResult,
    RELATIONAL_OPS,
)

logger = logging.getLogger(__name__)


def validate_request(request: PivotRequest, dataset: Dataset) -> None:
    """Check request structure against the dataset schema before any scan.

    Raises a PivotError subclass on the first violation.
    """
    if not request.values:
        raise EmptyValueFieldsError("Pivot request has no value fields")

    for name in request.rows:
        _require_column(dataset, name, "Row field")
    for name in request.columns:
        _require_column(dataset, name, "Column field")
    for measure in request.values:
        _require_column(dataset, measure.field, "Value field")
    for filt in request.filters:
        _require_column(dataset, filt.column, "Filter column")

    dimensions = [*request.rows, *request.columns]
    seen: set[str] = set()
    for name in dimensions:
        if name in seen:
            raise DuplicateFieldError(f"Field '{name}' is used more than once in rows/columns")
        seen.add(name)

    pairs: set[tuple[str, AggregationType]] = set()
    for measure in request.values:
        pair = (measure.field, measure.aggregation)
        if pair in pairs:
            raise DuplicateFieldError(
                f"Value field '{measure.field}' is requested twice with '{measure.aggregation.value}'"
            )
        pairs.add(pair)
        _validate_aggregation(measure.aggregation, dataset.column(measure.field).logical_type, measure.field)

    for filt in request.filters:
        _validate_operator_type_compat(filt, dataset.column(filt.column).logical_type)


def _require_column(dataset: Dataset, name: str, role: str) -> None:
    if not dataset.has_column(name):
        raise UnknownColumnError(f"{role} '{name}' not found in dataset")


def _validate_aggregation(aggregation: AggregationType, logical_type: str, field: str) -> None:
    if aggregation in NUMERIC_AGGREGATIONS and logical_type not in NUMERIC_TYPES:
        raise AggregationNotApplicableError(
            f"Aggregation '{aggregation.value}' requires a numeric column, "
            f"but '{field}' is '{logical_type}'"
        )
    if aggregation in EXTREMUM_AGGREGATIONS and logical_type not in EXTREMUM_TYPES:
        raise AggregationNotApplicableError(
            f"Aggregation '{aggregation.value}' requires an orderable column, "
            f"but '{field}' is '{logical_type}'"
        )


def _validate_operator_type_compat(filt: FilterCondition, logical_type: str) -> None:
    op = filt.operator

    if op in RELATIONAL_OPS and logical_type not in ORDERABLE_TYPES:
        raise TypeMismatchError(
            f"Operator '{op.value}' not valid for {logical_type} column '{filt.column}'"
        )

    if op == FilterOperator.CONTAINS and logical_type != "string":
        raise TypeMismatchError(
            f"Operator 'Contains' not valid for {logical_type} column '{filt.column}'"
        )

    if (op == FilterOperator.IN) != isinstance(filt.value, list):
        expected = "a list" if op == FilterOperator.IN else "a scalar"
        raise TypeMismatchError(
            f"Operator '{op.value}' requires {expected} value for column '{filt.column}'"
        )


def validate_result(result: PivotResult, request: PivotRequest, filtered_rows: int) -> None:
    """Sanity-check the built result.

    Logs warnings rather than raising, since the result is already computed.
    """
    if not result.data:
        return

    column_keys = len(result.column_headers) if request.columns else 1
    expected = len(request.rows) + column_keys * len(request.values)
    for record in result.data:
        if len(record) != expected:
            logger.warning(
                "Pivot record has %d entries, expected %d (%d row field(s) + %d column key(s) x %d value(s))",
                len(record), expected, len(request.rows), column_keys, len(request.values),
            )
            break

    count_labels = [
        label for label in result.data[0]
        if label not in request.rows and label.endswith(AggregationType.COUNT.value)
    ]
    for label in count_labels:
        total = sum(record.get(label) or 0 for record in result.data)
        if total > filtered_rows:
            logger.warning(
                "Count column %r totals %s, exceeding filtered row count %s",
                label, total, filtered_rows,
            )
