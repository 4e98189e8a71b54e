from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Literal, Mapping, Sequence, Union

from pydantic import BaseModel, Field, model_validator

from .errors import DatasetError


LogicalType = Literal["integer", "float", "string", "boolean", "date"]

LOGICAL_TYPES: set[str] = {"integer", "float", "string", "boolean", "date"}
NUMERIC_TYPES: set[str] = {"integer", "float"}
ORDERABLE_TYPES: set[str] = {"integer", "float", "date"}


class AggregationType(str, Enum):
    SUM = "Sum"
    MEAN = "Mean"
    COUNT = "Count"
    MIN = "Min"
    MAX = "Max"
    FIRST = "First"
    LAST = "Last"
    MEDIAN = "Median"
    STD = "Std"
    VAR = "Var"


class FilterOperator(str, Enum):
    EQUAL = "Equal"
    NOT_EQUAL = "NotEqual"
    GREATER_THAN = "GreaterThan"
    LESS_THAN = "LessThan"
    GREATER_THAN_OR_EQUAL = "GreaterThanOrEqual"
    LESS_THAN_OR_EQUAL = "LessThanOrEqual"
    CONTAINS = "Contains"
    IN = "In"


NUMERIC_AGGREGATIONS: set[AggregationType] = {
    AggregationType.SUM,
    AggregationType.MEAN,
    AggregationType.MEDIAN,
    AggregationType.STD,
    AggregationType.VAR,
}
# Min/Max additionally accept strings: lexicographic order is well defined.
EXTREMUM_AGGREGATIONS: set[AggregationType] = {AggregationType.MIN, AggregationType.MAX}
EXTREMUM_TYPES: set[str] = {"integer", "float", "date", "string"}

RELATIONAL_OPS: set[FilterOperator] = {
    FilterOperator.GREATER_THAN,
    FilterOperator.LESS_THAN,
    FilterOperator.GREATER_THAN_OR_EQUAL,
    FilterOperator.LESS_THAN_OR_EQUAL,
}
EQUALITY_OPS: set[FilterOperator] = {FilterOperator.EQUAL, FilterOperator.NOT_EQUAL}


# ------------------------------------------------------------------
# In-memory columnar dataset
# ------------------------------------------------------------------

@dataclass(frozen=True)
class Column:
    """A named, typed column. ``None`` is the null value for every type."""
    name: str
    logical_type: LogicalType
    values: tuple[Any, ...]

    def __post_init__(self) -> None:
        if self.logical_type not in LOGICAL_TYPES:
            raise DatasetError(
                f"Column '{self.name}' has unknown logical type '{self.logical_type}'"
            )
        values = tuple(self.values)
        if self.logical_type == "string":
            # Mixed input inferred as string must order and compare as text.
            values = tuple(v if v is None or isinstance(v, str) else str(v) for v in values)
        object.__setattr__(self, "values", values)

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class Dataset:
    """Ordered collection of equally long columns with unique names.

    Read-only once built, so a single instance can back concurrent pivots.
    """
    columns: tuple[Column, ...]
    _by_name: dict[str, Column] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        columns = tuple(self.columns)
        object.__setattr__(self, "columns", columns)

        by_name: dict[str, Column] = {}
        for col in columns:
            if col.name in by_name:
                raise DatasetError(f"Duplicate column name '{col.name}'")
            by_name[col.name] = col

        lengths = {len(col) for col in columns}
        if len(lengths) > 1:
            raise DatasetError(
                f"Columns have differing lengths: {sorted(lengths)}"
            )
        object.__setattr__(self, "_by_name", by_name)

    @property
    def row_count(self) -> int:
        return len(self.columns[0]) if self.columns else 0

    @property
    def column_names(self) -> list[str]:
        return [col.name for col in self.columns]

    def has_column(self, name: str) -> bool:
        return name in self._by_name

    def column(self, name: str) -> Column:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(name) from None

    @classmethod
    def from_columns(
        cls,
        data: Mapping[str, Sequence[Any]],
        types: Mapping[str, LogicalType] | None = None,
    ) -> "Dataset":
        """Build a dataset from ``{name: values}``; missing types are inferred."""
        types = types or {}
        columns = [
            Column(
                name=name,
                logical_type=types.get(name) or infer_logical_type(values),
                values=tuple(values),
            )
            for name, values in data.items()
        ]
        return cls(tuple(columns))

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        types: Mapping[str, LogicalType] | None = None,
    ) -> "Dataset":
        """Build a dataset from row dicts. Keys absent from a record become nulls."""
        records = list(records)
        names: list[str] = list(types or {})
        for record in records:
            for name in record:
                if name not in names:
                    names.append(name)
        data = {name: [record.get(name) for record in records] for name in names}
        return cls.from_columns(data, types)


def infer_logical_type(values: Iterable[Any]) -> LogicalType:
    """Infer the logical type of plain Python values, ignoring nulls."""
    seen: set[str] = set()
    for value in values:
        if value is None:
            continue
        if isinstance(value, bool):
            seen.add("boolean")
        elif isinstance(value, int):
            seen.add("integer")
        elif isinstance(value, float):
            seen.add("float")
        elif isinstance(value, (dt.date, dt.datetime)):
            seen.add("date")
        else:
            seen.add("string")

    if not seen:
        return "string"
    if seen == {"integer"}:
        return "integer"
    if seen <= {"integer", "float"}:
        return "float"
    if len(seen) == 1:
        return seen.pop()  # type: ignore[return-value]
    return "string"


# ------------------------------------------------------------------
# Wire models
# ------------------------------------------------------------------

FilterScalar = Union[bool, int, float, str, None]


class FilterCondition(BaseModel):
    """Single predicate; conditions in a request are ANDed."""
    column: str
    operator: FilterOperator
    value: Union[FilterScalar, list[FilterScalar]] = None


class ValueWithAggregation(BaseModel):
    field: str
    aggregation: AggregationType


class PivotRequest(BaseModel):
    """Pivot definition sent by the UI.

    The UI posts ``null`` for unused lists; the pre-validator turns those
    back into empty lists so the validator only has one shape to check.
    """
    rows: list[str] = Field(default_factory=list)
    columns: list[str] = Field(default_factory=list)
    values: list[ValueWithAggregation] = Field(default_factory=list)
    filters: list[FilterCondition] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _coerce_nulls(cls, values: Any) -> Any:
        if isinstance(values, dict):
            for key in ("rows", "columns", "values", "filters"):
                if key in values and values[key] is None:
                    values[key] = []
        return values


class PivotResult(BaseModel):
    data: list[dict[str, Any]] = Field(default_factory=list)
    column_headers: list[list[str]] = Field(default_factory=list)
    row_headers: list[str] = Field(default_factory=list)
