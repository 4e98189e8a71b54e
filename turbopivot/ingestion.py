"""Turn CSV, Parquet and Excel files into typed in-memory datasets.

Cells are normalized to plain Python scalars (``None`` for NaN/NaT,
``datetime`` for timestamps) so the pivot core never sees numpy or
pandas types.
"""
from __future__ import annotations

import datetime as dt
import logging
import re
from pathlib import Path
from typing import Any

import pandas as pd
import pyarrow.parquet as pq

from .pivot.coercion import parse_iso_temporal
from .pivot.errors import DatasetNotFoundError, DatasetReadError, UnsupportedFormatError
from .pivot.models import Column, Dataset, LogicalType

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".csv", ".parquet", ".xlsx"}

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}(?:[ T]\d{2}:\d{2}(?::\d{2}(?:\.(?:\d{3}|\d{6}))?)?)?$")


# ============================================================================
# File access
# ============================================================================

def _resolve_extension(path: Path) -> str:
    extension = path.suffix.lower()
    if not extension:
        raise UnsupportedFormatError(f"File has no extension: {path.name}")
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormatError(f"Unsupported file format: {extension}")
    return extension


def read_dataframe(path: str | Path) -> pd.DataFrame:
    """Read a whole file with a header row into a DataFrame."""
    file_path = Path(path)
    extension = _resolve_extension(file_path)
    if not file_path.is_file():
        raise DatasetNotFoundError(f"File not found: {file_path}")

    try:
        if extension == ".csv":
            return pd.read_csv(file_path)
        if extension == ".parquet":
            return pd.read_parquet(file_path)
        return pd.read_excel(file_path, sheet_name=0)
    except Exception as exc:
        raise DatasetReadError(f"Failed to read file {file_path.name}: {exc}") from exc


def list_columns(path: str | Path) -> list[str]:
    """Column names from the file schema, without loading the rows."""
    file_path = Path(path)
    extension = _resolve_extension(file_path)
    if not file_path.is_file():
        raise DatasetNotFoundError(f"File not found: {file_path}")

    try:
        if extension == ".parquet":
            names = pq.read_schema(file_path).names
            return [n for n in names if not n.startswith("__index_level_")]
        if extension == ".csv":
            header = pd.read_csv(file_path, nrows=0)
        else:
            header = pd.read_excel(file_path, sheet_name=0, nrows=0)
    except Exception as exc:
        raise DatasetReadError(f"Failed to read schema of {file_path.name}: {exc}") from exc
    return [str(c) for c in header.columns]


def load_dataset(path: str | Path) -> Dataset:
    df = read_dataframe(path)
    dataset = dataset_from_dataframe(df)
    logger.info(
        "Loaded %d row(s) x %d column(s) from %s",
        dataset.row_count, len(dataset.columns), Path(path).name,
    )
    return dataset


# ============================================================================
# Type inference + normalization
# ============================================================================

def _infer_logical_type(series: pd.Series) -> LogicalType:
    """Infer a LogicalType from a pandas Series.

    Float columns holding only whole numbers alongside nulls are treated as
    integer, since pandas widens integer CSV columns with gaps to float.
    """
    non_null = series.dropna()
    if non_null.empty:
        return "string"

    if pd.api.types.is_bool_dtype(series):
        return "boolean"
    if pd.api.types.is_datetime64_any_dtype(series):
        return "date"
    if pd.api.types.is_integer_dtype(series):
        return "integer"
    if pd.api.types.is_float_dtype(series):
        if series.hasnans and non_null.map(float.is_integer).all():
            return "integer"
        return "float"

    samples = non_null.tolist()
    if all(isinstance(x, bool) for x in samples):
        return "boolean"
    if all(isinstance(x, (dt.date, dt.datetime, pd.Timestamp)) for x in samples):
        return "date"
    if all(_is_iso_temporal(x) for x in samples):
        return "date"
    return "string"


def _is_iso_temporal(x: Any) -> bool:
    # Shape alone is not enough: "2024-13-45" matches but is no date.
    if not isinstance(x, str):
        return False
    text = x.strip()
    return bool(_ISO_DATE_RE.match(text)) and parse_iso_temporal(text) is not None


def _normalize_cell_value(x: Any, logical_type: LogicalType) -> Any:
    """Convert one cell to the native Python scalar for its logical type."""
    if x is None or (pd.api.types.is_scalar(x) and pd.isna(x)):
        return None

    if logical_type == "date":
        if isinstance(x, pd.Timestamp):
            return x.to_pydatetime()
        if isinstance(x, (dt.date, dt.datetime)):
            return x
        return parse_iso_temporal(str(x).strip())

    if logical_type == "boolean":
        return bool(x)
    if logical_type == "integer":
        return int(x)
    if logical_type == "float":
        return float(x)
    return str(x)


def dataset_from_dataframe(df: pd.DataFrame) -> Dataset:
    columns = []
    for name in df.columns:
        series = df[name]
        logical_type = _infer_logical_type(series)
        values = tuple(_normalize_cell_value(x, logical_type) for x in series.tolist())
        columns.append(Column(name=str(name), logical_type=logical_type, values=values))
    return Dataset(tuple(columns))
