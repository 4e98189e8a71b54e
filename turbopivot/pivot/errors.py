from __future__ import annotations


class PivotError(Exception):
    """Base error class for pivot computation.

    ``code`` is the literal name sent across the JSON boundary.
    """

    code = "PivotError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class UnknownColumnError(PivotError):
    """Raised when a request references a field absent from the dataset."""

    code = "UnknownColumn"


class TypeMismatchError(PivotError):
    """Raised when a filter operator or literal is incompatible with the column type."""

    code = "TypeMismatch"


class AggregationNotApplicableError(PivotError):
    """Raised when an aggregation cannot be applied to the field's type."""

    code = "AggregationNotApplicable"


class EmptyValueFieldsError(PivotError):
    """Raised when a request has no value fields."""

    code = "EmptyValueFields"


class DuplicateFieldError(PivotError):
    """Raised when a dimension or value/aggregation pair is listed twice."""

    code = "DuplicateField"


class LabelCollisionError(PivotError):
    """Raised when two output columns flatten to the same record key."""

    code = "LabelCollision"


class DatasetError(Exception):
    """Base error class for dataset construction and ingestion."""

    code = "DatasetError"

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": str(self)}


class DatasetReadError(DatasetError):
    """Raised when a source file cannot be read or parsed."""

    code = "ReadError"


class UnsupportedFormatError(DatasetError):
    """Raised when a source file extension is not supported."""

    code = "UnsupportedFormat"


class DatasetNotFoundError(DatasetReadError):
    """Raised when the source file does not exist."""

    code = "NotFound"
