"""Domain model value utilities and operation records."""

from .operation import Operation, OperationType, operation_from_mapping
from .values import (
    coerce_float_or_none,
    to_bool,
    to_float,
    to_int,
    to_positive_float,
)

__all__ = [
    "Operation",
    "OperationType",
    "coerce_float_or_none",
    "operation_from_mapping",
    "to_bool",
    "to_float",
    "to_int",
    "to_positive_float",
]
