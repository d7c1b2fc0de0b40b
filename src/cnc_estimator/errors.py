"""Typed failures raised by the estimation engine."""

from __future__ import annotations

__all__ = [
    "CatalogLookupError",
    "EstimationError",
    "InvalidGeometryError",
    "InvalidParameterError",
    "UnknownCoatingError",
    "UnknownMachineError",
    "UnknownMaterialError",
    "UnknownToolError",
]


class EstimationError(ValueError):
    """Base class for every failure reported for a single operation."""

    code = "estimation_error"


class CatalogLookupError(EstimationError):
    """Raised when an operation references an id missing from a catalog."""

    code = "unknown_record"
    kind = "record"

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(f"Unknown {self.kind} id: {record_id!r}")


class UnknownMaterialError(CatalogLookupError):
    code = "unknown_material"
    kind = "material"


class UnknownToolError(CatalogLookupError):
    code = "unknown_tool"
    kind = "tool"


class UnknownMachineError(CatalogLookupError):
    code = "unknown_machine"
    kind = "machine"


class UnknownCoatingError(CatalogLookupError):
    code = "unknown_coating"
    kind = "coating"


class InvalidGeometryError(EstimationError):
    """Raised when operation geometry or quantity is not physically valid."""

    code = "invalid_geometry"


class InvalidParameterError(EstimationError):
    """Raised when a derived speed, feed or tool life is non-positive or non-finite."""

    code = "invalid_parameter"
