"""Operation input records for the estimation engine."""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from cnc_estimator.errors import InvalidGeometryError, InvalidParameterError

from .values import to_float, to_positive_float

__all__ = ["Operation", "OperationType", "operation_from_mapping"]


class OperationType(str, Enum):
    TURNING = "turning"
    MILLING = "milling"
    DRILLING = "drilling"
    BORING = "boring"

    @classmethod
    def parse(cls, value: Any) -> "OperationType":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        try:
            return cls(text)
        except ValueError as exc:
            raise InvalidParameterError(f"Unknown operation type: {value!r}") from exc


@dataclass(frozen=True, slots=True)
class Operation:
    """One configured machining operation of a work order.

    Lengths are millimetres.  ``material_mass_kg`` is the per-part blank mass
    estimated by the caller; when present the material cost is added to the
    operation cost.
    """

    operation_type: OperationType
    material_id: str
    tool_id: str
    machine_id: str
    diameter_mm: float
    depth_mm: float
    length_mm: float
    quantity: int = 1
    feed_override_mm_rev: float | None = None
    coating_id: str | None = None
    material_mass_kg: float | None = None
    label: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "operation_type", OperationType.parse(self.operation_type))

    def validate(self) -> None:
        """Raise :class:`InvalidGeometryError` for non-physical geometry."""

        for name in ("diameter_mm", "depth_mm", "length_mm"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
                raise InvalidGeometryError(f"{name} must be a positive number, got {value!r}")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity < 1:
            raise InvalidGeometryError(f"quantity must be an integer >= 1, got {self.quantity!r}")
        if self.feed_override_mm_rev is not None and not (
            math.isfinite(self.feed_override_mm_rev) and self.feed_override_mm_rev > 0
        ):
            raise InvalidParameterError(
                f"feed_override_mm_rev must be a positive number, got {self.feed_override_mm_rev!r}"
            )
        if self.material_mass_kg is not None and not (
            math.isfinite(self.material_mass_kg) and self.material_mass_kg >= 0
        ):
            raise InvalidParameterError(f"material_mass_kg must be >= 0, got {self.material_mass_kg!r}")

    @property
    def depth_to_diameter_ratio(self) -> float:
        return self.depth_mm / self.diameter_mm


def _required_number(data: Mapping[str, Any], *keys: str) -> float:
    for key in keys:
        if key in data and data[key] not in (None, ""):
            value = to_float(data[key])
            if value is None:
                raise InvalidGeometryError(f"{key} must be numeric, got {data[key]!r}")
            return value
    raise InvalidGeometryError(f"{keys[0]} is required")


def _quantity(raw: Any) -> int:
    if raw in (None, ""):
        return 1
    value = to_float(raw)
    if value is None or not value.is_integer():
        raise InvalidGeometryError(f"quantity must be an integer >= 1, got {raw!r}")
    return int(value)


def operation_from_mapping(data: Mapping[str, Any]) -> Operation:
    """Build an :class:`Operation` from a JSON-style mapping.

    Both snake_case and the camelCase keys used by the work order screens
    (``operationType``, ``materialId``, ``diameter`` ...) are accepted.
    """

    if not isinstance(data, Mapping):
        raise InvalidParameterError(f"Operation must be an object, got {type(data).__name__}")

    def text(*keys: str) -> str:
        for key in keys:
            value = data.get(key)
            if value not in (None, ""):
                return str(value).strip()
        return ""

    coating = text("coating_id", "coatingId")
    mass_raw = data.get("material_mass_kg", data.get("materialMassKg"))
    mass = None
    if mass_raw not in (None, ""):
        mass = to_float(mass_raw)
        if mass is None:
            raise InvalidParameterError(f"material_mass_kg must be numeric, got {mass_raw!r}")
    feed_raw = data.get("feed_override_mm_rev", data.get("feedOverride"))
    feed = None
    if feed_raw not in (None, ""):
        feed = to_positive_float(feed_raw)
        if feed is None:
            raise InvalidParameterError(f"feed_override_mm_rev must be a positive number, got {feed_raw!r}")

    return Operation(
        operation_type=OperationType.parse(text("operation_type", "operationType")),
        material_id=text("material_id", "materialId"),
        tool_id=text("tool_id", "toolId"),
        machine_id=text("machine_id", "machineId"),
        diameter_mm=_required_number(data, "diameter_mm", "diameter"),
        depth_mm=_required_number(data, "depth_mm", "depth"),
        length_mm=_required_number(data, "length_mm", "length"),
        quantity=_quantity(data.get("quantity")),
        feed_override_mm_rev=feed,
        coating_id=coating or None,
        material_mass_kg=mass,
        label=text("label", "name", "id"),
    )
