"""Machine park capability and rate records."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping

from cnc_estimator.domain_models import to_bool, to_float, to_int
from cnc_estimator.errors import UnknownMachineError

from .base import Catalog, CatalogError, build_catalog, read_catalog_frame, require_positive

__all__ = [
    "MACHINE_COLUMNS",
    "Machine",
    "MachineCatalog",
    "MachineType",
    "OPERATIONS_BY_MACHINE_TYPE",
    "load_machine_catalog",
    "machine_catalog",
    "machine_from_row",
    "machines_for_operation",
]

MACHINE_COLUMNS = ("id", "code", "type", "hourly_rate")


class MachineType(str, Enum):
    TURNING = "turning"
    MILLING_4AXIS = "milling-4axis"
    MILLING_5AXIS = "milling-5axis"


OPERATIONS_BY_MACHINE_TYPE: Mapping[MachineType, frozenset[str]] = {
    MachineType.TURNING: frozenset({"turning", "boring", "drilling"}),
    MachineType.MILLING_4AXIS: frozenset({"milling", "drilling", "boring"}),
    MachineType.MILLING_5AXIS: frozenset({"milling", "drilling", "boring"}),
}

MachineCatalog = Catalog["Machine"]


@dataclass(frozen=True, slots=True)
class Machine:
    id: str
    code: str
    type: MachineType
    hourly_rate: float
    max_rpm: float | None = None
    power_kw: float | None = None
    max_diameter_mm: float | None = None
    travel_x_mm: float | None = None
    travel_y_mm: float | None = None
    travel_z_mm: float | None = None
    is_active: bool = True
    label: str = ""
    brand: str = ""
    model: str = ""
    year: int | None = None
    sort_order: int = 0

    def __post_init__(self) -> None:
        require_positive(self.hourly_rate, "hourly_rate", allow_zero=True)
        for name in ("max_rpm", "power_kw", "max_diameter_mm", "travel_x_mm", "travel_y_mm", "travel_z_mm"):
            value = getattr(self, name)
            if value is not None:
                require_positive(value, name)

    @property
    def display_label(self) -> str:
        return self.label or self.code

    def supports(self, operation_type: str) -> bool:
        return operation_type in OPERATIONS_BY_MACHINE_TYPE[self.type]


def machine_from_row(row: Mapping[str, Any]) -> Machine:
    raw_type = str(row.get("type") or "").strip().lower()
    try:
        machine_type = MachineType(raw_type)
    except ValueError as exc:
        raise CatalogError(f"unknown machine type {raw_type!r}") from exc

    hourly_rate = to_float(row.get("hourly_rate"))
    if hourly_rate is None:
        minute_rate = to_float(row.get("minute_rate"))
        if minute_rate is None:
            raise CatalogError("column 'hourly_rate' is missing or not numeric")
        hourly_rate = minute_rate * 60.0

    return Machine(
        id=str(row["id"]).strip(),
        code=str(row.get("code") or row["id"]).strip(),
        type=machine_type,
        hourly_rate=hourly_rate,
        max_rpm=to_float(row.get("max_rpm")),
        power_kw=to_float(row.get("power_kw")),
        max_diameter_mm=to_float(row.get("max_diameter_mm")),
        travel_x_mm=to_float(row.get("travel_x_mm")),
        travel_y_mm=to_float(row.get("travel_y_mm")),
        travel_z_mm=to_float(row.get("travel_z_mm")),
        is_active=to_bool(row.get("is_active"), default=True),
        label=str(row.get("label") or "").strip(),
        brand=str(row.get("brand") or "").strip(),
        model=str(row.get("model") or "").strip(),
        year=to_int(row.get("year")),
        sort_order=to_int(row.get("sort_order")) or 0,
    )


def _is_active(machine: Machine) -> bool:
    return machine.is_active


def machine_catalog(machines: Iterable[Machine]) -> MachineCatalog:
    return Catalog(machines, missing_error=UnknownMachineError, available=_is_active)


def load_machine_catalog(directory: str | Path | None = None) -> MachineCatalog:
    frame = read_catalog_frame("machines", MACHINE_COLUMNS, directory)
    return build_catalog(frame, machine_from_row, missing_error=UnknownMachineError, available=_is_active)


def machines_for_operation(machines: MachineCatalog, operation_type: str) -> list[Machine]:
    """Return active machines able to run ``operation_type``, by ``sort_order``."""

    eligible = [machine for machine in machines.available() if machine.supports(operation_type)]
    return sorted(eligible, key=lambda machine: (machine.sort_order, machine.code))
