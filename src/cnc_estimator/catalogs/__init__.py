"""Read-only reference catalogs consumed by the estimation engine."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

from cnc_estimator.config import RESOURCE_DIR, catalog_dir_from_env
from cnc_estimator.domain_models import to_float

from .base import Catalog, CatalogError, ValueRange
from .coatings import Coating, CoatingCatalog, active_coatings, coating_catalog, load_coating_catalog
from .machines import (
    Machine,
    MachineCatalog,
    MachineType,
    load_machine_catalog,
    machine_catalog,
    machines_for_operation,
)
from .materials import Material, MaterialCatalog, load_material_catalog, material_catalog
from .tools import Tool, ToolCatalog, load_tool_catalog, tool_catalog

__all__ = [
    "Catalog",
    "CatalogError",
    "CatalogSnapshot",
    "Coating",
    "CoatingCatalog",
    "Machine",
    "MachineCatalog",
    "MachineType",
    "Material",
    "MaterialCatalog",
    "Tool",
    "ToolCatalog",
    "ValueRange",
    "active_coatings",
    "coating_catalog",
    "load_catalog_snapshot",
    "load_coating_catalog",
    "load_machine_catalog",
    "load_material_catalog",
    "load_tool_catalog",
    "machine_catalog",
    "machines_for_operation",
    "material_catalog",
    "tool_catalog",
]


def _empty_coatings() -> CoatingCatalog:
    return coating_catalog(())


@dataclass(frozen=True)
class CatalogSnapshot:
    """A consistent set of catalogs taken before a calculation batch."""

    materials: MaterialCatalog
    tools: ToolCatalog
    machines: MachineCatalog
    coatings: CoatingCatalog = field(default_factory=_empty_coatings)


@lru_cache(maxsize=8)
def _load_snapshot(directory: str, prices: tuple[tuple[str, float], ...] = ()) -> CatalogSnapshot:
    return CatalogSnapshot(
        materials=load_material_catalog(directory, prices_per_kg=dict(prices)),
        tools=load_tool_catalog(directory),
        machines=load_machine_catalog(directory),
        coatings=load_coating_catalog(directory),
    )


def _price_key(prices_per_kg: Mapping[str, Any] | None) -> tuple[tuple[str, float], ...]:
    if not prices_per_kg:
        return ()
    if not isinstance(prices_per_kg, Mapping):
        raise CatalogError(f"Material prices must map ids to prices, got {type(prices_per_kg).__name__}")
    key = []
    for material_id, raw in prices_per_kg.items():
        price = to_float(raw)
        if price is None or not math.isfinite(price) or price < 0:
            raise CatalogError(f"Price per kg for {material_id!r} must be a number >= 0, got {raw!r}")
        key.append((str(material_id), price))
    return tuple(sorted(key))


def load_catalog_snapshot(
    directory: str | Path | None = None,
    *,
    prices_per_kg: Mapping[str, Any] | None = None,
    reload: bool = False,
) -> CatalogSnapshot:
    """Return the catalogs stored in ``directory``.

    Falls back to ``CNC_ESTIMATOR_CATALOG_DIR`` and then to the bundled
    reference data.  ``prices_per_kg`` is the material price list kept
    outside the catalog files; see :func:`load_material_catalog`.
    Snapshots are immutable, so cached instances are shared.
    """

    if directory is None:
        directory = catalog_dir_from_env() or RESOURCE_DIR
    key = str(Path(directory).expanduser().resolve())
    prices = _price_key(prices_per_kg)
    if reload:
        _load_snapshot.cache_clear()
    return _load_snapshot(key, prices)
