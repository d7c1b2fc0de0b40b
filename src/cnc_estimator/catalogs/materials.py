"""Workpiece material reference data."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

from cnc_estimator.domain_models import to_float
from cnc_estimator.errors import UnknownMaterialError

from .base import Catalog, CatalogError, ValueRange, build_catalog, read_catalog_frame, require_positive

__all__ = [
    "DEFAULT_MAX_DEPTH_PER_PASS_MM",
    "MATERIAL_COLUMNS",
    "Material",
    "MaterialCatalog",
    "load_material_catalog",
    "material_catalog",
    "material_from_row",
]

DEFAULT_MAX_DEPTH_PER_PASS_MM = 2.0

MATERIAL_COLUMNS = (
    "id",
    "name",
    "cutting_speed_min",
    "cutting_speed_max",
    "feed_rate_min",
    "feed_rate_max",
    "taylor_n",
    "taylor_c",
)

MaterialCatalog = Catalog["Material"]


@dataclass(frozen=True, slots=True)
class Material:
    """Machinability data for one workpiece material.

    ``cutting_speed_range`` is in m/min for a carbide baseline tool and
    ``feed_rate_range`` in mm/rev.  ``taylor_n``/``taylor_c`` are the constants
    of Taylor's tool-life relation ``V * T**n = C``.
    """

    id: str
    name: str
    category: str
    hardness_range: str
    cutting_speed_range: ValueRange
    feed_rate_range: ValueRange
    taylor_n: float
    taylor_c: float
    price_per_kg: float | None = None
    max_depth_per_pass_mm: float = DEFAULT_MAX_DEPTH_PER_PASS_MM

    def __post_init__(self) -> None:
        if not (0.0 < self.taylor_n < 1.0):
            raise CatalogError(f"taylor_n must lie strictly between 0 and 1, got {self.taylor_n}")
        require_positive(self.taylor_c, "taylor_c")
        require_positive(self.max_depth_per_pass_mm, "max_depth_per_pass_mm")
        if self.price_per_kg is not None:
            require_positive(self.price_per_kg, "price_per_kg", allow_zero=True)


def material_from_row(row: Mapping[str, Any]) -> Material:
    """Build a :class:`Material` from a catalog row."""

    def number(key: str) -> float:
        value = to_float(row.get(key))
        if value is None:
            raise CatalogError(f"column {key!r} is missing or not numeric")
        return value

    depth = to_float(row.get("max_depth_per_pass_mm"))
    return Material(
        id=str(row["id"]).strip(),
        name=str(row.get("name") or row["id"]).strip(),
        category=str(row.get("category") or "").strip(),
        hardness_range=str(row.get("hardness_range") or "").strip(),
        cutting_speed_range=ValueRange(number("cutting_speed_min"), number("cutting_speed_max")),
        feed_rate_range=ValueRange(number("feed_rate_min"), number("feed_rate_max")),
        taylor_n=number("taylor_n"),
        taylor_c=number("taylor_c"),
        price_per_kg=to_float(row.get("price_per_kg")),
        max_depth_per_pass_mm=DEFAULT_MAX_DEPTH_PER_PASS_MM if depth is None else depth,
    )


def material_catalog(materials: Iterable[Material]) -> MaterialCatalog:
    return Catalog(materials, missing_error=UnknownMaterialError)


def load_material_catalog(
    directory: str | Path | None = None,
    *,
    prices_per_kg: Mapping[str, float] | None = None,
) -> MaterialCatalog:
    """Load ``materials.csv``.

    ``prices_per_kg`` overlays per-material prices maintained outside the
    catalog file (the administrative price list); ids that are not in the
    catalog are ignored.
    """

    frame = read_catalog_frame("materials", MATERIAL_COLUMNS, directory)
    if prices_per_kg:
        if "price_per_kg" not in frame.columns:
            frame["price_per_kg"] = None
        frame["price_per_kg"] = frame["price_per_kg"].astype(object)
        for material_id, price in prices_per_kg.items():
            frame.loc[frame["id"] == material_id, "price_per_kg"] = price
    return build_catalog(frame, material_from_row, missing_error=UnknownMaterialError)
