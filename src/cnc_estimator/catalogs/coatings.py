"""Optional surface coating add-ons priced per part."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

from cnc_estimator.domain_models import to_bool, to_float, to_int
from cnc_estimator.errors import UnknownCoatingError

from .base import Catalog, CatalogError, build_catalog, read_catalog_frame, require_positive

__all__ = [
    "COATING_COLUMNS",
    "Coating",
    "CoatingCatalog",
    "active_coatings",
    "coating_catalog",
    "coating_from_row",
    "load_coating_catalog",
]

COATING_COLUMNS = ("id", "name", "price")

CoatingCatalog = Catalog["Coating"]


@dataclass(frozen=True, slots=True)
class Coating:
    id: str
    name: str
    price: float
    description: str | None = None
    is_active: bool = True
    sort_order: int = 0

    def __post_init__(self) -> None:
        require_positive(self.price, "price", allow_zero=True)


def coating_from_row(row: Mapping[str, Any]) -> Coating:
    price = to_float(row.get("price"))
    if price is None:
        raise CatalogError("column 'price' is missing or not numeric")
    description = row.get("description")
    return Coating(
        id=str(row["id"]).strip(),
        name=str(row.get("name") or row["id"]).strip(),
        price=price,
        description=str(description).strip() if description else None,
        is_active=to_bool(row.get("is_active"), default=True),
        sort_order=to_int(row.get("sort_order")) or 0,
    )


def _is_active(coating: Coating) -> bool:
    return coating.is_active


def coating_catalog(coatings: Iterable[Coating]) -> CoatingCatalog:
    return Catalog(coatings, missing_error=UnknownCoatingError, available=_is_active)


def load_coating_catalog(directory: str | Path | None = None) -> CoatingCatalog:
    frame = read_catalog_frame("coatings", COATING_COLUMNS, directory)
    return build_catalog(frame, coating_from_row, missing_error=UnknownCoatingError, available=_is_active)


def active_coatings(coatings: CoatingCatalog) -> list[Coating]:
    """Return selectable coatings ordered for display."""

    return sorted(coatings.available(), key=lambda coating: (coating.sort_order, coating.name))
