"""Cutting tool grades relative to a carbide baseline."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

from cnc_estimator.domain_models import to_float
from cnc_estimator.errors import UnknownToolError

from .base import Catalog, CatalogError, build_catalog, read_catalog_frame, require_positive

__all__ = ["TOOL_COLUMNS", "Tool", "ToolCatalog", "load_tool_catalog", "tool_catalog", "tool_from_row"]

TOOL_COLUMNS = ("id", "name", "speed_multiplier")

ToolCatalog = Catalog["Tool"]


@dataclass(frozen=True, slots=True)
class Tool:
    """A tool grade.

    ``speed_multiplier`` scales the material's baseline cutting speed (HSS is
    slower than carbide, ceramics faster).  ``depth_factor`` scales the
    material's single-pass depth capacity.
    """

    id: str
    name: str
    speed_multiplier: float
    depth_factor: float = 1.0

    def __post_init__(self) -> None:
        require_positive(self.speed_multiplier, "speed_multiplier")
        require_positive(self.depth_factor, "depth_factor")


def tool_from_row(row: Mapping[str, Any]) -> Tool:
    multiplier = to_float(row.get("speed_multiplier"))
    if multiplier is None:
        raise CatalogError("column 'speed_multiplier' is missing or not numeric")
    depth_factor = to_float(row.get("depth_factor"))
    return Tool(
        id=str(row["id"]).strip(),
        name=str(row.get("name") or row["id"]).strip(),
        speed_multiplier=multiplier,
        depth_factor=1.0 if depth_factor is None else depth_factor,
    )


def tool_catalog(tools: Iterable[Tool]) -> ToolCatalog:
    return Catalog(tools, missing_error=UnknownToolError)


def load_tool_catalog(directory: str | Path | None = None) -> ToolCatalog:
    frame = read_catalog_frame("tools", TOOL_COLUMNS, directory)
    return build_catalog(frame, tool_from_row, missing_error=UnknownToolError)
