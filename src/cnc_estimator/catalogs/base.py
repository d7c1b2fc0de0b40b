"""Shared catalog container and CSV loading helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Generic, Iterable, Iterator, Protocol, Sequence, TypeVar

import pandas as pd

from cnc_estimator.config import RESOURCE_DIR, ConfigError, get_logger
from cnc_estimator.errors import CatalogLookupError

__all__ = [
    "Catalog",
    "CatalogError",
    "ValueRange",
    "build_catalog",
    "read_catalog_frame",
    "require_positive",
]

log = get_logger("catalogs")


class CatalogError(ConfigError):
    """Raised when catalog reference data is missing or violates its invariants."""


def require_positive(value: float | None, label: str, *, allow_zero: bool = False) -> float:
    """Return ``value`` when it is a finite positive number, else raise :class:`CatalogError`."""

    if value is None or not math.isfinite(value):
        raise CatalogError(f"{label} must be a finite number, got {value!r}")
    if value < 0 or (value == 0 and not allow_zero):
        bound = ">= 0" if allow_zero else "> 0"
        raise CatalogError(f"{label} must be {bound}, got {value}")
    return float(value)


@dataclass(frozen=True, slots=True)
class ValueRange:
    """Closed ``[min, max]`` interval of an empirical machining parameter."""

    min: float
    max: float

    def __post_init__(self) -> None:
        require_positive(self.min, "range minimum")
        require_positive(self.max, "range maximum")
        if self.min > self.max:
            raise CatalogError(f"range minimum {self.min} exceeds maximum {self.max}")

    @property
    def midpoint(self) -> float:
        return (self.min + self.max) / 2.0


class _Record(Protocol):
    @property
    def id(self) -> str: ...


RecordT = TypeVar("RecordT", bound=_Record)


class Catalog(Generic[RecordT]):
    """Immutable id-indexed collection of reference records.

    Lookups are total: :meth:`get` returns ``None`` for ids that are missing or
    not currently available, and :meth:`require` raises the catalog's typed
    lookup error instead.
    """

    __slots__ = ("_records", "_missing_error", "_available")

    def __init__(
        self,
        records: Iterable[RecordT],
        *,
        missing_error: type[CatalogLookupError],
        available: Callable[[RecordT], bool] | None = None,
    ) -> None:
        index: dict[str, RecordT] = {}
        for record in records:
            if record.id in index:
                raise CatalogError(f"Duplicate {missing_error.kind} id in catalog: {record.id!r}")
            index[record.id] = record
        self._records = MappingProxyType(index)
        self._missing_error = missing_error
        self._available = available

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[RecordT]:
        return iter(self._records.values())

    def __contains__(self, record_id: object) -> bool:
        return isinstance(record_id, str) and self.get(record_id) is not None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._missing_error.kind}, {len(self)} records)"

    def _is_available(self, record: RecordT) -> bool:
        return self._available is None or self._available(record)

    def get(self, record_id: str) -> RecordT | None:
        record = self._records.get(record_id)
        if record is None or not self._is_available(record):
            return None
        return record

    def require(self, record_id: str) -> RecordT:
        record = self.get(record_id)
        if record is None:
            raise self._missing_error(record_id)
        return record

    def available(self) -> tuple[RecordT, ...]:
        """Return the records that participate in selection, in catalog order."""

        return tuple(record for record in self._records.values() if self._is_available(record))


def read_catalog_frame(
    name: str,
    required_columns: Sequence[str],
    directory: str | Path | None = None,
) -> pd.DataFrame:
    """Read ``<name>.csv`` from ``directory`` (or the bundled resources)."""

    base = Path(directory) if directory is not None else RESOURCE_DIR
    path = base / f"{name}.csv"
    if not path.is_file():
        raise CatalogError(f"Catalog file not found: {path}")

    try:
        frame = pd.read_csv(path, dtype={"id": str}, skipinitialspace=True)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise CatalogError(f"Malformed catalog file {path.name}: {exc}") from exc

    frame.columns = [str(column).strip().lower() for column in frame.columns]
    missing = [column for column in required_columns if column not in frame.columns]
    if missing:
        raise CatalogError(f"Catalog {path.name} is missing columns: {', '.join(missing)}")

    log.debug("Loaded %d rows from %s", len(frame), path)
    return frame


def _records(frame: pd.DataFrame) -> list[dict[str, Any]]:
    clean = frame.astype(object).where(frame.notna(), None)
    return [dict(row) for row in clean.to_dict("records")]


def build_catalog(
    frame: pd.DataFrame,
    from_row: Callable[[dict[str, Any]], RecordT],
    *,
    missing_error: type[CatalogLookupError],
    available: Callable[[RecordT], bool] | None = None,
) -> Catalog[RecordT]:
    """Validate every row of ``frame`` and wrap the records in a :class:`Catalog`."""

    records: list[RecordT] = []
    for position, row in enumerate(_records(frame), start=1):
        row_id = str(row.get("id") or "").strip()
        if not row_id:
            raise CatalogError(f"{missing_error.kind} row {position} has no id")
        try:
            records.append(from_row(row))
        except CatalogError as exc:
            raise CatalogError(f"Invalid {missing_error.kind} {row_id!r}: {exc}") from exc
    return Catalog(records, missing_error=missing_error, available=available)
