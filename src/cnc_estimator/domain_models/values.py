"""Domain-level value coercion helpers."""
from __future__ import annotations

import math
import re
from typing import Any


_UNIT_PATTERN = re.compile(
    r"(?i)\s*(?:m/min|mm/rev|rpm|kw|kg|mm|min)\.?\s*$")


def coerce_float_or_none(value: Any) -> float | None:
    """Attempt to coerce the given value to ``float`` returning ``None`` on failure.

    Catalog CSV files edited by hand tend to carry unit suffixes (``"120 mm"``),
    thousands separators or blank cells.  Blank cells and ``NaN`` values read
    by pandas are treated as missing.
    """

    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
        if math.isnan(number):
            return None
        return number
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return None
        cleaned = cleaned.replace(",", "").replace("\u00A0", " ")
        cleaned = _UNIT_PATTERN.sub("", cleaned).strip()
        cleaned = cleaned.rstrip(". ")
        if not cleaned or cleaned.lower() == "nan":
            return None
        try:
            return float(cleaned)
        except ValueError:
            return None
    if hasattr(value, "__float__"):
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if math.isnan(number):
            return None
        return number
    return None


def to_float(value: Any) -> float | None:
    """Best-effort conversion of ``value`` to a float."""

    if value is None:
        return None
    return coerce_float_or_none(value)


def to_int(value: Any) -> int | None:
    """Best-effort conversion of ``value`` to an integer via rounding."""

    numeric = coerce_float_or_none(value)
    if numeric is None or not math.isfinite(numeric):
        return None
    return int(round(numeric))


def to_positive_float(value: Any) -> float | None:
    """Return ``value`` as a finite float greater than zero, else ``None``."""

    numeric = to_float(value)
    if numeric is None or not math.isfinite(numeric) or numeric <= 0:
        return None
    return numeric


def to_bool(value: Any, *, default: bool = False) -> bool:
    """Return a boolean from CSV/JSON style values with tolerant parsing."""

    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return default
        return bool(value)

    normalized = str(value).strip().lower()
    if not normalized or normalized == "nan":
        return default
    if normalized in {"1", "true", "yes", "on", "y"}:
        return True
    if normalized in {"0", "false", "no", "off", "n"}:
        return False
    return default


__all__ = [
    "coerce_float_or_none",
    "to_bool",
    "to_float",
    "to_int",
    "to_positive_float",
]
