"""Taylor tool-life helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from cnc_estimator.catalogs import Material
from cnc_estimator.errors import InvalidParameterError

__all__ = [
    "ToolLifeSummary",
    "economic_cutting_speed",
    "parts_per_tool",
    "summarize_tool_life",
    "taylor_tool_life",
    "tool_life_curve",
    "tools_required",
]


def _check_taylor_constants(taylor_n: float, taylor_c: float) -> None:
    if not (0.0 < taylor_n < 1.0):
        raise InvalidParameterError(f"Taylor exponent must lie in (0, 1), got {taylor_n!r}")
    if not (math.isfinite(taylor_c) and taylor_c > 0):
        raise InvalidParameterError(f"Taylor constant must be positive, got {taylor_c!r}")


def taylor_tool_life(cutting_speed_m_min: float, taylor_n: float, taylor_c: float) -> float:
    """Return tool life in minutes from ``V * T**n = C``."""

    if not math.isfinite(cutting_speed_m_min) or cutting_speed_m_min <= 0:
        raise InvalidParameterError(
            f"Cutting speed must be positive to evaluate tool life, got {cutting_speed_m_min!r}"
        )
    _check_taylor_constants(taylor_n, taylor_c)
    try:
        life = (taylor_c / cutting_speed_m_min) ** (1.0 / taylor_n)
    except OverflowError as exc:
        raise InvalidParameterError(
            f"Tool life overflows at {cutting_speed_m_min} m/min (n={taylor_n}, C={taylor_c})"
        ) from exc
    if not math.isfinite(life) or life <= 0:
        raise InvalidParameterError(f"Tool life is not a positive finite value: {life!r}")
    return life


def economic_cutting_speed(taylor_n: float, taylor_c: float) -> float:
    """Return the speed ``C * (n / (1 - n))**n`` used as the shop's economic target."""

    _check_taylor_constants(taylor_n, taylor_c)
    return taylor_c * (taylor_n / (1.0 - taylor_n)) ** taylor_n


def parts_per_tool(tool_life_min: float, time_per_part_min: float) -> int:
    """Return how many whole parts one cutting edge finishes."""

    if not math.isfinite(time_per_part_min) or time_per_part_min <= 0:
        raise InvalidParameterError(f"Time per part must be positive, got {time_per_part_min!r}")
    if not math.isfinite(tool_life_min) or tool_life_min <= 0:
        raise InvalidParameterError(f"Tool life must be positive, got {tool_life_min!r}")
    return math.floor(tool_life_min / time_per_part_min)


def tools_required(parts: int, parts_per_edge: int) -> int:
    """Return the number of cutting edges consumed by ``parts`` parts."""

    if parts < 0:
        raise InvalidParameterError(f"Part count must be >= 0, got {parts!r}")
    if parts_per_edge <= 0:
        raise InvalidParameterError("Tool life is shorter than the cutting time of a single part")
    return math.ceil(parts / parts_per_edge)


def tool_life_curve(material: Material, speeds_m_min: Iterable[float]) -> list[tuple[float, float]]:
    """Return ``(speed, tool life)`` pairs for ``material`` at each speed."""

    return [
        (float(speed), taylor_tool_life(float(speed), material.taylor_n, material.taylor_c))
        for speed in speeds_m_min
    ]


@dataclass(frozen=True, slots=True)
class ToolLifeSummary:
    cutting_speed_m_min: float
    tool_life_min: float
    economic_speed_m_min: float
    parts_per_tool: int | None = None
    tools_required: int | None = None

    @property
    def tool_life_hours(self) -> float:
        return self.tool_life_min / 60.0


def summarize_tool_life(
    material: Material,
    cutting_speed_m_min: float,
    *,
    time_per_part_min: float | None = None,
    parts: int | None = None,
) -> ToolLifeSummary:
    """Summarise tool consumption for ``material`` at ``cutting_speed_m_min``.

    ``parts_per_tool`` needs ``time_per_part_min``; ``tools_required`` needs
    both that and ``parts``.
    """

    life = taylor_tool_life(cutting_speed_m_min, material.taylor_n, material.taylor_c)
    per_tool = None
    needed = None
    if time_per_part_min is not None:
        per_tool = parts_per_tool(life, time_per_part_min)
        if parts is not None:
            needed = tools_required(parts, per_tool)
    return ToolLifeSummary(
        cutting_speed_m_min=cutting_speed_m_min,
        tool_life_min=life,
        economic_speed_m_min=economic_cutting_speed(material.taylor_n, material.taylor_c),
        parts_per_tool=per_tool,
        tools_required=needed,
    )
