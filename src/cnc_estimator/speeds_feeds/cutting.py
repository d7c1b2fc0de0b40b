"""Spindle speed, feed and tool life derivation for a single operation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from math import pi

from cnc_estimator.catalogs import Machine, Material, Tool
from cnc_estimator.config import get_logger
from cnc_estimator.errors import InvalidGeometryError, InvalidParameterError

from .tool_life import taylor_tool_life

__all__ = [
    "DEFAULT_ENGAGEMENT_RATIO",
    "DEFAULT_SPECIFIC_CUTTING_ENERGY",
    "CuttingParameters",
    "cutting_power_kw",
    "cutting_speed_from_spindle_speed",
    "derive_cutting_parameters",
    "effective_cutting_speed",
    "material_removal_rate",
    "select_feed",
    "spindle_speed_from_cutting_speed",
]

log = get_logger("speeds_feeds")

# Radial engagement as a share of the tool or part diameter.
DEFAULT_ENGAGEMENT_RATIO = 0.6
# N/mm^2
DEFAULT_SPECIFIC_CUTTING_ENERGY = 2000.0


@dataclass(frozen=True, slots=True)
class CuttingParameters:
    """Derived cutting conditions for one operation."""

    cutting_speed_m_min: float
    spindle_speed_rpm: float
    feed_mm_per_rev: float
    feed_mm_per_min: float
    tool_life_min: float
    rpm_limited: bool = False
    material_removal_rate_cm3_min: float = 0.0
    power_kw: float = 0.0
    power_exceeded: bool = False


def _positive(value: float, label: str) -> float:
    if not math.isfinite(value) or value <= 0:
        raise InvalidParameterError(f"Derived {label} must be positive and finite, got {value!r}")
    return value


def effective_cutting_speed(material: Material, tool: Tool) -> float:
    """Return the tool-scaled cutting speed held inside the material window.

    The lower bound is the material minimum; the upper bound is the material
    maximum scaled by the tool.  When a slow tool pulls the scaled maximum
    below the material minimum, the scaled maximum wins.
    """

    window = material.cutting_speed_range
    scaled = window.midpoint * tool.speed_multiplier
    upper = window.max * tool.speed_multiplier
    return min(max(scaled, window.min), upper)


def spindle_speed_from_cutting_speed(cutting_speed_m_min: float, diameter_mm: float) -> float:
    """Convert a surface speed in m/min to spindle RPM at ``diameter_mm``."""

    if not math.isfinite(diameter_mm) or diameter_mm <= 0:
        raise InvalidGeometryError(f"diameter_mm must be a positive number, got {diameter_mm!r}")
    return (1000.0 * cutting_speed_m_min) / (pi * diameter_mm)


def cutting_speed_from_spindle_speed(spindle_speed_rpm: float, diameter_mm: float) -> float:
    """Convert spindle RPM at ``diameter_mm`` back to a surface speed in m/min."""

    return pi * diameter_mm * spindle_speed_rpm / 1000.0


def select_feed(material: Material, override_mm_rev: float | None = None) -> float:
    """Return the feed per revolution: the override, or the material midpoint."""

    if override_mm_rev is not None:
        return _positive(float(override_mm_rev), "feed per revolution")
    return _positive(material.feed_rate_range.midpoint, "feed per revolution")


def material_removal_rate(
    depth_mm: float,
    diameter_mm: float,
    feed_mm_per_min: float,
    *,
    engagement_ratio: float = DEFAULT_ENGAGEMENT_RATIO,
) -> float:
    """Return the removed volume in cm^3/min.

    The cut section is ``depth_mm`` by ``diameter_mm * engagement_ratio``.
    """

    return depth_mm * (diameter_mm * engagement_ratio) * feed_mm_per_min / 1000.0


def cutting_power_kw(
    removal_rate_cm3_min: float,
    *,
    specific_cutting_energy: float = DEFAULT_SPECIFIC_CUTTING_ENERGY,
) -> float:
    """Return the spindle power in kW for a removal rate in cm^3/min.

    ``specific_cutting_energy`` is in N/mm^2 (J/mm^3).
    """

    return specific_cutting_energy * removal_rate_cm3_min / 60000.0


def derive_cutting_parameters(
    material: Material,
    tool: Tool,
    machine: Machine,
    diameter_mm: float,
    *,
    feed_override_mm_rev: float | None = None,
    depth_mm: float | None = None,
    engagement_ratio: float = DEFAULT_ENGAGEMENT_RATIO,
    specific_cutting_energy: float = DEFAULT_SPECIFIC_CUTTING_ENERGY,
) -> CuttingParameters:
    """Derive cutting speed, spindle speed, feed and Taylor tool life.

    The spindle speed is capped at ``machine.max_rpm`` when the machine has
    one; the cutting speed is then recomputed from the capped speed so tool
    life and cutting time use a speed the machine can actually reach.

    With ``depth_mm`` the removal rate and spindle power are derived too.
    ``power_exceeded`` is set when that power is above ``machine.power_kw``;
    the speeds are not reduced for it.
    """

    cutting_speed = _positive(effective_cutting_speed(material, tool), "cutting speed")
    rpm = _positive(spindle_speed_from_cutting_speed(cutting_speed, diameter_mm), "spindle speed")

    rpm_limited = False
    if machine.max_rpm is not None and rpm > machine.max_rpm:
        log.debug(
            "Spindle speed %.1f rpm exceeds %s limit %.0f rpm; clamping",
            rpm,
            machine.code,
            machine.max_rpm,
        )
        rpm = float(machine.max_rpm)
        cutting_speed = _positive(cutting_speed_from_spindle_speed(rpm, diameter_mm), "cutting speed")
        rpm_limited = True

    feed = select_feed(material, feed_override_mm_rev)
    feed_per_min = _positive(feed * rpm, "feed per minute")
    tool_life = taylor_tool_life(cutting_speed, material.taylor_n, material.taylor_c)

    removal_rate = 0.0
    power = 0.0
    power_exceeded = False
    if depth_mm is not None:
        removal_rate = material_removal_rate(
            depth_mm, diameter_mm, feed_per_min, engagement_ratio=engagement_ratio
        )
        power = cutting_power_kw(removal_rate, specific_cutting_energy=specific_cutting_energy)
        if not math.isfinite(power) or power < 0:
            raise InvalidParameterError(f"Derived spindle power must be finite and >= 0, got {power!r}")
        if machine.power_kw is not None and power > machine.power_kw:
            log.warning(
                "Cutting power %.2f kW exceeds %s spindle rating of %.1f kW",
                power,
                machine.code,
                machine.power_kw,
            )
            power_exceeded = True

    log.debug(
        "%s/%s on %s at D=%.3f mm: Vc=%.2f m/min n=%.1f rpm f=%.4f mm/rev T=%.1f min",
        material.id,
        tool.id,
        machine.code,
        diameter_mm,
        cutting_speed,
        rpm,
        feed,
        tool_life,
    )
    return CuttingParameters(
        cutting_speed_m_min=cutting_speed,
        spindle_speed_rpm=rpm,
        feed_mm_per_rev=feed,
        feed_mm_per_min=feed_per_min,
        tool_life_min=tool_life,
        rpm_limited=rpm_limited,
        material_removal_rate_cm3_min=removal_rate,
        power_kw=power,
        power_exceeded=power_exceeded,
    )
