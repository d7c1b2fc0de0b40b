"""Speeds, feeds and tool-life calculations."""

from .cutting import (
    CuttingParameters,
    cutting_power_kw,
    cutting_speed_from_spindle_speed,
    derive_cutting_parameters,
    effective_cutting_speed,
    material_removal_rate,
    select_feed,
    spindle_speed_from_cutting_speed,
)
from .tool_life import (
    ToolLifeSummary,
    economic_cutting_speed,
    parts_per_tool,
    summarize_tool_life,
    taylor_tool_life,
    tool_life_curve,
    tools_required,
)

__all__ = [
    "CuttingParameters",
    "ToolLifeSummary",
    "cutting_power_kw",
    "cutting_speed_from_spindle_speed",
    "derive_cutting_parameters",
    "economic_cutting_speed",
    "effective_cutting_speed",
    "material_removal_rate",
    "parts_per_tool",
    "select_feed",
    "spindle_speed_from_cutting_speed",
    "summarize_tool_life",
    "taylor_tool_life",
    "tool_life_curve",
    "tools_required",
]
