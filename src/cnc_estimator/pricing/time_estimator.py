"""Operation time and cost estimation.

:func:`compute_operation` turns one configured :class:`Operation` into an
:class:`OperationResult`: cutting conditions come from
:mod:`cnc_estimator.speeds_feeds`, cutting time follows the formula for the
operation type, and setup and tool-change overheads come from
:class:`~cnc_estimator.config.EngineSettings`.  Cost is machine time at the
machine's hourly rate plus the optional material and coating add-ons.

Every failure is raised as a subclass of
:class:`~cnc_estimator.errors.EstimationError`; nothing is defaulted to a
zero time or cost.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any

from cnc_estimator.catalogs import (
    Coating,
    CoatingCatalog,
    Machine,
    MachineCatalog,
    MachineType,
    Material,
    MaterialCatalog,
    Tool,
    ToolCatalog,
)
from cnc_estimator.config import EngineSettings, get_logger, load_engine_settings
from cnc_estimator.domain_models import Operation, OperationType
from cnc_estimator.errors import InvalidGeometryError, InvalidParameterError, UnknownCoatingError
from cnc_estimator.speeds_feeds import CuttingParameters, derive_cutting_parameters

__all__ = [
    "OperationResult",
    "compute_operation",
    "cutting_time_min",
    "max_depth_per_pass",
    "passes_for_depth",
    "peck_correction_factor",
    "tool_changes_for",
]

log = get_logger("pricing", "time_estimator")


@dataclass(frozen=True, slots=True)
class OperationResult:
    """Times in minutes and costs in the catalogs' single currency."""

    spindle_speed_rpm: float
    feed_rate_mm_per_rev: float
    cutting_time_min: float
    setup_time_min: float
    tool_change_time_min: float
    total_time_min: float
    tool_life_min: float
    feed_rate_mm_per_min: float = 0.0
    cutting_speed_m_min: float = 0.0
    passes: int = 1
    peck_factor: float = 1.0
    tool_changes: int = 0
    machine_cost: float = 0.0
    material_cost: float = 0.0
    coating_cost: float = 0.0
    total_cost: float = 0.0
    rpm_limited: bool = False
    material_removal_rate_cm3_min: float = 0.0
    power_kw: float = 0.0
    power_exceeded: bool = False

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def max_depth_per_pass(material: Material, tool: Tool) -> float:
    return material.max_depth_per_pass_mm * tool.depth_factor


def passes_for_depth(depth_mm: float, depth_per_pass_mm: float) -> int:
    """Return the number of passes needed to remove ``depth_mm``."""

    if not math.isfinite(depth_per_pass_mm) or depth_per_pass_mm <= 0:
        raise InvalidParameterError(f"Depth per pass must be positive, got {depth_per_pass_mm!r}")
    return max(int(math.ceil(depth_mm / depth_per_pass_mm)), 1)


def peck_correction_factor(
    depth_to_diameter: float,
    *,
    threshold: float,
    coefficient: float,
    exponent: float = 1.0,
) -> float:
    """Return the cycle-time multiplier for peck drilling.

    ``1.0`` up to ``threshold``; above it the factor grows as
    ``1 + coefficient * (ratio - threshold) ** exponent``, which meets ``1.0``
    at the threshold and rises strictly with the ratio.
    """

    if depth_to_diameter <= threshold:
        return 1.0
    return 1.0 + coefficient * (depth_to_diameter - threshold) ** exponent


def cutting_time_min(
    operation: Operation,
    params: CuttingParameters,
    *,
    passes: int = 1,
    peck_factor: float = 1.0,
) -> float:
    """Return the cutting time in minutes for the whole quantity of ``operation``."""

    op_type = operation.operation_type
    if op_type in (OperationType.TURNING, OperationType.BORING):
        minutes = operation.length_mm * operation.quantity * passes / (
            params.feed_mm_per_rev * params.spindle_speed_rpm
        )
    elif op_type is OperationType.MILLING:
        minutes = operation.length_mm * operation.quantity / params.feed_mm_per_min
    elif op_type is OperationType.DRILLING:
        minutes = (
            operation.depth_mm
            * operation.quantity
            / (params.feed_mm_per_rev * params.spindle_speed_rpm)
            * peck_factor
        )
    else:  # pragma: no cover - enum is exhaustive
        raise InvalidParameterError(f"Unsupported operation type: {op_type!r}")

    if not math.isfinite(minutes) or minutes <= 0:
        raise InvalidParameterError(f"Cutting time is not a positive finite value: {minutes!r}")
    return minutes


def tool_changes_for(cutting_minutes: float, tool_life_min: float) -> int:
    """Return how many tool changes a cut of ``cutting_minutes`` needs."""

    if tool_life_min >= cutting_minutes:
        return 0
    return int(math.ceil(cutting_minutes / tool_life_min)) - 1


def _check_machine_envelope(operation: Operation, machine: Machine) -> None:
    if (
        machine.type is MachineType.TURNING
        and machine.max_diameter_mm is not None
        and operation.diameter_mm > machine.max_diameter_mm
    ):
        raise InvalidGeometryError(
            f"Diameter {operation.diameter_mm} mm exceeds {machine.code} capacity of "
            f"{machine.max_diameter_mm} mm"
        )


def _engaged_section(operation: Operation, passes: int, settings: EngineSettings) -> tuple[float, float]:
    """Return the (depth, engagement ratio) pair that sizes the cut section."""

    op_type = operation.operation_type
    if op_type in (OperationType.TURNING, OperationType.BORING):
        return operation.depth_mm / passes, settings.engagement_ratio
    if op_type is OperationType.DRILLING:
        # full drill section pi*D**2/4, written as (pi*D/4) * D
        return math.pi * operation.diameter_mm / 4.0, 1.0
    return operation.depth_mm, settings.engagement_ratio


def _material_cost(operation: Operation, material: Material) -> float:
    if operation.material_mass_kg is None:
        return 0.0
    if material.price_per_kg is None:
        raise InvalidParameterError(f"Material {material.id!r} has no price per kg; cannot cost blank mass")
    return operation.material_mass_kg * material.price_per_kg * operation.quantity


def _coating(operation: Operation, coatings: CoatingCatalog | None) -> Coating | None:
    if not operation.coating_id:
        return None
    if coatings is None:
        raise UnknownCoatingError(operation.coating_id)
    return coatings.require(operation.coating_id)


def compute_operation(
    operation: Operation,
    materials: MaterialCatalog,
    tools: ToolCatalog,
    machines: MachineCatalog,
    *,
    coatings: CoatingCatalog | None = None,
    settings: EngineSettings | None = None,
) -> OperationResult:
    """Estimate time and cost for ``operation`` against the given catalogs.

    Raises :class:`~cnc_estimator.errors.EstimationError` subclasses for
    unknown catalog ids, non-physical geometry and degenerate derived values.
    """

    if settings is None:
        settings = load_engine_settings()

    material = materials.require(operation.material_id)
    tool = tools.require(operation.tool_id)
    machine = machines.require(operation.machine_id)
    coating = _coating(operation, coatings)

    operation.validate()
    _check_machine_envelope(operation, machine)

    op_type = operation.operation_type
    passes = 1
    peck_factor = 1.0
    if op_type in (OperationType.TURNING, OperationType.BORING):
        passes = passes_for_depth(operation.depth_mm, max_depth_per_pass(material, tool))
    elif op_type is OperationType.DRILLING:
        peck_factor = peck_correction_factor(
            operation.depth_to_diameter_ratio,
            threshold=settings.peck_ratio_threshold,
            coefficient=settings.peck_coefficient,
            exponent=settings.peck_exponent,
        )

    section_depth, engagement = _engaged_section(operation, passes, settings)
    params = derive_cutting_parameters(
        material,
        tool,
        machine,
        operation.diameter_mm,
        feed_override_mm_rev=operation.feed_override_mm_rev,
        depth_mm=section_depth,
        engagement_ratio=engagement,
        specific_cutting_energy=settings.specific_cutting_energy,
    )

    cutting = cutting_time_min(operation, params, passes=passes, peck_factor=peck_factor)
    setup = settings.setup_time_for(op_type.value)
    changes = tool_changes_for(cutting, params.tool_life_min)
    tool_change = changes * settings.tool_change_min
    total_time = cutting + setup + tool_change

    machine_cost = total_time / 60.0 * machine.hourly_rate
    material_cost = _material_cost(operation, material)
    coating_cost = coating.price * operation.quantity if coating is not None else 0.0

    log.debug(
        "%s %s x%d: cut=%.3f setup=%.3f change=%.3f (%d) min",
        op_type.value,
        operation.label or operation.material_id,
        operation.quantity,
        cutting,
        setup,
        tool_change,
        changes,
    )
    return OperationResult(
        spindle_speed_rpm=params.spindle_speed_rpm,
        feed_rate_mm_per_rev=params.feed_mm_per_rev,
        cutting_time_min=cutting,
        setup_time_min=setup,
        tool_change_time_min=tool_change,
        total_time_min=total_time,
        tool_life_min=params.tool_life_min,
        feed_rate_mm_per_min=params.feed_mm_per_min,
        cutting_speed_m_min=params.cutting_speed_m_min,
        passes=passes,
        peck_factor=peck_factor,
        tool_changes=changes,
        machine_cost=machine_cost,
        material_cost=material_cost,
        coating_cost=coating_cost,
        total_cost=machine_cost + material_cost + coating_cost,
        rpm_limited=params.rpm_limited,
        material_removal_rate_cm3_min=params.material_removal_rate_cm3_min,
        power_kw=params.power_kw,
        power_exceeded=params.power_exceeded,
    )
