from __future__ import annotations

import dataclasses
import math
from types import MappingProxyType
from typing import Callable

import pytest

from cnc_estimator.catalogs import CatalogSnapshot, load_catalog_snapshot, machine_catalog
from cnc_estimator.config import EngineSettings
from cnc_estimator.domain_models import Operation, OperationType
from cnc_estimator.errors import (
    InvalidGeometryError,
    InvalidParameterError,
    UnknownCoatingError,
    UnknownMachineError,
    UnknownMaterialError,
    UnknownToolError,
)
from cnc_estimator.pricing import (
    OperationResult,
    compute_operation,
    passes_for_depth,
    peck_correction_factor,
    tool_changes_for,
)

MakeOperation = Callable[..., Operation]


def _compute(
    operation: Operation,
    snapshot: CatalogSnapshot,
    settings: EngineSettings,
) -> OperationResult:
    return compute_operation(
        operation,
        snapshot.materials,
        snapshot.tools,
        snapshot.machines,
        coatings=snapshot.coatings,
        settings=settings,
    )


def test_turning_example(
    make_operation: MakeOperation, reference_snapshot: CatalogSnapshot, settings: EngineSettings
) -> None:
    result = _compute(make_operation(), reference_snapshot, settings)

    assert result.spindle_speed_rpm == pytest.approx(795.8, abs=0.05)
    assert result.feed_rate_mm_per_rev == pytest.approx(0.2)
    assert result.cutting_time_min == pytest.approx(6.29, abs=0.01)
    assert result.cutting_time_min == pytest.approx(2 * math.pi)
    assert result.passes == 1
    assert result.setup_time_min == pytest.approx(2.0)
    assert result.tool_changes == 0
    assert result.tool_change_time_min == 0.0
    assert result.total_time_min == pytest.approx(2 * math.pi + 2.0)
    assert result.machine_cost == pytest.approx((2 * math.pi + 2.0) / 60.0 * 150.0)
    assert result.total_cost == pytest.approx(result.machine_cost)


def test_turning_splits_deep_cuts_into_passes(
    make_operation: MakeOperation, reference_snapshot: CatalogSnapshot, settings: EngineSettings
) -> None:
    single = _compute(make_operation(depth_mm=3.0), reference_snapshot, settings)
    triple = _compute(make_operation(depth_mm=7.0), reference_snapshot, settings)

    assert single.passes == 1
    assert triple.passes == 3
    assert triple.cutting_time_min == pytest.approx(3 * single.cutting_time_min)


def test_tool_depth_factor_limits_pass_depth(
    make_operation: MakeOperation, reference_snapshot: CatalogSnapshot, settings: EngineSettings
) -> None:
    result = _compute(make_operation(tool_id="hss", depth_mm=2.0), reference_snapshot, settings)

    assert result.passes == 2
    assert result.cutting_speed_m_min == pytest.approx(90.0)


def test_boring_uses_turning_formula(
    make_operation: MakeOperation, reference_snapshot: CatalogSnapshot, settings: EngineSettings
) -> None:
    turning = _compute(make_operation(depth_mm=5.0), reference_snapshot, settings)
    boring = _compute(
        make_operation(operation_type=OperationType.BORING, depth_mm=5.0), reference_snapshot, settings
    )

    assert boring.cutting_time_min == pytest.approx(turning.cutting_time_min)
    assert boring.passes == 2


def test_milling_uses_feed_per_minute(
    make_operation: MakeOperation, reference_snapshot: CatalogSnapshot, settings: EngineSettings
) -> None:
    operation = make_operation(operation_type=OperationType.MILLING, machine_id="mill", diameter_mm=10.0)

    result = _compute(operation, reference_snapshot, settings)

    assert result.feed_rate_mm_per_min == pytest.approx(0.2 * 12500.0 / math.pi)
    assert result.cutting_time_min == pytest.approx(100.0 * 10 / result.feed_rate_mm_per_min)
    assert result.passes == 1
    assert result.machine_cost == pytest.approx(result.total_time_min / 60.0 * 120.0)


def test_shallow_drilling_has_no_peck_penalty(
    make_operation: MakeOperation, reference_snapshot: CatalogSnapshot, settings: EngineSettings
) -> None:
    operation = make_operation(operation_type=OperationType.DRILLING, diameter_mm=10.0, depth_mm=20.0)

    result = _compute(operation, reference_snapshot, settings)

    assert result.peck_factor == 1.0
    assert result.cutting_time_min == pytest.approx(20.0 * 10 / (0.2 * 12500.0 / math.pi))


def test_deep_drilling_applies_peck_factor(
    make_operation: MakeOperation, reference_snapshot: CatalogSnapshot, settings: EngineSettings
) -> None:
    operation = make_operation(operation_type=OperationType.DRILLING, diameter_mm=10.0, depth_mm=50.0)

    result = _compute(operation, reference_snapshot, settings)

    assert result.peck_factor == pytest.approx(1.3)
    assert result.cutting_time_min == pytest.approx(50.0 * 10 / (0.2 * 12500.0 / math.pi) * 1.3)


def test_peck_factor_is_continuous_and_increasing() -> None:
    def factor(ratio: float) -> float:
        return peck_correction_factor(ratio, threshold=3.0, coefficient=0.15, exponent=1.5)

    assert factor(0.5) == 1.0
    assert factor(3.0) == 1.0
    assert factor(3.0 + 1e-9) == pytest.approx(1.0)

    ratios = [3.01, 3.5, 4.0, 6.0, 10.0, 20.0]
    values = [factor(ratio) for ratio in ratios]
    assert all(value > 1.0 for value in values)
    assert all(earlier < later for earlier, later in zip(values, values[1:]))


def test_passes_for_depth() -> None:
    assert passes_for_depth(6.0, 3.0) == 2
    assert passes_for_depth(6.01, 3.0) == 3
    assert passes_for_depth(0.5, 3.0) == 1
    with pytest.raises(InvalidParameterError):
        passes_for_depth(6.0, 0.0)


@pytest.mark.parametrize(
    "cutting,life,expected",
    [
        (6.0, 299.0, 0),
        (300.0, 300.0, 0),
        (600.0, 300.0, 1),
        (628.3, 299.5, 2),
    ],
)
def test_tool_changes_for(cutting: float, life: float, expected: int) -> None:
    assert tool_changes_for(cutting, life) == expected


def test_long_runs_add_tool_changes(
    make_operation: MakeOperation, reference_snapshot: CatalogSnapshot, settings: EngineSettings
) -> None:
    result = _compute(make_operation(length_mm=10000.0), reference_snapshot, settings)

    assert result.cutting_time_min == pytest.approx(200 * math.pi)
    assert result.tool_changes == 2
    assert result.tool_change_time_min == pytest.approx(1.0)
    assert result.total_time_min == pytest.approx(200 * math.pi + 2.0 + 1.0)


def test_settings_drive_setup_and_tool_change(
    make_operation: MakeOperation, reference_snapshot: CatalogSnapshot, settings: EngineSettings
) -> None:
    custom = dataclasses.replace(
        settings,
        setup_time_min=MappingProxyType({"turning": 15.0, "milling": 5.0, "drilling": 3.0, "boring": 8.0}),
        tool_change_min=2.0,
    )

    result = _compute(make_operation(length_mm=10000.0), reference_snapshot, custom)

    assert result.setup_time_min == pytest.approx(15.0)
    assert result.tool_change_time_min == pytest.approx(4.0)


def test_material_cost_uses_mass_price_and_quantity(
    make_operation: MakeOperation, reference_snapshot: CatalogSnapshot, settings: EngineSettings
) -> None:
    result = _compute(make_operation(material_mass_kg=1.5), reference_snapshot, settings)

    assert result.material_cost == pytest.approx(1.5 * 2.0 * 10)
    assert result.total_cost == pytest.approx(result.machine_cost + 30.0)


def test_mass_without_price_is_rejected(bundled_snapshot: CatalogSnapshot, settings: EngineSettings) -> None:
    operation = Operation(
        operation_type=OperationType.TURNING,
        material_id="steel-low",
        tool_id="carbide",
        machine_id="t302",
        diameter_mm=50.0,
        depth_mm=2.0,
        length_mm=100.0,
        quantity=10,
        material_mass_kg=1.5,
    )

    with pytest.raises(InvalidParameterError, match="price per kg"):
        _compute(operation, bundled_snapshot, settings)


def test_coating_cost_per_part(bundled_snapshot: CatalogSnapshot, settings: EngineSettings) -> None:
    operation = Operation(
        operation_type=OperationType.TURNING,
        material_id="steel-low",
        tool_id="carbide",
        machine_id="t302",
        diameter_mm=50.0,
        depth_mm=2.0,
        length_mm=100.0,
        quantity=10,
        coating_id="zinc-plating",
    )

    result = _compute(operation, bundled_snapshot, settings)

    assert result.coating_cost == pytest.approx(45.0)
    assert result.feed_rate_mm_per_rev == pytest.approx(0.25)
    assert result.total_cost == pytest.approx(result.machine_cost + 45.0)


def test_inactive_or_missing_coating_is_unknown(
    bundled_snapshot: CatalogSnapshot, reference_snapshot: CatalogSnapshot, settings: EngineSettings
) -> None:
    operation = Operation(
        operation_type=OperationType.TURNING,
        material_id="steel-low",
        tool_id="carbide",
        machine_id="t302",
        diameter_mm=50.0,
        depth_mm=2.0,
        length_mm=100.0,
        coating_id="nickel-plating",
    )

    with pytest.raises(UnknownCoatingError):
        _compute(operation, bundled_snapshot, settings)
    with pytest.raises(UnknownCoatingError):
        compute_operation(
            dataclasses.replace(operation, coating_id="zinc-plating"),
            bundled_snapshot.materials,
            bundled_snapshot.tools,
            bundled_snapshot.machines,
            settings=settings,
        )


@pytest.mark.parametrize(
    "overrides,error",
    [
        ({"material_id": "unobtainium"}, UnknownMaterialError),
        ({"tool_id": "spoon"}, UnknownToolError),
        ({"machine_id": "t999"}, UnknownMachineError),
        ({"diameter_mm": 0.0}, InvalidGeometryError),
        ({"length_mm": -3.0}, InvalidGeometryError),
        ({"quantity": 0}, InvalidGeometryError),
        ({"diameter_mm": 400.0}, InvalidGeometryError),
    ],
)
def test_compute_operation_raises_typed_errors(
    make_operation: MakeOperation,
    reference_snapshot: CatalogSnapshot,
    settings: EngineSettings,
    overrides: dict[str, object],
    error: type[Exception],
) -> None:
    with pytest.raises(error):
        _compute(make_operation(**overrides), reference_snapshot, settings)


def test_mill_has_no_turning_diameter_limit(
    make_operation: MakeOperation, reference_snapshot: CatalogSnapshot, settings: EngineSettings
) -> None:
    operation = make_operation(operation_type=OperationType.MILLING, machine_id="mill", diameter_mm=400.0)

    result = _compute(operation, reference_snapshot, settings)

    assert result.cutting_time_min > 0


def test_feed_override_changes_cutting_time(
    make_operation: MakeOperation, reference_snapshot: CatalogSnapshot, settings: EngineSettings
) -> None:
    result = _compute(make_operation(feed_override_mm_rev=0.1), reference_snapshot, settings)

    assert result.feed_rate_mm_per_rev == pytest.approx(0.1)
    assert result.cutting_time_min == pytest.approx(4 * math.pi)


def test_compute_operation_loads_default_settings(
    make_operation: MakeOperation, reference_snapshot: CatalogSnapshot
) -> None:
    result = compute_operation(
        make_operation(),
        reference_snapshot.materials,
        reference_snapshot.tools,
        reference_snapshot.machines,
    )

    assert result.setup_time_min == pytest.approx(2.0)


def test_turning_power_uses_depth_per_pass(
    make_operation: MakeOperation, reference_snapshot: CatalogSnapshot, settings: EngineSettings
) -> None:
    single = _compute(make_operation(depth_mm=3.0), reference_snapshot, settings)
    double = _compute(make_operation(depth_mm=6.0), reference_snapshot, settings)

    expected_rate = 3.0 * 50.0 * 0.6 * single.feed_rate_mm_per_min / 1000.0
    assert single.material_removal_rate_cm3_min == pytest.approx(expected_rate)
    assert single.power_kw == pytest.approx(2000.0 * expected_rate / 60000.0)
    assert double.passes == 2
    assert double.material_removal_rate_cm3_min == pytest.approx(single.material_removal_rate_cm3_min)


def test_drilling_removal_rate_uses_full_section(
    make_operation: MakeOperation, reference_snapshot: CatalogSnapshot, settings: EngineSettings
) -> None:
    operation = make_operation(operation_type=OperationType.DRILLING, diameter_mm=10.0, depth_mm=20.0)

    result = _compute(operation, reference_snapshot, settings)

    assert result.material_removal_rate_cm3_min == pytest.approx(
        math.pi * 10.0**2 / 4.0 * result.feed_rate_mm_per_min / 1000.0
    )


def test_power_settings_and_rating_flow_into_result(
    make_operation: MakeOperation, reference_snapshot: CatalogSnapshot, settings: EngineSettings
) -> None:
    lathe = reference_snapshot.machines.require("lathe")
    weak = dataclasses.replace(
        reference_snapshot, machines=machine_catalog([dataclasses.replace(lathe, power_kw=0.5)])
    )
    operation = make_operation(depth_mm=2.0)

    standard = _compute(operation, weak, settings)
    harder = _compute(operation, weak, dataclasses.replace(settings, specific_cutting_energy=4000.0))

    assert standard.power_exceeded is False
    assert harder.power_kw == pytest.approx(2 * standard.power_kw)
    assert harder.power_exceeded is True
    assert harder.total_cost == pytest.approx(standard.total_cost)


def test_mass_is_costed_with_snapshot_prices(settings: EngineSettings) -> None:
    snapshot = load_catalog_snapshot(prices_per_kg={"steel-low": 1.2})
    operation = Operation(
        operation_type=OperationType.TURNING,
        material_id="steel-low",
        tool_id="carbide",
        machine_id="t302",
        diameter_mm=50.0,
        depth_mm=2.0,
        length_mm=100.0,
        quantity=10,
        material_mass_kg=1.5,
    )

    result = _compute(operation, snapshot, settings)

    assert result.material_cost == pytest.approx(1.5 * 1.2 * 10)
