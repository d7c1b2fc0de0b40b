from __future__ import annotations

import dataclasses
import logging
import math

import pytest

from cnc_estimator.catalogs import CatalogSnapshot, Machine, MachineType, Material, Tool
from cnc_estimator.errors import InvalidGeometryError, InvalidParameterError
from cnc_estimator.speeds_feeds import (
    cutting_power_kw,
    cutting_speed_from_spindle_speed,
    derive_cutting_parameters,
    effective_cutting_speed,
    material_removal_rate,
    select_feed,
    spindle_speed_from_cutting_speed,
)


def test_effective_speed_uses_range_midpoint(reference_material: Material, carbide: Tool) -> None:
    assert effective_cutting_speed(reference_material, carbide) == pytest.approx(125.0)


def test_effective_speed_scales_with_tool(bundled_snapshot: CatalogSnapshot) -> None:
    steel = bundled_snapshot.materials.require("steel-low")

    ceramic = effective_cutting_speed(steel, bundled_snapshot.tools.require("ceramic"))
    aluminum = effective_cutting_speed(
        bundled_snapshot.materials.require("aluminum"), bundled_snapshot.tools.require("carbide")
    )

    assert ceramic == pytest.approx(225.0)
    assert aluminum == pytest.approx(650.0)


def test_slow_tool_is_capped_by_scaled_maximum(bundled_snapshot: CatalogSnapshot) -> None:
    steel = bundled_snapshot.materials.require("steel-low")
    hss = bundled_snapshot.tools.require("hss")

    assert effective_cutting_speed(steel, hss) == pytest.approx(90.0)


def test_spindle_speed_example() -> None:
    rpm = spindle_speed_from_cutting_speed(125.0, 50.0)

    assert rpm == pytest.approx(795.8, abs=0.05)
    assert cutting_speed_from_spindle_speed(rpm, 50.0) == pytest.approx(125.0)


@pytest.mark.parametrize("diameter", [0.0, -5.0, float("nan")])
def test_spindle_speed_rejects_bad_diameter(diameter: float) -> None:
    with pytest.raises(InvalidGeometryError):
        spindle_speed_from_cutting_speed(125.0, diameter)


def test_derive_parameters_without_clamp(reference_material: Material, carbide: Tool, lathe: Machine) -> None:
    params = derive_cutting_parameters(reference_material, carbide, lathe, 50.0)

    assert params.rpm_limited is False
    assert params.cutting_speed_m_min == pytest.approx(125.0)
    assert params.spindle_speed_rpm == pytest.approx(2500.0 / math.pi)
    assert params.feed_mm_per_rev == pytest.approx(0.2)
    assert params.feed_mm_per_min == pytest.approx(0.2 * 2500.0 / math.pi)
    assert params.tool_life_min == pytest.approx((520.0 / 125.0) ** 4)


def test_derive_parameters_clamps_to_machine_rpm(
    reference_material: Material, carbide: Tool, lathe: Machine
) -> None:
    params = derive_cutting_parameters(reference_material, carbide, lathe, 5.0)

    assert params.rpm_limited is True
    assert params.spindle_speed_rpm == pytest.approx(4000.0)
    assert params.cutting_speed_m_min == pytest.approx(math.pi * 5.0 * 4000.0 / 1000.0)
    assert params.tool_life_min == pytest.approx((520.0 / params.cutting_speed_m_min) ** 4)


def test_derive_parameters_without_rpm_limit(reference_material: Material, carbide: Tool) -> None:
    machine = Machine(id="old", code="OLD", type=MachineType.TURNING, hourly_rate=80.0)

    params = derive_cutting_parameters(reference_material, carbide, machine, 5.0)

    assert params.rpm_limited is False
    assert params.spindle_speed_rpm == pytest.approx(25000.0 / math.pi)


@pytest.mark.parametrize("diameter", [1.0, 3.0, 8.0, 12.5, 40.0, 120.0, 300.0])
def test_spindle_speed_never_exceeds_machine_limit(
    bundled_snapshot: CatalogSnapshot, diameter: float
) -> None:
    material = bundled_snapshot.materials.require("aluminum")
    tool = bundled_snapshot.tools.require("pcd")
    for machine in bundled_snapshot.machines.available():
        params = derive_cutting_parameters(material, tool, machine, diameter)
        assert params.spindle_speed_rpm > 0
        assert machine.max_rpm is not None
        assert params.spindle_speed_rpm <= machine.max_rpm


def test_feed_override_replaces_midpoint(reference_material: Material, carbide: Tool, lathe: Machine) -> None:
    params = derive_cutting_parameters(reference_material, carbide, lathe, 50.0, feed_override_mm_rev=0.15)

    assert params.feed_mm_per_rev == pytest.approx(0.15)
    assert params.feed_mm_per_min == pytest.approx(0.15 * params.spindle_speed_rpm)


def test_select_feed_rejects_non_positive_override(reference_material: Material) -> None:
    with pytest.raises(InvalidParameterError):
        select_feed(reference_material, 0.0)
    with pytest.raises(InvalidParameterError):
        select_feed(reference_material, float("inf"))


def test_material_removal_rate_and_power() -> None:
    rate = material_removal_rate(2.0, 50.0, 150.0)

    assert rate == pytest.approx(2.0 * 30.0 * 150.0 / 1000.0)
    assert material_removal_rate(2.0, 50.0, 150.0, engagement_ratio=1.0) == pytest.approx(15.0)
    assert cutting_power_kw(rate) == pytest.approx(2000.0 * 9.0 / 60000.0)
    assert cutting_power_kw(rate, specific_cutting_energy=3000.0) == pytest.approx(0.45)


def test_derive_parameters_without_depth_skips_power(
    reference_material: Material, carbide: Tool, lathe: Machine
) -> None:
    params = derive_cutting_parameters(reference_material, carbide, lathe, 50.0)

    assert params.material_removal_rate_cm3_min == 0.0
    assert params.power_kw == 0.0
    assert params.power_exceeded is False


def test_derive_parameters_reports_power_within_rating(
    reference_material: Material, carbide: Tool, lathe: Machine
) -> None:
    rated = dataclasses.replace(lathe, power_kw=18.5)

    params = derive_cutting_parameters(reference_material, carbide, rated, 50.0, depth_mm=2.0)

    expected_rate = 2.0 * 30.0 * params.feed_mm_per_min / 1000.0
    assert params.material_removal_rate_cm3_min == pytest.approx(expected_rate)
    assert params.power_kw == pytest.approx(2000.0 * expected_rate / 60000.0)
    assert params.power_exceeded is False


def test_derive_parameters_flags_power_above_rating(
    reference_material: Material, carbide: Tool, lathe: Machine, caplog: pytest.LogCaptureFixture
) -> None:
    weak = dataclasses.replace(lathe, power_kw=0.1)

    with caplog.at_level(logging.WARNING, logger="cnc_estimator"):
        params = derive_cutting_parameters(reference_material, carbide, weak, 50.0, depth_mm=2.0)

    assert params.power_kw > 0.1
    assert params.power_exceeded is True
    assert params.spindle_speed_rpm == pytest.approx(2500.0 / math.pi)
    assert "exceeds L1 spindle rating" in caplog.text
