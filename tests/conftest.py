from __future__ import annotations

from typing import Any, Callable

import pytest

from cnc_estimator import config
from cnc_estimator.catalogs import (
    CatalogSnapshot,
    Machine,
    MachineType,
    Material,
    Tool,
    ValueRange,
    coating_catalog,
    load_catalog_snapshot,
    machine_catalog,
    material_catalog,
    tool_catalog,
)
from cnc_estimator.config import EngineSettings
from cnc_estimator.domain_models import Operation, OperationType


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep environment overrides and the settings cache from leaking between tests."""

    monkeypatch.delenv(config.APP_SETTINGS_ENV_VAR, raising=False)
    monkeypatch.delenv(config.CATALOG_DIR_ENV_VAR, raising=False)
    monkeypatch.setattr(config, "_APP_SETTINGS_CACHE", None)


@pytest.fixture()
def settings() -> EngineSettings:
    return EngineSettings()


@pytest.fixture()
def bundled_snapshot() -> CatalogSnapshot:
    return load_catalog_snapshot()


@pytest.fixture()
def reference_material() -> Material:
    """Low carbon steel with a 0.2 mm/rev feed midpoint."""

    return Material(
        id="ref-steel",
        name="Reference Steel",
        category="Steel",
        hardness_range="120-180 HB",
        cutting_speed_range=ValueRange(100.0, 150.0),
        feed_rate_range=ValueRange(0.1, 0.3),
        taylor_n=0.25,
        taylor_c=520.0,
        price_per_kg=2.0,
        max_depth_per_pass_mm=3.0,
    )


@pytest.fixture()
def carbide() -> Tool:
    return Tool(id="carbide", name="Carbide", speed_multiplier=1.0, depth_factor=1.0)


@pytest.fixture()
def lathe() -> Machine:
    return Machine(
        id="lathe",
        code="L1",
        type=MachineType.TURNING,
        hourly_rate=150.0,
        max_rpm=4000.0,
        max_diameter_mm=350.0,
    )


@pytest.fixture()
def mill() -> Machine:
    return Machine(
        id="mill",
        code="M1",
        type=MachineType.MILLING_4AXIS,
        hourly_rate=120.0,
        max_rpm=15000.0,
    )


@pytest.fixture()
def reference_snapshot(
    reference_material: Material, carbide: Tool, lathe: Machine, mill: Machine
) -> CatalogSnapshot:
    hss = Tool(id="hss", name="HSS", speed_multiplier=0.6, depth_factor=0.5)
    return CatalogSnapshot(
        materials=material_catalog([reference_material]),
        tools=tool_catalog([carbide, hss]),
        machines=machine_catalog([lathe, mill]),
        coatings=coating_catalog(()),
    )


@pytest.fixture()
def make_operation() -> Callable[..., Operation]:
    def _make(**overrides: Any) -> Operation:
        fields: dict[str, Any] = dict(
            operation_type=OperationType.TURNING,
            material_id="ref-steel",
            tool_id="carbide",
            machine_id="lathe",
            diameter_mm=50.0,
            depth_mm=2.0,
            length_mm=100.0,
            quantity=10,
        )
        fields.update(overrides)
        return Operation(**fields)

    return _make
