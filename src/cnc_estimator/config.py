"""Configuration helpers for the CNC estimator."""
from __future__ import annotations

import copy
import json
import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

RESOURCE_DIR = Path(__file__).resolve().parent / "resources"
APP_SETTINGS_ENV_VAR = "CNC_ESTIMATOR_APP_SETTINGS"
CATALOG_DIR_ENV_VAR = "CNC_ESTIMATOR_CATALOG_DIR"
OPERATION_TYPES = ("turning", "milling", "drilling", "boring")
_APP_SETTINGS_CACHE: dict[str, Any] | None = None

LOGGER_NAME = "cnc_estimator"


def get_logger(*names: str) -> logging.Logger:
    """Return a logger under the shared estimator namespace."""

    if not names:
        return logging.getLogger(LOGGER_NAME)
    qualified = ".".join((LOGGER_NAME, *names))
    return logging.getLogger(qualified)


logger = get_logger()


def configure_logging(level: int = logging.INFO, *, force: bool = False) -> None:
    """Initialise a basic logging configuration if none is present."""

    root = logging.getLogger()
    if root.handlers and not force:
        root.setLevel(level)
        return
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        force=force,
    )


class ConfigError(RuntimeError):
    """Raised when configuration data cannot be loaded or validated."""


def _load_mapping(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ConfigError(f"{path.name} is not valid UTF-8 text: {exc}") from exc
    if path.suffix.lower() in {".yaml", ".yml"}:
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Malformed YAML in {path.name}: {exc}") from exc
    else:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Malformed JSON in {path.name}: {exc}") from exc

    if not isinstance(raw, Mapping):
        raise ConfigError(f"Configuration root must be an object in {path.name}")

    return dict(raw)


def load_mapping_file(path: str | Path) -> dict[str, Any]:
    """Read a JSON or YAML file whose root is an object."""

    return _load_mapping(Path(path).expanduser())


def _merge_mappings(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    for key, value in override.items():
        if key in base and isinstance(base[key], Mapping) and isinstance(value, Mapping):
            base[key] = _merge_mappings(dict(base[key]), value)
        else:
            base[key] = value
    return base


def _load_app_settings_raw(override_path: Path | None = None) -> dict[str, Any]:
    base = _load_mapping(RESOURCE_DIR / "app_settings.json")

    if override_path is None:
        override_raw = os.getenv(APP_SETTINGS_ENV_VAR)
        if override_raw:
            override_path = Path(override_raw).expanduser()
            if not override_path.exists():
                logger.warning("Override settings path does not exist: %s", override_path)
                return base

    if override_path is not None:
        try:
            override = _load_mapping(override_path)
        except ConfigError as exc:
            raise ConfigError(f"Failed to load override settings: {exc}") from exc
        base = _merge_mappings(base, override)

    return base


def load_app_settings(*, reload: bool = False, override_path: str | Path | None = None) -> dict[str, Any]:
    """Return the merged application settings, applying optional overrides.

    An explicit ``override_path`` bypasses the cache; otherwise the settings
    named by ``CNC_ESTIMATOR_APP_SETTINGS`` are merged once and cached.
    """

    global _APP_SETTINGS_CACHE
    if override_path is not None:
        return _load_app_settings_raw(Path(override_path).expanduser())
    if reload or _APP_SETTINGS_CACHE is None:
        _APP_SETTINGS_CACHE = _load_app_settings_raw()

    return copy.deepcopy(_APP_SETTINGS_CACHE)


def _section(settings: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = settings.get(name)
    if not isinstance(section, Mapping):
        raise ConfigError(f"'{name}' section missing from app settings")
    return section


def _number(section: Mapping[str, Any], key: str, *, minimum: float = 0.0, strict: bool = False) -> float:
    raw = section.get(key)
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Setting {key!r} must be numeric, got {raw!r}") from exc
    if not math.isfinite(value) or value < minimum or (strict and value == minimum):
        bound = ">" if strict else ">="
        raise ConfigError(f"Setting {key!r} must be {bound} {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class EngineSettings:
    """Shop constants consumed by the time and cost calculators."""

    setup_time_min: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType({op: 2.0 for op in OPERATION_TYPES})
    )
    tool_change_min: float = 0.5
    peck_ratio_threshold: float = 3.0
    peck_coefficient: float = 0.15
    peck_exponent: float = 1.0
    engagement_ratio: float = 0.6
    specific_cutting_energy: float = 2000.0
    scrap_rate_pct: float = 3.0
    profit_margin_pct: float = 20.0
    labor_rate_per_hour: float = 0.0
    additional_costs: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType({"tool": 0.0, "shipping": 0.0, "heat_treatment": 0.0})
    )

    def setup_time_for(self, operation_type: str) -> float:
        try:
            return float(self.setup_time_min[operation_type])
        except KeyError as exc:
            raise ConfigError(f"No setup time configured for operation {operation_type!r}") from exc

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "EngineSettings":
        engine = _section(settings, "engine_defaults")
        quote = _section(settings, "quote_defaults")

        setup_raw = engine.get("setup_time_min")
        if not isinstance(setup_raw, Mapping):
            raise ConfigError("'engine_defaults.setup_time_min' must be a table keyed by operation")
        missing = [op for op in OPERATION_TYPES if op not in setup_raw]
        if missing:
            raise ConfigError(f"Setup time missing for operations: {', '.join(missing)}")
        setup = {str(op): _number(setup_raw, op) for op in setup_raw}

        peck = engine.get("peck_drilling")
        if not isinstance(peck, Mapping):
            raise ConfigError("'engine_defaults.peck_drilling' section missing from app settings")
        power = _section(engine, "cutting_power")

        extras = quote.get("additional_costs", {})
        if not isinstance(extras, Mapping):
            raise ConfigError("'quote_defaults.additional_costs' must be a table of named costs")

        return cls(
            setup_time_min=MappingProxyType(setup),
            tool_change_min=_number(engine, "tool_change_min"),
            peck_ratio_threshold=_number(peck, "ratio_threshold", strict=True),
            peck_coefficient=_number(peck, "coefficient", strict=True),
            peck_exponent=_number(peck, "exponent", strict=True),
            engagement_ratio=_number(power, "engagement_ratio", strict=True),
            specific_cutting_energy=_number(power, "specific_cutting_energy_n_mm2", strict=True),
            scrap_rate_pct=_number(quote, "scrap_rate_pct"),
            profit_margin_pct=_number(quote, "profit_margin_pct"),
            labor_rate_per_hour=_number(quote, "labor_rate_per_hour"),
            additional_costs=MappingProxyType({str(name): _number(extras, name) for name in extras}),
        )


def load_engine_settings(*, reload: bool = False, override_path: str | Path | None = None) -> EngineSettings:
    """Return validated :class:`EngineSettings` from the merged app settings."""

    return EngineSettings.from_settings(load_app_settings(reload=reload, override_path=override_path))


def catalog_dir_from_env() -> Path | None:
    """Return the catalog directory named by ``CNC_ESTIMATOR_CATALOG_DIR``."""

    raw = os.getenv(CATALOG_DIR_ENV_VAR)
    if not raw or not raw.strip():
        return None
    return Path(raw.strip()).expanduser()


__all__ = [
    "APP_SETTINGS_ENV_VAR",
    "CATALOG_DIR_ENV_VAR",
    "ConfigError",
    "EngineSettings",
    "LOGGER_NAME",
    "OPERATION_TYPES",
    "RESOURCE_DIR",
    "catalog_dir_from_env",
    "configure_logging",
    "get_logger",
    "load_app_settings",
    "load_engine_settings",
    "load_mapping_file",
    "logger",
]
