"""CNC machining parameter, time and cost estimation engine.

The engine is pure computation over immutable catalog snapshots::

    from cnc_estimator import load_catalog_snapshot, evaluate_work_order

    snapshot = load_catalog_snapshot()
    report = evaluate_work_order(order["operations"], snapshot)
"""

from __future__ import annotations

from .catalogs import CatalogSnapshot, load_catalog_snapshot
from .config import ConfigError, EngineSettings, load_engine_settings
from .domain_models import Operation, OperationType, operation_from_mapping
from .errors import (
    CatalogLookupError,
    EstimationError,
    InvalidGeometryError,
    InvalidParameterError,
    UnknownCoatingError,
    UnknownMachineError,
    UnknownMaterialError,
    UnknownToolError,
)
from .pricing import (
    OperationOutcome,
    OperationResult,
    QuoteSummary,
    WorkOrderReport,
    WorkOrderTotals,
    aggregate_work_order,
    compute_operation,
    evaluate_work_order,
    price_work_order,
)
from .speeds_feeds import CuttingParameters, derive_cutting_parameters, taylor_tool_life

__all__ = [
    "CatalogLookupError",
    "CatalogSnapshot",
    "ConfigError",
    "CuttingParameters",
    "EngineSettings",
    "EstimationError",
    "InvalidGeometryError",
    "InvalidParameterError",
    "Operation",
    "OperationOutcome",
    "OperationResult",
    "OperationType",
    "QuoteSummary",
    "UnknownCoatingError",
    "UnknownMachineError",
    "UnknownMaterialError",
    "UnknownToolError",
    "WorkOrderReport",
    "WorkOrderTotals",
    "aggregate_work_order",
    "compute_operation",
    "derive_cutting_parameters",
    "evaluate_work_order",
    "load_catalog_snapshot",
    "load_engine_settings",
    "operation_from_mapping",
    "price_work_order",
    "taylor_tool_life",
]
