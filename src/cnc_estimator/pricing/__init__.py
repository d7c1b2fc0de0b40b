"""Operation time/cost estimation and work order roll-ups."""

from .quote import QuoteSummary, price_work_order
from .time_estimator import (
    OperationResult,
    compute_operation,
    cutting_time_min,
    max_depth_per_pass,
    passes_for_depth,
    peck_correction_factor,
    tool_changes_for,
)
from .work_order import (
    OperationOutcome,
    WorkOrderReport,
    WorkOrderTotals,
    aggregate_work_order,
    evaluate_work_order,
)

__all__ = [
    "OperationOutcome",
    "OperationResult",
    "QuoteSummary",
    "WorkOrderReport",
    "WorkOrderTotals",
    "aggregate_work_order",
    "compute_operation",
    "cutting_time_min",
    "evaluate_work_order",
    "max_depth_per_pass",
    "passes_for_depth",
    "peck_correction_factor",
    "price_work_order",
    "tool_changes_for",
]
