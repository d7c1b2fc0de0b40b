"""Work order aggregation across independently estimated operations."""

from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from typing import Any, Iterable, Mapping, Sequence, Union

import pandas as pd

from cnc_estimator.catalogs import CatalogSnapshot
from cnc_estimator.config import EngineSettings, get_logger, load_engine_settings
from cnc_estimator.domain_models import Operation, operation_from_mapping
from cnc_estimator.errors import EstimationError

from .time_estimator import OperationResult, compute_operation

__all__ = [
    "OperationOutcome",
    "WorkOrderReport",
    "WorkOrderTotals",
    "aggregate_work_order",
    "evaluate_work_order",
]

log = get_logger("pricing", "work_order")

OperationInput = Union[Operation, Mapping[str, Any]]

_SUMMED_FIELDS = (
    "cutting_time_min",
    "setup_time_min",
    "tool_change_time_min",
    "total_time_min",
    "machine_cost",
    "material_cost",
    "coating_cost",
    "total_cost",
)


@dataclass(frozen=True, slots=True)
class WorkOrderTotals:
    cutting_time_min: float = 0.0
    setup_time_min: float = 0.0
    tool_change_time_min: float = 0.0
    total_time_min: float = 0.0
    total_cost: float = 0.0
    machine_cost: float = 0.0
    material_cost: float = 0.0
    coating_cost: float = 0.0
    operation_count: int = 0

    @property
    def total_time_hours(self) -> float:
        return self.total_time_min / 60.0

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def aggregate_work_order(results: Iterable[OperationResult]) -> WorkOrderTotals:
    """Sum ``results`` field by field.

    ``math.fsum`` returns the correctly rounded sum, so the totals do not
    depend on the order of ``results``.  An empty input gives zero totals.
    """

    rows = list(results)
    sums = {name: math.fsum(getattr(result, name) for result in rows) for name in _SUMMED_FIELDS}
    return WorkOrderTotals(operation_count=len(rows), **sums)


@dataclass(frozen=True, slots=True)
class OperationOutcome:
    """Result or failure of the operation at ``index`` in a work order."""

    index: int
    result: OperationResult | None = None
    error: EstimationError | None = None
    label: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class WorkOrderReport:
    outcomes: tuple[OperationOutcome, ...]
    totals: WorkOrderTotals

    @property
    def results(self) -> list[OperationResult]:
        return [outcome.result for outcome in self.outcomes if outcome.result is not None]

    @property
    def failures(self) -> list[OperationOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    def to_frame(self) -> pd.DataFrame:
        """Return one row per operation; failed rows carry the error and no numbers."""

        rows: list[dict[str, Any]] = []
        for outcome in self.outcomes:
            row: dict[str, Any] = {"index": outcome.index, "label": outcome.label}
            if outcome.result is not None:
                row.update(outcome.result.as_dict())
                row["error_code"] = None
                row["error"] = None
            else:
                row["error_code"] = getattr(outcome.error, "code", "estimation_error")
                row["error"] = str(outcome.error)
            rows.append(row)
        frame = pd.DataFrame(rows)
        if not frame.empty:
            frame = frame.set_index("index")
        return frame


def _evaluate_one(
    index: int,
    item: OperationInput,
    snapshot: CatalogSnapshot,
    settings: EngineSettings,
) -> OperationOutcome:
    label = ""
    try:
        operation = item if isinstance(item, Operation) else operation_from_mapping(item)
        label = operation.label
        result = compute_operation(
            operation,
            snapshot.materials,
            snapshot.tools,
            snapshot.machines,
            coatings=snapshot.coatings,
            settings=settings,
        )
    except EstimationError as exc:
        if not label and isinstance(item, Mapping):
            label = str(item.get("label") or "")
        return OperationOutcome(index=index, error=exc, label=label)
    return OperationOutcome(index=index, result=result, label=label)


def evaluate_work_order(
    operations: Sequence[OperationInput],
    snapshot: CatalogSnapshot,
    *,
    settings: EngineSettings | None = None,
    max_workers: int | None = None,
) -> WorkOrderReport:
    """Estimate every operation of a work order and aggregate the successes.

    Operations are independent, so with ``max_workers > 1`` they run on a
    thread pool.  Failures are reported per index in
    :attr:`WorkOrderReport.failures` and are left out of the totals.
    """

    if settings is None:
        settings = load_engine_settings()

    items = list(operations)
    if max_workers is not None and max_workers > 1 and len(items) > 1:
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="WorkOrder") as executor:
            futures = [
                executor.submit(_evaluate_one, index, item, snapshot, settings)
                for index, item in enumerate(items)
            ]
            outcomes = tuple(future.result() for future in futures)
    else:
        outcomes = tuple(_evaluate_one(index, item, snapshot, settings) for index, item in enumerate(items))

    for outcome in outcomes:
        if outcome.error is not None:
            log.warning("Operation %d failed: %s", outcome.index, outcome.error)

    totals = aggregate_work_order(outcome.result for outcome in outcomes if outcome.result is not None)
    return WorkOrderReport(outcomes=outcomes, totals=totals)
