"""Order-level price roll-up with labour, additional costs, scrap and margin."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Mapping

from cnc_estimator.config import EngineSettings, load_engine_settings
from cnc_estimator.errors import InvalidParameterError

from .work_order import WorkOrderTotals

__all__ = ["QuoteSummary", "price_work_order"]


@dataclass(frozen=True, slots=True)
class QuoteSummary:
    subtotal: float
    scrap_cost: float
    profit: float
    grand_total: float
    cost_per_part: float
    order_quantity: int
    scrap_rate_pct: float
    profit_margin_pct: float
    operations_cost: float = 0.0
    labor_cost: float = 0.0
    labor_rate_per_hour: float = 0.0
    additional_costs: float = 0.0
    additional_cost_items: dict[str, float] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def _percent(value: float, label: str) -> float:
    if not math.isfinite(value) or value < 0:
        raise InvalidParameterError(f"{label} must be a percentage >= 0, got {value!r}")
    return float(value)


def _amount(value: Any, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidParameterError(f"{label} must be a number >= 0, got {value!r}")
    if not math.isfinite(value) or value < 0:
        raise InvalidParameterError(f"{label} must be a number >= 0, got {value!r}")
    return float(value)


def price_work_order(
    totals: WorkOrderTotals,
    *,
    order_quantity: int = 1,
    scrap_rate_pct: float | None = None,
    profit_margin_pct: float | None = None,
    labor_rate_per_hour: float | None = None,
    additional_costs: Mapping[str, float] | None = None,
    settings: EngineSettings | None = None,
) -> QuoteSummary:
    """Roll ``totals`` up into an order price.

    The subtotal is the operations cost plus labour (total hours at
    ``labor_rate_per_hour``) plus the named ``additional_costs`` (tool,
    shipping, heat treatment ...), which are laid over the configured ones.
    Scrap is charged on the subtotal and profit on subtotal plus scrap.
    Arguments left as ``None`` fall back to the ``quote_defaults`` settings.
    Values are not rounded here.
    """

    if isinstance(order_quantity, bool) or not isinstance(order_quantity, int) or order_quantity < 1:
        raise InvalidParameterError(f"order_quantity must be an integer >= 1, got {order_quantity!r}")
    if settings is None:
        settings = load_engine_settings()
    if scrap_rate_pct is None:
        scrap_rate_pct = settings.scrap_rate_pct
    if profit_margin_pct is None:
        profit_margin_pct = settings.profit_margin_pct
    if labor_rate_per_hour is None:
        labor_rate_per_hour = settings.labor_rate_per_hour
    scrap_rate = _percent(scrap_rate_pct, "scrap_rate_pct")
    margin = _percent(profit_margin_pct, "profit_margin_pct")
    labor_rate = _amount(labor_rate_per_hour, "labor_rate_per_hour")

    items: dict[str, float] = dict(settings.additional_costs)
    for name, value in (additional_costs or {}).items():
        items[str(name)] = _amount(value, f"additional cost {name!r}")

    labor = totals.total_time_hours * labor_rate
    extras = math.fsum(items.values())
    subtotal = totals.total_cost + labor + extras
    scrap = subtotal * scrap_rate / 100.0
    profit = (subtotal + scrap) * margin / 100.0
    grand_total = subtotal + scrap + profit
    return QuoteSummary(
        subtotal=subtotal,
        scrap_cost=scrap,
        profit=profit,
        grand_total=grand_total,
        cost_per_part=grand_total / order_quantity,
        order_quantity=order_quantity,
        scrap_rate_pct=scrap_rate,
        profit_margin_pct=margin,
        operations_cost=totals.total_cost,
        labor_cost=labor,
        labor_rate_per_hour=labor_rate,
        additional_costs=extras,
        additional_cost_items=items,
    )
