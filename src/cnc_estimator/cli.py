"""Command line interface for estimating a work order file.

The order file is JSON::

    {"name": "...", "order_quantity": 10, "operations": [{...}, ...]}

Each operation uses the keys accepted by
:func:`cnc_estimator.domain_models.operation_from_mapping`.  Optional
``material_prices_per_kg``, ``labor_rate_per_hour`` and ``additional_costs``
keys feed the material cost and the quote.  The report lists
every operation by index, the failed ones separately, and the order totals
and quote.  The exit status is ``1`` when at least one operation failed and
``2`` when the order, settings or catalogs cannot be loaded.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Iterable, Mapping

from .catalogs import CatalogError, load_catalog_snapshot
from .config import ConfigError, configure_logging, get_logger, load_engine_settings, load_mapping_file
from .errors import InvalidParameterError
from .pricing import QuoteSummary, WorkOrderReport, evaluate_work_order, price_work_order

log = get_logger("cli")


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m cnc_estimator",
        description="Estimate machining time and cost for a CNC work order.",
    )
    parser.add_argument("order", type=Path, help="Path to the work order JSON file.")
    parser.add_argument(
        "--catalog-dir",
        type=Path,
        default=None,
        help="Directory holding materials/tools/machines/coatings CSV files.",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="JSON or YAML file merged over the bundled app settings.",
    )
    parser.add_argument(
        "--prices",
        type=Path,
        default=None,
        help="JSON or YAML file mapping material ids to prices per kg.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Evaluate operations on a thread pool of this size.",
    )
    parser.add_argument(
        "--format",
        choices=("json", "table"),
        default="table",
        help="Output format (default: table).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log derived cutting parameters.",
    )
    return parser


def load_order(path: Path) -> dict[str, Any]:
    """Read and shape-check a work order file."""

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read work order {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise ConfigError(f"Work order {path.name} is not valid UTF-8 text: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Malformed JSON in {path.name}: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise ConfigError(f"Work order root must be an object in {path.name}")
    operations = raw.get("operations")
    if not isinstance(operations, list):
        raise ConfigError(f"Work order {path.name} needs an 'operations' list")
    order = dict(raw)
    order.setdefault("name", path.stem)
    return order


def _order_quantity(order: Mapping[str, Any]) -> int:
    raw = order.get("order_quantity", order.get("orderQuantity", 1))
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 1:
        raise ConfigError(f"order_quantity must be an integer >= 1, got {raw!r}")
    return raw


def _mapping_option(order: Mapping[str, Any], key: str) -> dict[str, Any]:
    raw = order.get(key) or {}
    if not isinstance(raw, Mapping):
        raise ConfigError(f"{key} must be an object, got {type(raw).__name__}")
    return dict(raw)


def material_prices(order: Mapping[str, Any], prices_path: Path | None = None) -> dict[str, Any]:
    """Merge the price list file with the order's own ``material_prices_per_kg``."""

    prices: dict[str, Any] = {}
    if prices_path is not None:
        prices.update(load_mapping_file(prices_path))
    prices.update(_mapping_option(order, "material_prices_per_kg"))
    return prices


def report_payload(name: str, report: WorkOrderReport, quote: QuoteSummary) -> dict[str, Any]:
    operations: list[dict[str, Any]] = []
    for outcome in report.outcomes:
        entry: dict[str, Any] = {"index": outcome.index, "label": outcome.label, "ok": outcome.ok}
        if outcome.result is not None:
            entry["result"] = outcome.result.as_dict()
        else:
            entry["error"] = {
                "code": getattr(outcome.error, "code", "estimation_error"),
                "message": str(outcome.error),
            }
        operations.append(entry)
    return {
        "name": name,
        "operations": operations,
        "failures": [outcome.index for outcome in report.failures],
        "totals": report.totals.as_dict(),
        "quote": quote.as_dict(),
    }


def render_table(name: str, report: WorkOrderReport, quote: QuoteSummary) -> str:
    lines = [f"WORK ORDER: {name}", "=" * 74]
    frame = report.to_frame()
    if frame.empty:
        lines.append("(no operations)")
    else:
        columns = [
            column
            for column in (
                "label",
                "spindle_speed_rpm",
                "feed_rate_mm_per_rev",
                "cutting_time_min",
                "setup_time_min",
                "tool_change_time_min",
                "total_time_min",
                "tool_life_min",
                "total_cost",
            )
            if column in frame.columns
        ]
        lines.append(frame[columns].to_string(float_format=lambda value: f"{value:,.2f}"))

    if report.failures:
        lines.extend(["", "FAILED OPERATIONS", "-" * 74])
        for outcome in report.failures:
            code = getattr(outcome.error, "code", "estimation_error")
            lines.append(f"  #{outcome.index} {outcome.label}: [{code}] {outcome.error}")

    totals = report.totals
    lines.extend(
        [
            "",
            "TOTALS",
            "-" * 74,
            f"  Cutting time:      {totals.cutting_time_min:>12,.2f} min",
            f"  Setup time:        {totals.setup_time_min:>12,.2f} min",
            f"  Tool change time:  {totals.tool_change_time_min:>12,.2f} min",
            f"  Total time:        {totals.total_time_min:>12,.2f} min",
            f"  Machine cost:      {totals.machine_cost:>12,.2f}",
            f"  Material cost:     {totals.material_cost:>12,.2f}",
            f"  Coating cost:      {totals.coating_cost:>12,.2f}",
            f"  Labour cost:       {quote.labor_cost:>12,.2f}",
            f"  Additional costs:  {quote.additional_costs:>12,.2f}",
            f"  Scrap ({quote.scrap_rate_pct:g}%):       {quote.scrap_cost:>12,.2f}",
            f"  Profit ({quote.profit_margin_pct:g}%):     {quote.profit:>12,.2f}",
            f"  Grand total:       {quote.grand_total:>12,.2f}",
            f"  Per part (x{quote.order_quantity}):    {quote.cost_per_part:>12,.2f}",
        ]
    )
    return "\n".join(lines)


def main(argv: Iterable[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    if args.workers is not None and args.workers < 1:
        parser.error("--workers must be >= 1")

    try:
        order = load_order(args.order)
        quantity = _order_quantity(order)
        settings = load_engine_settings(override_path=args.settings)
        snapshot = load_catalog_snapshot(args.catalog_dir, prices_per_kg=material_prices(order, args.prices))
        additional_costs = _mapping_option(order, "additional_costs")
    except (CatalogError, ConfigError) as exc:
        log.error("%s", exc)
        print(f"error: {exc}", file=sys.stderr)
        return 2

    report = evaluate_work_order(
        order["operations"], snapshot, settings=settings, max_workers=args.workers
    )
    try:
        quote = price_work_order(
            report.totals,
            order_quantity=quantity,
            labor_rate_per_hour=order.get("labor_rate_per_hour"),
            additional_costs=additional_costs,
            settings=settings,
        )
    except InvalidParameterError as exc:
        log.error("%s", exc)
        print(f"error: {exc}", file=sys.stderr)
        return 2
    name = str(order["name"])

    if args.format == "json":
        print(json.dumps(report_payload(name, report, quote), indent=2))
    else:
        print(render_table(name, report, quote))
    return 1 if report.failures else 0


if __name__ == "__main__":  # pragma: no cover - exercised via module execution
    raise SystemExit(main())
