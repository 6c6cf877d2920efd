from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from typing import Sequence

from dotenv import find_dotenv, load_dotenv

from funnel_dashboard.analysis import (
    compare_months,
    funnel_stages,
    month_metrics,
    product_summary,
    rank_products,
    ranking_metrics,
    trend_outlook,
)
from funnel_dashboard.cache import MonthCache, select_cache_store
from funnel_dashboard.clients.sheets_client import SheetsApiError, SheetsResponseError
from funnel_dashboard.config import ConfigurationError, DashboardConfig
from funnel_dashboard.fetch import build_client, configured_months, fetch_month, fetch_months
from funnel_dashboard.models import ProductDataset
from funnel_dashboard.months import current_month_id, find_month
from funnel_dashboard.schema import SchemaMismatchError


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Marketing funnel dashboard data")
    parser.add_argument(
        "--month",
        help="Month id or name, e.g. 'nov' or 'Novembro' (default: current month)",
    )
    parser.add_argument(
        "--no-cache",
        dest="no_cache",
        action="store_true",
        help="Ignore cached data and fetch the sheet again.",
    )
    parser.add_argument("--product", help="Show the summary of a single funnel.")
    parser.add_argument(
        "--ranking",
        choices=ranking_metrics(),
        help="Rank all funnels by a metric summed over the month.",
    )
    parser.add_argument(
        "--compare",
        dest="compare_month",
        help="Second month to compare against (requires --product).",
    )
    parser.add_argument("--json", dest="as_json", action="store_true", help="Print JSON output.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def _find_product(products: list[ProductDataset], name: str) -> ProductDataset | None:
    wanted = name.strip().lower()
    for product in products:
        if product.name.lower() == wanted:
            return product
    return None


def _print_overview(month_name: str, products: list[ProductDataset]) -> None:
    print(f"{month_name}: {len(products)} funnels")
    for product in products:
        summary = product_summary(product)
        totals = summary.totals
        trend_label = "yes" if product.tendencia is not None else "no"
        print(
            f"- {product.name} | weeks={len(product.weeks)} | trend={trend_label} | "
            f"invested={totals.invested:.2f} | funnel_revenue={totals.funnel_revenue:.2f} | "
            f"profit={totals.funnel_profit:.2f} | roas={summary.mean_funnel_roas:.2f}"
        )


def _print_product(product: ProductDataset) -> None:
    summary = product_summary(product)
    outlook = trend_outlook(product)
    print(f"Funnel: {product.name}")
    for key, value in asdict(summary.totals).items():
        print(f"  {key}: {value:.2f}")
    print(f"  mean funnel ROAS: {summary.mean_funnel_roas:.2f}")
    print(
        f"  trend revenue: {summary.trend_revenue:.2f} "
        f"({outlook['revenue_pct']:+.1f}%, {outlook['revenue_direction']})"
    )
    print(
        f"  trend profit: {summary.trend_profit:.2f} "
        f"({outlook['profit_pct']:+.1f}%, {outlook['profit_direction']})"
    )
    print("  funnel stages:")
    for stage, value in funnel_stages(product).items():
        print(f"    {stage}: {value:.0f}")


def main(argv: Sequence[str] | None = None) -> None:
    try:
        load_dotenv(find_dotenv(usecwd=True), override=False)
    except Exception:
        pass

    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = DashboardConfig.from_env()
        config.validate()
        months = configured_months(config)
        month = find_month(args.month or current_month_id(months=months), months)
        second = find_month(args.compare_month, months) if args.compare_month else None
    except ConfigurationError as exc:
        raise SystemExit(str(exc)) from exc

    if second is not None and not args.product:
        raise SystemExit("--compare needs --product to know which funnel to compare.")

    client = build_client(config)
    cache = MonthCache(
        store=select_cache_store(config),
        fetcher=lambda month_id: fetch_month(month_id, config, client),
        ttl_sec=config.cache_ttl_sec,
    )

    if second is not None:
        results = fetch_months(
            [month.id, second.id],
            lambda month_id: cache.get_or_fetch(month_id, force_refresh=args.no_cache),
        )
        failures = [result for result in results if not result.ok]
        if failures:
            raise SystemExit(
                "; ".join(f"{result.month_id}: {result.error}" for result in failures)
            )
        first_metrics = month_metrics(_find_product(results[0].products, args.product), month.name)
        second_metrics = month_metrics(_find_product(results[1].products, args.product), second.name)
        rows = compare_months(first_metrics, second_metrics)
        if args.as_json:
            print(json.dumps([asdict(row) for row in rows], ensure_ascii=False, indent=2))
            return
        print(f"{args.product}: {month.name} vs {second.name}")
        for row in rows:
            print(f"- {row.label}: {row.first:.2f} -> {row.second:.2f} ({row.variation:+.1f}%)")
        return

    try:
        products = cache.get_or_fetch(month.id, force_refresh=args.no_cache)
    except (SheetsApiError, SheetsResponseError, SchemaMismatchError) as exc:
        raise SystemExit(f"Could not load {month.name}: {exc}") from exc

    if args.ranking:
        entries = rank_products(products, args.ranking)
        if args.as_json:
            print(json.dumps([asdict(entry) for entry in entries], ensure_ascii=False, indent=2))
            return
        print(f"Ranking by {args.ranking} ({month.name}):")
        for entry in entries:
            print(f"{entry.position}. {entry.name}: {entry.value:.2f}")
        return

    if args.product:
        product = _find_product(products, args.product)
        if product is None:
            raise SystemExit(f"Funnel '{args.product}' not found in {month.name}.")
        if args.as_json:
            print(json.dumps(product.to_dict(), ensure_ascii=False, indent=2))
            return
        _print_product(product)
        return

    if args.as_json:
        print(json.dumps([product.to_dict() for product in products], ensure_ascii=False, indent=2))
        return
    _print_overview(month.name, products)


if __name__ == "__main__":
    main()
