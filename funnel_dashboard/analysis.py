from __future__ import annotations

from dataclasses import fields
from typing import Iterable, Sequence

from funnel_dashboard.models import (
    METRIC_FIELDS,
    MetricComparison,
    MonthMetrics,
    ProductDataset,
    ProductSummary,
    RankingEntry,
    WeeklyMetrics,
    WeekTotals,
)


FUNNEL_STAGES = ("students", "forms", "qualified", "scheduled", "calls_completed", "sales")
TREND_THRESHOLD_PCT = 5.0

# Ranking metrics that are not plain week sums.
_TOTALS_METRICS = {
    "traffic_profit": lambda totals: totals.traffic_profit,
}


def calculate_totals(weeks: Iterable[WeeklyMetrics]) -> WeekTotals:
    totals = WeekTotals()
    names = [item.name for item in fields(WeekTotals)]
    for week in weeks:
        for name in names:
            setattr(totals, name, getattr(totals, name) + getattr(week, name))
    return totals


def sum_field(weeks: Sequence[WeeklyMetrics], field_name: str) -> float:
    return sum(getattr(week, field_name) for week in weeks)


def average(weeks: Sequence[WeeklyMetrics], field_name: str) -> float:
    if not weeks:
        return 0.0
    return sum_field(weeks, field_name) / len(weeks)


def variation(first: float, second: float) -> float:
    """Percent change from `first` to `second`.

    A zero base has no ratio: growth from zero reads as +100%, anything
    else as 0%.
    """
    if first == 0:
        return 100.0 if second > 0 else 0.0
    return (second - first) / first * 100


def trend_direction(pct: float, threshold: float = TREND_THRESHOLD_PCT) -> str:
    if pct > threshold:
        return "up"
    if pct < -threshold:
        return "down"
    return "neutral"


def product_summary(dataset: ProductDataset) -> ProductSummary:
    trend = dataset.tendencia
    return ProductSummary(
        name=dataset.name,
        totals=calculate_totals(dataset.weeks),
        trend_revenue=trend.funnel_revenue if trend else 0.0,
        trend_profit=trend.funnel_profit if trend else 0.0,
        mean_funnel_roas=average(dataset.weeks, "funnel_roas"),
        trend_funnel_roas=trend.funnel_roas if trend else 0.0,
    )


def trend_outlook(dataset: ProductDataset) -> dict[str, float | str]:
    """Compare the projection row against the weeks recorded so far."""
    summary = product_summary(dataset)
    revenue = summary.totals.funnel_revenue
    profit = summary.totals.funnel_profit
    revenue_pct = (summary.trend_revenue - revenue) / revenue * 100 if revenue > 0 else 0.0
    profit_pct = (summary.trend_profit - profit) / abs(profit) * 100 if profit != 0 else 0.0
    return {
        "revenue_pct": revenue_pct,
        "profit_pct": profit_pct,
        "revenue_direction": trend_direction(revenue_pct),
        "profit_direction": trend_direction(profit_pct),
    }


def funnel_stages(dataset: ProductDataset, week: int | None = None) -> dict[str, float]:
    """Stage counts for the whole month, or for a 1-based week number."""
    if week is None:
        return {stage: sum_field(dataset.weeks, stage) for stage in FUNNEL_STAGES}
    if 1 <= week <= len(dataset.weeks):
        selected = dataset.weeks[week - 1]
        return {stage: getattr(selected, stage) for stage in FUNNEL_STAGES}
    return {stage: 0.0 for stage in FUNNEL_STAGES}


def month_metrics(dataset: ProductDataset | None, month: str) -> MonthMetrics:
    if dataset is None:
        return MonthMetrics(month=month)
    totals = calculate_totals(dataset.weeks)
    invested = totals.invested
    return MonthMetrics(
        month=month,
        revenue=totals.traffic_revenue,
        invested=invested,
        profit=totals.funnel_profit,
        roi=totals.funnel_profit / invested * 100 if invested > 0 else 0.0,
        roas=totals.traffic_revenue / invested if invested > 0 else 0.0,
        sales=totals.sales,
        students=totals.students,
        conversion_rate=average(dataset.weeks, "conversion_rate"),
    )


COMPARISON_LABELS: tuple[tuple[str, str], ...] = (
    ("Faturamento", "revenue"),
    ("Investimento", "invested"),
    ("Lucro", "profit"),
    ("ROI", "roi"),
    ("ROAS", "roas"),
    ("Vendas", "sales"),
    ("Alunos", "students"),
    ("Taxa Conversão", "conversion_rate"),
)


def compare_months(first: MonthMetrics, second: MonthMetrics) -> list[MetricComparison]:
    rows: list[MetricComparison] = []
    for label, attr in COMPARISON_LABELS:
        a = getattr(first, attr)
        b = getattr(second, attr)
        rows.append(MetricComparison(label=label, first=a, second=b, variation=variation(a, b)))
    return rows


def metric_value(dataset: ProductDataset, metric: str) -> float:
    if metric in _TOTALS_METRICS:
        return _TOTALS_METRICS[metric](calculate_totals(dataset.weeks))
    if metric in METRIC_FIELDS:
        return sum_field(dataset.weeks, metric)
    raise ValueError(f"Unknown ranking metric: {metric!r}")


def rank_products(datasets: Sequence[ProductDataset], metric: str) -> list[RankingEntry]:
    """Descending by metric; ties keep the input order (sorted() is stable)."""
    if metric not in _TOTALS_METRICS and metric not in METRIC_FIELDS:
        raise ValueError(f"Unknown ranking metric: {metric!r}")
    scored = [(dataset.name, metric_value(dataset, metric)) for dataset in datasets]
    ordered = sorted(scored, key=lambda item: item[1], reverse=True)
    return [
        RankingEntry(position=index, name=name, value=value)
        for index, (name, value) in enumerate(ordered, start=1)
    ]


def ranking_metrics() -> tuple[str, ...]:
    return tuple(sorted(set(METRIC_FIELDS) | set(_TOTALS_METRICS)))
