from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, fields
from datetime import date
from enum import Enum


class RowKind(str, Enum):
    WEEK = "week"
    TREND = "trend"
    IGNORED = "ignored"


@dataclass(frozen=True)
class WeeklyMetrics:
    invested: float = 0.0
    traffic_revenue: float = 0.0
    traffic_roas: float = 0.0
    students: float = 0.0
    forms: float = 0.0
    form_fill_rate: float = 0.0
    qualified: float = 0.0
    scheduled: float = 0.0
    scheduling_rate: float = 0.0
    calls_completed: float = 0.0
    attendance_rate: float = 0.0
    sales: float = 0.0
    conversion_rate: float = 0.0
    ascension_rate: float = 0.0
    monetization_sales: float = 0.0
    deposits: float = 0.0
    funnel_revenue: float = 0.0
    funnel_profit: float = 0.0
    funnel_roas: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, object]) -> "WeeklyMetrics":
        values: dict[str, float] = {}
        for item in fields(cls):
            raw = payload[item.name]
            if isinstance(raw, bool) or not isinstance(raw, (int, float)):
                raise TypeError(f"Field '{item.name}' is not numeric: {raw!r}")
            number = float(raw)
            if not math.isfinite(number):
                raise ValueError(f"Field '{item.name}' is not finite: {raw!r}")
            values[item.name] = number
        return cls(**values)


METRIC_FIELDS: tuple[str, ...] = tuple(item.name for item in fields(WeeklyMetrics))


@dataclass(frozen=True)
class ProductDataset:
    """One funnel's month: chronological weeks plus an optional projection."""

    name: str
    weeks: tuple[WeeklyMetrics, ...] = ()
    tendencia: WeeklyMetrics | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "weeks": [week.to_dict() for week in self.weeks],
            "tendencia": self.tendencia.to_dict() if self.tendencia is not None else None,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, object]) -> "ProductDataset":
        name = payload["name"]
        weeks = payload["weeks"]
        trend = payload.get("tendencia")
        if not isinstance(name, str) or not isinstance(weeks, list):
            raise TypeError("Malformed product payload.")
        if trend is not None and not isinstance(trend, dict):
            raise TypeError("Malformed trend payload.")
        return cls(
            name=name,
            weeks=tuple(WeeklyMetrics.from_dict(row) for row in weeks),
            tendencia=WeeklyMetrics.from_dict(trend) if trend is not None else None,
        )


@dataclass(frozen=True)
class Month:
    id: str
    name: str
    tab_name: str
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass
class WeekTotals:
    students: float = 0.0
    forms: float = 0.0
    qualified: float = 0.0
    scheduled: float = 0.0
    calls_completed: float = 0.0
    sales: float = 0.0
    invested: float = 0.0
    traffic_revenue: float = 0.0
    funnel_revenue: float = 0.0
    funnel_profit: float = 0.0
    monetization_sales: float = 0.0
    deposits: float = 0.0

    @property
    def traffic_profit(self) -> float:
        return self.traffic_revenue - self.invested


@dataclass
class ProductSummary:
    name: str
    totals: WeekTotals
    trend_revenue: float = 0.0
    trend_profit: float = 0.0
    mean_funnel_roas: float = 0.0
    trend_funnel_roas: float = 0.0


@dataclass
class MonthMetrics:
    month: str
    revenue: float = 0.0
    invested: float = 0.0
    profit: float = 0.0
    roi: float = 0.0
    roas: float = 0.0
    sales: float = 0.0
    students: float = 0.0
    conversion_rate: float = 0.0


@dataclass
class MetricComparison:
    label: str
    first: float
    second: float
    variation: float


@dataclass
class RankingEntry:
    position: int
    name: str
    value: float


@dataclass
class MonthFetchResult:
    month_id: str
    products: list[ProductDataset] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
