from __future__ import annotations

from typing import Sequence

from funnel_dashboard.models import WeeklyMetrics
from funnel_dashboard.normalizer import normalize_value
from funnel_dashboard.schema import DEFAULT_SCHEMA, ColumnSchema


_CELL_FIELDS = (
    "invested",
    "traffic_revenue",
    "traffic_roas",
    "students",
    "forms",
    "form_fill_rate",
    "qualified",
    "scheduled",
    "scheduling_rate",
    "calls_completed",
    "attendance_rate",
    "sales",
    "conversion_rate",
    "ascension_rate",
    "monetization_sales",
    "deposits",
    "funnel_revenue",
)


def funnel_roas(funnel_revenue: float, invested: float) -> float:
    return funnel_revenue / invested if invested > 0 else 0.0


def decode_row(row: Sequence[object], schema: ColumnSchema = DEFAULT_SCHEMA) -> WeeklyMetrics:
    values = {name: normalize_value(schema.cell(row, name)) for name in _CELL_FIELDS}
    # The sheet's own ROAS column (T) can be stale or an error cell.
    values["funnel_profit"] = values["funnel_revenue"] - values["invested"]
    values["funnel_roas"] = funnel_roas(values["funnel_revenue"], values["invested"])
    return WeeklyMetrics(**values)
