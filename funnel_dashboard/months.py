from __future__ import annotations

import unicodedata
from dataclasses import replace
from datetime import date
from typing import Mapping

from funnel_dashboard.config import ConfigurationError
from funnel_dashboard.models import Month


MONTHS: tuple[Month, ...] = (
    Month("out", "Outubro", "Dados de Out/25", date(2025, 10, 1), date(2025, 10, 31)),
    Month("nov", "Novembro", "Dados de Nov/25", date(2025, 11, 1), date(2025, 11, 30)),
    Month("dez", "Dezembro", "Dados de Dez/25", date(2025, 12, 1), date(2025, 12, 31)),
    Month("jan", "Janeiro", "Dados de Jan/26", date(2026, 1, 1), date(2026, 1, 31)),
)


def _fold(value: str) -> str:
    return (
        unicodedata.normalize("NFKD", value)
        .encode("ascii", "ignore")
        .decode("ascii")
        .strip()
        .lower()
    )


def with_tab_overrides(
    months: tuple[Month, ...], overrides: Mapping[str, str]
) -> tuple[Month, ...]:
    """Apply `SHEET_TAB_MAP` entries keyed by month id or month name."""
    if not overrides:
        return months
    folded = {_fold(key): value for key, value in overrides.items()}
    out: list[Month] = []
    for month in months:
        tab = folded.get(_fold(month.id)) or folded.get(_fold(month.name))
        out.append(replace(month, tab_name=tab) if tab else month)
    return tuple(out)


def find_month(reference: str, months: tuple[Month, ...] = MONTHS) -> Month:
    key = _fold(reference)
    for month in months:
        if key in (_fold(month.id), _fold(month.name)):
            return month
    known = ", ".join(month.name for month in months)
    raise ConfigurationError(f"Unknown month '{reference}'. Use one of: {known}.")


def current_month_id(today: date | None = None, months: tuple[Month, ...] = MONTHS) -> str:
    today = today or date.today()
    for month in months:
        if month.contains(today):
            return month.id
    return months[-1].id
