from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Sequence

from funnel_dashboard.clients.sheets_client import SheetsClient
from funnel_dashboard.config import DashboardConfig
from funnel_dashboard.models import Month, MonthFetchResult, ProductDataset
from funnel_dashboard.months import MONTHS, find_month, with_tab_overrides
from funnel_dashboard.scanner import scan
from funnel_dashboard.schema import DEFAULT_SCHEMA, ColumnSchema, column_index, column_letter


logger = logging.getLogger(__name__)


def build_client(config: DashboardConfig) -> SheetsClient:
    return SheetsClient(
        spreadsheet_id=config.spreadsheet_id,
        api_key=config.sheets_api_key,
        base_url=config.sheets_api_base_url,
        timeout=config.sheets_timeout_sec,
        service_account_file=config.service_account_file,
    )


def configured_months(config: DashboardConfig) -> tuple[Month, ...]:
    return with_tab_overrides(MONTHS, config.sheet_tab_map)


def month_range(
    month: Month,
    config: DashboardConfig,
    schema: ColumnSchema = DEFAULT_SCHEMA,
) -> str:
    """Data range for a month tab.

    The schema decides the last column; SHEET_LAST_COLUMN can only widen it.
    """
    last = max(column_index(schema.last_column), column_index(config.sheet_last_column))
    return f"{month.tab_name}!A1:{column_letter(last)}{config.sheet_max_rows}"


def header_range(month: Month) -> str:
    return f"{month.tab_name}!1:1"


def _resolve_schema(month: Month, config: DashboardConfig, client: SheetsClient) -> ColumnSchema:
    if not config.schema_header_matching:
        return DEFAULT_SCHEMA
    # Whole first row, so moved columns past the default bound are still seen.
    header_rows = client.fetch_values(header_range(month))
    return ColumnSchema.from_header(header_rows[0] if header_rows else [])


def fetch_month(
    month_reference: str,
    config: DashboardConfig,
    client: SheetsClient | None = None,
) -> list[ProductDataset]:
    """Fetch one month tab and decode it into product datasets.

    Configuration problems raise ConfigurationError before any request is
    made. HTTP and payload problems raise from the client; nothing is retried.
    """
    config.validate()
    month = find_month(month_reference, configured_months(config))
    client = client or build_client(config)

    schema = _resolve_schema(month, config, client)
    rows = client.fetch_values(month_range(month, config, schema))
    products = scan(rows, schema, mode=config.scan_mode)
    logger.info(
        "Month %s (%s): %d rows -> %d products",
        month.id,
        month.tab_name,
        len(rows),
        len(products),
    )
    return products


def fetch_months(
    month_ids: Sequence[str],
    fetcher: Callable[[str], list[ProductDataset]],
    max_workers: int = 4,
) -> list[MonthFetchResult]:
    """Fetch several months in parallel; one failure does not stop the rest."""
    if not month_ids:
        return []
    workers = max(1, min(len(month_ids), max_workers))
    results: list[MonthFetchResult] = []
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [(month_id, pool.submit(fetcher, month_id)) for month_id in month_ids]
        for month_id, future in futures:
            try:
                results.append(MonthFetchResult(month_id=month_id, products=future.result()))
            except Exception as exc:
                logger.warning("Month %s failed: %s", month_id, exc)
                results.append(MonthFetchResult(month_id=month_id, error=str(exc)))
    return results
