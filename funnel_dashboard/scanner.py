"""Turn raw sheet rows into per-product datasets.

The sheet stores one block per product: a row carrying the product name,
four "Semana N" rows and a "Tendência" projection row. Two scanners are
available:

- ``scan_blocks`` walks the sheet with a fixed stride of five rows, which is
  how the dashboard has always read it.
- ``scan_blocks_adaptive`` ends a block on the trend row or on the next
  product name, so a product with fewer weeks does not shift its neighbours.
"""

from __future__ import annotations

import logging
import unicodedata
from typing import Sequence

from funnel_dashboard.decoder import decode_row
from funnel_dashboard.models import ProductDataset, RowKind, WeeklyMetrics
from funnel_dashboard.schema import DEFAULT_SCHEMA, ColumnSchema


logger = logging.getLogger(__name__)

BLOCK_SIZE = 5
HEADER_ROWS = 1


def _text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def classify_period(label: object) -> RowKind:
    lowered = _text(label).lower()
    if "tendência" in lowered or "tendencia" in lowered:
        return RowKind.TREND
    if "semana" in lowered:
        return RowKind.WEEK
    return RowKind.IGNORED


def _fold(value: str) -> str:
    return (
        unicodedata.normalize("NFKD", value)
        .encode("ascii", "ignore")
        .decode("ascii")
        .lower()
    )


def _product_name(row: Sequence[object], schema: ColumnSchema) -> str:
    return _text(schema.cell(row, "funil"))


def _build_dataset(
    name: str,
    weeks: list[WeeklyMetrics],
    trend: WeeklyMetrics | None,
    first_row: int,
) -> ProductDataset | None:
    if not weeks:
        logger.debug("Discarding block '%s' at row %d: no week rows.", name, first_row + 1)
        return None
    return ProductDataset(name=name, weeks=tuple(weeks), tendencia=trend)


def scan_blocks(
    rows: Sequence[Sequence[object]],
    schema: ColumnSchema = DEFAULT_SCHEMA,
) -> list[ProductDataset]:
    products: list[ProductDataset] = []
    i = HEADER_ROWS
    while i < len(rows):
        name = _product_name(rows[i], schema)
        if not name:
            i += 1
            continue

        weeks: list[WeeklyMetrics] = []
        trend: WeeklyMetrics | None = None
        for current in rows[i : i + BLOCK_SIZE]:
            kind = classify_period(schema.cell(current, "periodo"))
            if kind is RowKind.TREND:
                trend = decode_row(current, schema)
            elif kind is RowKind.WEEK:
                weeks.append(decode_row(current, schema))

        dataset = _build_dataset(name, weeks, trend, i)
        if dataset is not None:
            products.append(dataset)
        # Fixed stride, whatever the block actually contained.
        i += BLOCK_SIZE

    logger.debug("Stride scan produced %d products from %d rows.", len(products), len(rows))
    return products


def scan_blocks_adaptive(
    rows: Sequence[Sequence[object]],
    schema: ColumnSchema = DEFAULT_SCHEMA,
    max_block_rows: int = BLOCK_SIZE,
) -> list[ProductDataset]:
    max_block_rows = max(1, max_block_rows)
    products: list[ProductDataset] = []
    i = HEADER_ROWS
    while i < len(rows):
        name = _product_name(rows[i], schema)
        if not name:
            i += 1
            continue

        folded_name = _fold(name)
        weeks: list[WeeklyMetrics] = []
        trend: WeeklyMetrics | None = None
        j = i
        while j < len(rows) and j - i < max_block_rows:
            current = rows[j]
            if j > i:
                other = _product_name(current, schema)
                if other and _fold(other) != folded_name:
                    break
            kind = classify_period(schema.cell(current, "periodo"))
            j += 1
            if kind is RowKind.WEEK:
                weeks.append(decode_row(current, schema))
            elif kind is RowKind.TREND:
                trend = decode_row(current, schema)
                break

        dataset = _build_dataset(name, weeks, trend, i)
        if dataset is not None:
            products.append(dataset)
        i = j

    logger.debug("Adaptive scan produced %d products from %d rows.", len(products), len(rows))
    return products


def scan(
    rows: Sequence[Sequence[object]],
    schema: ColumnSchema = DEFAULT_SCHEMA,
    mode: str = "stride",
) -> list[ProductDataset]:
    if mode == "adaptive":
        return scan_blocks_adaptive(rows, schema)
    if mode == "stride":
        return scan_blocks(rows, schema)
    raise ValueError(f"Unknown scan mode: {mode!r}")
