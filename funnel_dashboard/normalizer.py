from __future__ import annotations

import math
import re


ERROR_SENTINELS = ("#N/A", "#DIV/0!", "#NUM!", "#VALOR!", "#VALUE!", "#REF!", "#NOME?", "#NAME?")

_NON_NUMERIC = re.compile(r"[^\d,.\-]")
_LEADING_NUMBER = re.compile(r"^-?(?:\d+\.?\d*|\.\d+)")


def normalize_value(raw: object) -> float:
    """Convert a spreadsheet cell into a finite float, never raising.

    Cells use the Brazilian locale: periods group thousands and the comma is
    the decimal separator.

        "1.234,56"    -> 1234.56
        "R$ 1.000,00" -> 1000.0
        "12,5%"       -> 12.5
        "#DIV/0!"     -> 0.0
        "-"           -> 0.0
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        number = float(raw)
        return number if math.isfinite(number) else 0.0

    text = str(raw).strip()
    if not text or text == "-":
        return 0.0
    upper = text.upper()
    if any(sentinel in upper for sentinel in ERROR_SENTINELS):
        return 0.0

    cleaned = _NON_NUMERIC.sub("", text)
    cleaned = cleaned.replace(".", "")
    cleaned = cleaned.replace(",", ".", 1)

    # Only the leading numeric prefix counts ("1.5,3" or "10-12" keep the head).
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return 0.0
    try:
        number = float(match.group(0))
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0
