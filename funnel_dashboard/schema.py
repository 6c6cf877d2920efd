from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Sequence


class SchemaMismatchError(ValueError):
    """The sheet header does not contain a column the layout requires."""


# Ordered sheet layout. Indices are generated from position, so inserting a
# field only means inserting a line here.
SHEET_LAYOUT: tuple[tuple[str, str], ...] = (
    ("funil", "Funil"),
    ("periodo", "Período"),
    ("invested", "Investimento"),
    ("traffic_revenue", "Faturamento Tráfego"),
    ("traffic_roas", "Roas Tráfego"),
    ("students", "Número de alunos"),
    ("forms", "Número de formulários"),
    ("form_fill_rate", "Taxa de preenchimento"),
    ("qualified", "Qualificados"),
    ("scheduled", "Agendados"),
    ("scheduling_rate", "Taxa de agendamento"),
    ("calls_completed", "Call realizada"),
    ("attendance_rate", "Taxa de comparecimento"),
    ("sales", "Número de vendas"),
    ("conversion_rate", "Taxa de conversão"),
    ("ascension_rate", "Taxa de ascensão"),
    ("monetization_sales", "Venda Monetização"),
    ("deposits", "Entradas Monetização"),
    ("funnel_revenue", "Faturamento Funil"),
    ("funnel_roas", "Roas do Funil"),
)

# Recomputed on decode; the sheet may drop or move these columns freely.
DERIVED_COLUMNS = frozenset({"funnel_roas"})


def column_letter(index: int) -> str:
    """Zero-based column index to A1 letters (0 -> A, 25 -> Z, 26 -> AA)."""
    if index < 0:
        raise ValueError(f"Column index must be >= 0, got {index}.")
    letters = ""
    current = index + 1
    while current:
        current, remainder = divmod(current - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def column_index(letters: str) -> int:
    value = 0
    for char in letters.strip().upper():
        if not "A" <= char <= "Z":
            raise ValueError(f"Invalid column letters: {letters!r}")
        value = value * 26 + (ord(char) - ord("A") + 1)
    if value == 0:
        raise ValueError("Column letters cannot be empty.")
    return value - 1


def _normalize_header(value: str) -> str:
    ascii_text = (
        unicodedata.normalize("NFKD", value)
        .encode("ascii", "ignore")
        .decode("ascii")
        .lower()
    )
    return re.sub(r"\s+", " ", ascii_text).strip()


@dataclass(frozen=True)
class ColumnSchema:
    columns: Mapping[str, int]
    last_column: str

    @classmethod
    def fixed(
        cls, layout: Sequence[tuple[str, str]] = SHEET_LAYOUT
    ) -> "ColumnSchema":
        columns = {name: index for index, (name, _) in enumerate(layout)}
        return cls(
            columns=MappingProxyType(columns),
            last_column=column_letter(len(layout) - 1),
        )

    @classmethod
    def from_header(
        cls,
        header_row: Sequence[object],
        layout: Sequence[tuple[str, str]] = SHEET_LAYOUT,
    ) -> "ColumnSchema":
        """Derive indices by matching header text instead of position."""
        positions: dict[str, int] = {}
        for index, cell in enumerate(header_row):
            label = _normalize_header(str(cell or ""))
            if label and label not in positions:
                positions[label] = index

        columns: dict[str, int] = {}
        missing: list[str] = []
        for name, header in layout:
            index = positions.get(_normalize_header(header))
            if index is None:
                if name not in DERIVED_COLUMNS:
                    missing.append(header)
                continue
            columns[name] = index
        if missing:
            raise SchemaMismatchError(
                f"Sheet header is missing expected columns: {', '.join(missing)}"
            )
        return cls(
            columns=MappingProxyType(columns),
            last_column=column_letter(max(columns.values())),
        )

    def __getitem__(self, name: str) -> int:
        return self.columns[name]

    def has_field(self, name: str) -> bool:
        return name in self.columns

    def as_dict(self) -> dict[str, int]:
        return dict(self.columns)

    def cell(self, row: Sequence[object], name: str) -> object:
        """Raw cell for a field; ragged rows yield None for missing cells."""
        index = self.columns[name]
        return row[index] if index < len(row) else None


DEFAULT_SCHEMA = ColumnSchema.fixed()
