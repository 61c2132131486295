"""PO sheet aggregation: color x PO x size tables with +3% order quantities."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Any

import pandas as pd

from erp_core.metrics.closing import tolerance_qty
from erp_core.parsing.po import PODataRow

LETTER_SIZES = {
    "XXS": 0,
    "XS": 1,
    "S": 2,
    "M": 3,
    "L": 4,
    "XL": 5,
    "XXL": 6,
    "XXXL": 7,
    "3XL": 7,
    "XXXXL": 8,
    "4XL": 8,
    "XXXXXL": 9,
    "5XL": 9,
}
ONE_SIZES = {"TU": 0, "ONE SIZE": 1, "ONESIZE": 1}
# Infant/child suffixes: months before years (French "ans"), then Y and T
SUFFIX_ORDER = {"M": 0, "A": 1, "Y": 2, "T": 3}

_NUM_SUFFIX_RE = re.compile(r"^(\d+)([A-Z]+)$")


def size_sort_key(size: str) -> tuple:
    """Sort key for garment sizes.

    Classes, in order: pure numbers (ascending), number + suffix infant
    sizes (by suffix then number), letter sizes XXS..5XL, one-size labels,
    then everything else alphabetically.
    """
    s = size.strip().upper()
    if s.isdigit():
        return (0, int(s))
    if s in LETTER_SIZES:
        return (2, LETTER_SIZES[s])
    m = _NUM_SUFFIX_RE.match(s)
    if m:
        number, suffix = m.groups()
        return (1, SUFFIX_ORDER.get(suffix, len(SUFFIX_ORDER)), int(number), suffix)
    if s in ONE_SIZES:
        return (3, ONE_SIZES[s])
    return (4, s)


def sort_sizes(sizes: list[str]) -> list[str]:
    """Sort sizes into canonical order.

    Examples:
        >>> sort_sizes(["L", "2A", "S", "10", "M"])
        ['10', '2A', 'S', 'M', 'L']
    """
    return sorted(sizes, key=size_sort_key)


@dataclass
class PORow:
    po_no: str
    quantities: list[int]

    @property
    def total(self) -> int:
        return sum(self.quantities)


@dataclass
class ColorTable:
    """Per-color PO table.

    Attributes:
        color: Color name.
        sizes: Size columns in canonical order.
        rows: One row per PO number, in order of appearance.
        actual_qty: Column sums over the PO rows.
        order_qty: ``actual_qty`` plus 3%, rounded half up, per column.
    """

    color: str
    sizes: list[str]
    rows: list[PORow] = field(default_factory=list)
    actual_qty: list[int] = field(default_factory=list)
    order_qty: list[int] = field(default_factory=list)

    @property
    def actual_total(self) -> int:
        return sum(self.actual_qty)

    @property
    def order_total(self) -> int:
        return sum(self.order_qty)

    def to_dict(self) -> dict[str, Any]:
        return {
            "color": self.color,
            "sizes": self.sizes,
            "rows": [{**asdict(r), "total": r.total} for r in self.rows],
            "actual_qty": self.actual_qty,
            "order_qty": self.order_qty,
            "actual_total": self.actual_total,
            "order_total": self.order_total,
        }


def process_data_into_tables(data: list[PODataRow]) -> tuple[list[ColorTable], int]:
    """Group PO rows by color, then by PO number, into size tables.

    Colors and PO numbers keep their order of first appearance. When the same
    (color, PO, size) appears twice the first quantity wins.

    Returns:
        ``(tables, grand_total)`` where the grand total is the sum of all PO
        row totals across colors.
    """
    if not data:
        return [], 0

    df = pd.DataFrame([asdict(row) for row in data])
    df["color"] = df["color"].str.strip()
    df = df[df["color"] != ""]
    if df.empty:
        return [], 0

    sizes = sort_sizes(list(dict.fromkeys(df["size"])))
    tables: list[ColorTable] = []
    grand_total = 0

    for color in dict.fromkeys(df["color"]):
        sub = df[df["color"] == color]
        po_order = list(dict.fromkeys(sub["po_no"]))
        pivot = (
            sub.pivot_table(
                index="po_no", columns="size", values="quantity", aggfunc="first", sort=False
            )
            .reindex(index=po_order, columns=sizes)
            .fillna(0)
            .astype(int)
        )
        rows = [PORow(po_no=str(po), quantities=pivot.loc[po].tolist()) for po in po_order]
        actual = pivot.sum(axis=0).astype(int).tolist()
        grand_total += sum(r.total for r in rows)
        tables.append(
            ColorTable(
                color=str(color),
                sizes=sizes,
                rows=rows,
                actual_qty=actual,
                order_qty=[tolerance_qty(q) for q in actual],
            )
        )

    return tables, grand_total
