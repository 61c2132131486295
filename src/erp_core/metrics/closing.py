"""Closing report metrics.

Derived figures are never stored on the block; they are recomputed from a
``ReportBlock`` on every call:

    actual              garment color/country quantity
    order_qty_tolerance round_half_up(actual * 1.03)
    cutting_qc          cutting QC quantity
    input_qty           sewing input quantity
    balance             cutting_qc - input_qty
    short_plus          input_qty - order_qty_tolerance
    percentage          short_plus / order_qty_tolerance (0 when denominator is 0)

Percentages are fractions (``-0.0291``), not pre-multiplied by 100.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import pandas as pd

from erp_core.types import ReportBlock

TOLERANCE = Decimal("1.03")


def tolerance_qty(actual: int) -> int:
    """Order quantity plus 3%, rounded half up.

    Examples:
        >>> tolerance_qty(1000)
        1030
        >>> tolerance_qty(50)  # 51.5 rounds up
        52
    """
    return int((Decimal(actual) * TOLERANCE).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _fraction(numerator: int, denominator: int) -> float:
    return numerator / denominator if denominator else 0.0


@dataclass(frozen=True)
class SizeMetrics:
    actual: int
    order_qty_tolerance: int
    cutting_qc: int
    input_qty: int
    balance: int
    short_plus: int
    percentage: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def size_metrics(block: ReportBlock, index: int) -> SizeMetrics:
    """Compute metrics for one size column of a block.

    Args:
        block: Closing report block.
        index: Size position (out-of-range positions read as 0).

    Returns:
        SizeMetrics for that size.

    Examples:
        >>> block = ReportBlock("S", "B", "RED", ["M"], actual=[1000],
        ...                     cutting_qc=[1040], sewing_input=[1000])
        >>> m = size_metrics(block, 0)
        >>> (m.order_qty_tolerance, m.balance, m.short_plus)
        (1030, 40, -30)
    """

    def at(values: list[int]) -> int:
        return values[index] if 0 <= index < len(values) else 0

    actual = at(block.actual)
    qty3 = tolerance_qty(actual)
    cutting_qc = at(block.cutting_qc)
    input_qty = at(block.sewing_input)
    short_plus = input_qty - qty3
    return SizeMetrics(
        actual=actual,
        order_qty_tolerance=qty3,
        cutting_qc=cutting_qc,
        input_qty=input_qty,
        balance=cutting_qc - input_qty,
        short_plus=short_plus,
        percentage=_fraction(short_plus, qty3),
    )


def block_totals(block: ReportBlock) -> SizeMetrics:
    """Sum per-size metrics; the percentage is recomputed from the totals."""
    per_size = [size_metrics(block, i) for i in range(len(block.sizes))]
    actual = sum(m.actual for m in per_size)
    qty3 = sum(m.order_qty_tolerance for m in per_size)
    cutting_qc = sum(m.cutting_qc for m in per_size)
    input_qty = sum(m.input_qty for m in per_size)
    short_plus = input_qty - qty3
    return SizeMetrics(
        actual=actual,
        order_qty_tolerance=qty3,
        cutting_qc=cutting_qc,
        input_qty=input_qty,
        balance=cutting_qc - input_qty,
        short_plus=short_plus,
        percentage=_fraction(short_plus, qty3),
    )


def block_summary(block: ReportBlock) -> dict[str, Any]:
    """JSON shape of one block for the API: per-size metrics plus totals."""
    return {
        "color": block.color,
        "style": block.style,
        "buyer": block.buyer,
        "sizes": [
            {"size": size, **size_metrics(block, i).to_dict()}
            for i, size in enumerate(block.sizes)
        ],
        "totals": block_totals(block).to_dict(),
    }


METRIC_ROWS = [
    ("order_qty_tolerance", "ORDER QTY 3%"),
    ("actual", "ACTUAL QTY"),
    ("cutting_qc", "CUTTING QC"),
    ("input_qty", "INPUT QTY"),
    ("balance", "BALANCE"),
    ("short_plus", "SHORT/PLUS QTY"),
    ("percentage", "Percentage %"),
]


def block_frame(block: ReportBlock) -> pd.DataFrame:
    """Size x metric table for one block, with a TOTAL column.

    Rows are the metrics of ``METRIC_ROWS`` (labelled), columns the sizes.
    """
    columns: dict[str, list[Any]] = {}
    for i, size in enumerate(block.sizes):
        m = size_metrics(block, i).to_dict()
        columns[size] = [m[key] for key, _ in METRIC_ROWS]
    totals = block_totals(block).to_dict()
    columns["TOTAL"] = [totals[key] for key, _ in METRIC_ROWS]
    frame = pd.DataFrame(columns, index=[label for _, label in METRIC_ROWS])
    frame.index.name = "METRIC"
    return frame
