"""Typed records produced by the parsers and consumed by metrics and reports.

All records are request-scoped: they are built fresh per call and never
cached. ``to_dict()`` gives the JSON shape served by the HTTP API.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

UNKNOWN_COLOR = "Unknown Color"


def _pad(values: list[int], n: int) -> list[int]:
    return (list(values) + [0] * n)[:n]


@dataclass
class ReportBlock:
    """One color section of the closing report.

    Attributes:
        style: Style name.
        buyer: Buyer name.
        color: Color & garment item.
        sizes: Size labels, in report column order.
        order_qty: Tolerance-adjusted order quantity per size (actual + 3%).
        actual: Garment color/country quantity per size.
        cutting_qc: Cutting QC quantity per size.
        sewing_input: Sewing input quantity per size.

    All quantity lists are padded with 0 (or truncated) to ``len(sizes)``.
    """

    style: str
    buyer: str
    color: str
    sizes: list[str]
    order_qty: list[int] = field(default_factory=list)
    actual: list[int] = field(default_factory=list)
    cutting_qc: list[int] = field(default_factory=list)
    sewing_input: list[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        n = len(self.sizes)
        self.order_qty = _pad(self.order_qty, n)
        self.actual = _pad(self.actual, n)
        self.cutting_qc = _pad(self.cutting_qc, n)
        self.sewing_input = _pad(self.sewing_input, n)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ChallanRecord:
    """A sewing input challan, quantities summed over duplicate rows."""

    challan_no: str
    date: str
    buyer: str
    style: str
    company: str
    qty: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ChallanMeta:
    date: str
    buyer: str
    style: str


@dataclass
class ChallanDetailRecord:
    """A challan after the per-challan drill-down.

    ``error`` is None for resolved challans, ``"Not Found"`` when the system
    id could not be resolved and ``"Error"`` when the details fetch failed.
    """

    challan: str
    date: str
    buyer: str
    style: str
    line: str
    color: str
    qty: int
    system_id: str
    company_id: str
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ColorGroup:
    color: str
    items: list[ChallanDetailRecord] = field(default_factory=list)

    @property
    def subtotal(self) -> int:
        return sum(item.qty for item in self.items)

    def to_dict(self) -> dict[str, Any]:
        return {
            "color": self.color,
            "items": [item.to_dict() for item in self.items],
            "subtotal": self.subtotal,
        }


@dataclass
class LineData:
    line_no: str
    input: int


@dataclass
class FloorData:
    """Sewing lines of one floor in the hourly report."""

    floor_name: str
    lines: list[LineData] = field(default_factory=list)

    @property
    def subtotal(self) -> int:
        return sum(line.input for line in self.lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "floor_name": self.floor_name,
            "lines": [asdict(line) for line in self.lines],
            "subtotal": self.subtotal,
        }


@dataclass
class SewingSize:
    """Per-size sewing figures. Rejection and WIP are only known as totals."""

    size: str
    order_qty: int = 0
    input_qty: int = 0
    output_qty: int = 0
    rejection: int | None = None
    wip: int | None = None


@dataclass
class SewingTotals:
    order_qty: int = 0
    input_qty: int = 0
    output_qty: int = 0
    rejection: int = 0
    wip: int = 0


@dataclass
class SewingBlock:
    color: str
    sizes: list[SewingSize]
    totals: SewingTotals


@dataclass
class SewingReportResult:
    """Parsed sewing input/output report for one internal reference."""

    success: bool
    data: list[SewingBlock]
    ref_no: str
    meta: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class BuyerInputSummary:
    buyer_name: str
    sewing_input: int
