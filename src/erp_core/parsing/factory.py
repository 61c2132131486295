"""Parse the factory monthly production report (buyer-wise sewing input)."""

from __future__ import annotations

from dataclasses import dataclass, field

from bs4 import BeautifulSoup

from erp_core.parsing.cleaning import cell_text, is_int_text, parse_quantity
from erp_core.types import BuyerInputSummary

NON_BUYER_MARKERS = ("total", "buyer", "sewing", "date")
TOTAL_COLUMNS = {1: "sewing_input", 2: "sewing_output", 3: "finishing", 4: "shipment"}


@dataclass
class FactoryTotals:
    sewing_input: int = 0
    sewing_output: int = 0
    finishing: int = 0
    shipment: int = 0


@dataclass
class FactoryParse:
    buyers: list[BuyerInputSummary] = field(default_factory=list)
    totals: FactoryTotals = field(default_factory=FactoryTotals)


def parse_factory_report(html: str) -> FactoryParse:
    """Sum sewing input per buyer and read the totals row.

    A buyer row has at least 4 cells and a first cell that is not a header
    or total label; its sewing input is the first positive number among
    cells 1-4. Totals come from the row labelled total/grand total, by
    column position. Buyers are sorted by sewing input, descending.
    """
    soup = BeautifulSoup(html, "html.parser")
    buyers: dict[str, BuyerInputSummary] = {}
    totals = FactoryTotals()

    for row in soup.find_all("tr"):
        cells = row.find_all("td")
        if len(cells) < 4:
            continue
        texts = [cell_text(c) for c in cells]
        first = texts[0]
        lowered = first.lower()

        if len(first) > 1 and not any(marker in lowered for marker in NON_BUYER_MARKERS):
            for text in texts[1:5]:
                value = parse_quantity(text)
                if value > 0:
                    summary = buyers.setdefault(first, BuyerInputSummary(first, 0))
                    summary.sewing_input += value
                    break

        if "total" in lowered or "grand" in lowered:
            for idx, attr in TOTAL_COLUMNS.items():
                if idx < len(texts) and is_int_text(texts[idx], allow_negative=True):
                    setattr(totals, attr, parse_quantity(texts[idx]))

    ordered = sorted(buyers.values(), key=lambda b: b.sewing_input, reverse=True)
    return FactoryParse(buyers=ordered, totals=totals)
