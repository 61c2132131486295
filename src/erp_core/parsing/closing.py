"""Parse the cutting lay production (closing) report.

Layout of the ERP response::

    <thead><tr>...</tr><tr><th>S</th><th>M</th>...<th>Total</th></tr></thead>
    <div id="scroll_body"><table><tbody>
        <tr bgcolor="#cddcdc">...</tr>          <- starts a new color block
        <tr><td>Style</td><td>ABC</td><td>...</td>...</tr>
        <tr><td>...</td><td>...</td><td>Gmts. Color /Country Qty</td><td>100</td>...</tr>
        ...

Label cells are matched on column 0 (values from column 1) and column 2
(values from column 3).
"""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup, Tag

from erp_core.metrics.closing import tolerance_qty
from erp_core.parsing.cleaning import _attr_to_str, cell_text, parse_quantity
from erp_core.types import ReportBlock

logger = logging.getLogger(__name__)

BLOCK_MARKER_BGCOLOR = "#cddcdc"


def parse_size_headers(soup: BeautifulSoup) -> list[str]:
    """Size labels from the second header row, without total columns."""
    rows = [r for r in soup.select("thead tr") if isinstance(r, Tag)]
    if len(rows) < 2:
        return []
    headers = []
    for th in rows[1].find_all("th"):
        text = cell_text(th)
        if "total" not in text.lower():
            headers.append(text)
    return headers


def split_blocks(rows: list[Tag]) -> list[list[Tag]]:
    """Split data rows into color blocks on the marker background color."""
    blocks: list[list[Tag]] = []
    current: list[Tag] = []
    for row in rows:
        if _attr_to_str(row.get("bgcolor")).strip().lower() == BLOCK_MARKER_BGCOLOR:
            if current:
                blocks.append(current)
            current = []
        else:
            current.append(row)
    if current:
        blocks.append(current)
    return blocks


def _values(texts: list[str], start: int, n: int) -> list[int]:
    return [parse_quantity(t) for t in texts[start : start + n]]


def parse_block(rows: list[Tag], sizes: list[str]) -> ReportBlock | None:
    """Build a ReportBlock from one block's rows, or None without quantities."""
    n = len(sizes)
    style = color = buyer = "N/A"
    actual: list[int] = []
    sewing_input: list[int] = []
    cutting_qc: list[int] = []

    for row in rows:
        texts = [cell_text(td) for td in row.find_all("td")]
        if len(texts) <= 2:
            continue
        main, sub = texts[0].lower(), texts[2].lower()

        if main == "style":
            style = texts[1]
        elif main == "color & gmts. item":
            color = texts[1]
        elif "buyer" in main:
            buyer = texts[1]

        if sub == "gmts. color /country qty":
            actual = _values(texts, 3, n)

        if "sewing input" in main:
            sewing_input = _values(texts, 1, n)
        elif "sewing input" in sub:
            sewing_input = _values(texts, 3, n)

        if "cutting qc" in main and "balance" not in main:
            cutting_qc = _values(texts, 1, n)
        elif "cutting qc" in sub and "balance" not in sub:
            cutting_qc = _values(texts, 3, n)

    if not actual:
        return None
    return ReportBlock(
        style=style,
        buyer=buyer,
        color=color,
        sizes=list(sizes),
        order_qty=[tolerance_qty(q) for q in actual],
        actual=actual,
        cutting_qc=cutting_qc,
        sewing_input=sewing_input,
    )


def parse_closing_report(html: str) -> list[ReportBlock]:
    """Parse closing report HTML into color blocks.

    Args:
        html: Report body returned by the ERP.

    Returns:
        One ReportBlock per color that has a garment quantity row. Blocks
        without quantities and malformed rows are skipped; an empty list
        means nothing usable was found.
    """
    soup = BeautifulSoup(html, "html.parser")
    sizes = parse_size_headers(soup)

    rows = [r for r in soup.select("div#scroll_body table tbody tr") if isinstance(r, Tag)]
    if not rows:
        rows = [r for r in soup.select("div#scroll_body table tr") if isinstance(r, Tag)]

    blocks = []
    for block_rows in split_blocks(rows):
        block = parse_block(block_rows, sizes)
        if block is not None:
            blocks.append(block)
    logger.debug("Parsed %d closing block(s) with %d size(s)", len(blocks), len(sizes))
    return blocks
