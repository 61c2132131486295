"""Parse the sewing input and output report.

Each color section of the report looks like::

    | RED | ... | Size | S | M | L | Total |           <- color + size labels
    | Color Qty | 100 | 200 | 150 | 450 |              <- order per size, total
    | Color Total | 0 | 95 | 190 | 140 | 425 | 90 | 180 | 130 | 400 | 25 | 3 |
                    ^pad  <- input sizes -> ^in   <- output sizes -> ^out  ... ^rejection

The ``Color Total`` row is read after the cell whose text is exactly
``Color Total``: an optional zero padding cell, ``n`` input values, the
input total, ``n`` output values, the output total, then trailing cells of
which the last is the rejection total. Per-size rejection and WIP are not
reported; WIP for the color is ``(input - output) - rejection``.
"""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup, Tag

from erp_core.parsing.cleaning import cell_text, is_int_text, parse_quantity, row_cells
from erp_core.types import SewingBlock, SewingReportResult, SewingSize, SewingTotals

logger = logging.getLogger(__name__)

COLOR_TOTAL_LABEL = "Color Total"
COLOR_QTY_LABEL = "Color Qty"
META_LABELS = ("style", "buyer", "item")


def _numbers(texts: list[str], allow_negative: bool) -> list[int]:
    return [parse_quantity(t) for t in texts if is_int_text(t, allow_negative)]


def color_total_offset(nums: list[int], n: int) -> int:
    """Where the input size values start in a Color Total number list.

    A leading 0 is treated as padding only when skipping it makes the input
    sizes add up to the input subtotal and not skipping it does not.
    """
    if not nums or nums[0] != 0 or len(nums) < 2 * n + 3:
        return 0
    unpadded_ok = sum(nums[:n]) == nums[n]
    padded_ok = sum(nums[1 : 1 + n]) == nums[1 + n]
    return 1 if padded_ok and not unpadded_ok else 0


def split_color_total(nums: list[int], n: int) -> tuple[list[int], int, list[int], int, int] | None:
    """Split a Color Total number list into input and output halves.

    Args:
        nums: Integers read after the ``Color Total`` label.
        n: Number of size columns.

    Returns:
        ``(input_sizes, input_total, output_sizes, output_total, rejection)``
        or None when the row is too short.

    Examples:
        >>> split_color_total([0, 10, 20, 30, 8, 18, 26, 4, 1], 2)
        ([10, 20], 30, [8, 18], 26, 1)
    """
    offset = color_total_offset(nums, n)
    body = nums[offset:]
    if n == 0 or len(body) < 2 * n + 2:
        return None
    input_sizes = body[:n]
    input_total = body[n]
    output_sizes = body[n + 1 : 2 * n + 1]
    output_total = body[2 * n + 1]
    rejection = nums[-1]
    return input_sizes, input_total, output_sizes, output_total, rejection


def parse_meta(soup: BeautifulSoup) -> dict[str, str]:
    """Buyer, style and item from ``Label :`` cells (value in the next cell)."""
    meta = {label: "N/A" for label in META_LABELS}
    for td in soup.find_all("td"):
        text = cell_text(td).lower()
        if ":" not in text:
            continue
        for label in META_LABELS:
            if label in text and meta[label] == "N/A":
                value = cell_text(td.find_next_sibling("td"))
                if value:
                    meta[label] = value
                break
    return meta


class _ColorState:
    def __init__(self, color: str, sizes: list[str]) -> None:
        self.color = color
        self.sizes = sizes
        self.order: list[int] = []
        self.order_total = 0

    def block(self, totals: tuple[list[int], int, list[int], int, int]) -> SewingBlock:
        input_sizes, input_total, output_sizes, output_total, rejection = totals

        def at(values: list[int], i: int) -> int:
            return values[i] if i < len(values) else 0

        sizes = [
            SewingSize(
                size=size,
                order_qty=at(self.order, i),
                input_qty=at(input_sizes, i),
                output_qty=at(output_sizes, i),
            )
            for i, size in enumerate(self.sizes)
        ]
        return SewingBlock(
            color=self.color,
            sizes=sizes,
            totals=SewingTotals(
                order_qty=self.order_total,
                input_qty=input_total,
                output_qty=output_total,
                rejection=rejection,
                wip=(input_total - output_total) - rejection,
            ),
        )


def _color_from_header(texts: list[str]) -> tuple[str, list[str]] | None:
    if "Size" not in texts:
        return None
    size_idx = texts.index("Size")
    try:
        total_idx = texts.index("Total", size_idx + 1)
    except ValueError:
        return None
    color = " ".join(texts[:size_idx]).strip()
    if "|" in color:
        color = color.split("|")[0].strip()
    if len(color) < 2:
        return None
    sizes = [s for s in texts[size_idx + 1 : total_idx] if s]
    return color, sizes


def parse_sewing_report(html: str, ref_no: str) -> SewingReportResult:
    """Parse sewing input/output HTML into per-color blocks.

    Args:
        html: Report body.
        ref_no: Internal reference the report was requested for.

    Returns:
        SewingReportResult; ``success`` is False when no color produced a
        Color Total row.
    """
    soup = BeautifulSoup(html, "html.parser")
    blocks: list[SewingBlock] = []
    seen: set[str] = set()
    state: _ColorState | None = None

    for row in soup.find_all("tr"):
        if not isinstance(row, Tag):
            continue
        texts = [cell_text(td) for td in row_cells(row)]
        if not texts:
            continue

        header = _color_from_header(texts)
        if header is not None:
            color, sizes = header
            if color in seen:
                state = None
                continue
            seen.add(color)
            state = _ColorState(color, sizes)
            logger.debug("Sewing color %s with sizes %s", color, sizes)
            continue

        if state is None or not state.sizes:
            continue
        n = len(state.sizes)

        if any(COLOR_QTY_LABEL in t for t in texts):
            nums = _numbers(texts, allow_negative=False)
            if len(nums) >= n + 1:
                state.order = nums[:n]
                state.order_total = nums[n]
            continue

        if COLOR_TOTAL_LABEL in texts:
            label_idx = texts.index(COLOR_TOTAL_LABEL)
            nums = _numbers(texts[label_idx + 1 :], allow_negative=True)
            totals = split_color_total(nums, n)
            if totals is None:
                logger.debug("Color Total row for %s too short: %s", state.color, nums)
                continue
            blocks.append(state.block(totals))
            state = None

    return SewingReportResult(
        success=bool(blocks),
        data=blocks,
        ref_no=ref_no.upper(),
        meta=parse_meta(soup),
    )


def has_color_total(html: str) -> bool:
    """Acceptance check for the sweep: the report parses into at least one block."""
    return COLOR_TOTAL_LABEL in html and parse_sewing_report(html, "").success
