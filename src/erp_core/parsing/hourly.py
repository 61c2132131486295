"""Parse the hourly production monitoring report into per-floor line inputs."""

from __future__ import annotations

from bs4 import BeautifulSoup, Tag

from erp_core.parsing.cleaning import cell_text, parse_quantity
from erp_core.types import FloorData, LineData

FLOOR_LABEL = "Floor Name:"
HEADER_MARKERS = ("Company Name", "Line No")
MIN_LINE_CELLS = 16
INPUT_COL_FROM_END = 5


def parse_hourly_report(html: str, target_line: str | None = None) -> list[FloorData] | None:
    """Extract sewing input per line, grouped by floor.

    ``Floor Name:`` rows open a floor, header rows are skipped and rows with
    more than 15 cells are line rows: the line number is the first cell and
    the input is the fifth cell from the end. Rows with an empty line number
    are subtotal rows and are skipped.

    Args:
        html: Report body.
        target_line: Keep only this line (case-insensitive).

    Returns:
        Floors that have at least one line, or None when the body has no
        ``#table_body`` element.
    """
    soup = BeautifulSoup(html, "html.parser")
    body = soup.find(id="table_body")
    if not isinstance(body, Tag):
        return None

    target = target_line.strip().lower() if target_line else None
    floors: list[FloorData] = []
    current: FloorData | None = None

    for row in body.find_all("tr"):
        cells = row.find_all("td")
        text = cell_text(row)

        if FLOOR_LABEL in text:
            current = FloorData(floor_name=text.replace(FLOOR_LABEL, "").strip())
            floors.append(current)
            continue
        if any(marker in text for marker in HEADER_MARKERS):
            continue
        if len(cells) < MIN_LINE_CELLS:
            continue

        line_no = cell_text(cells[0])
        if not line_no:
            continue
        if target is not None and line_no.lower() != target:
            continue
        if current is None:
            current = FloorData(floor_name="")
            floors.append(current)
        current.lines.append(
            LineData(line_no=line_no, input=parse_quantity(cell_text(cells[-INPUT_COL_FROM_END])))
        )

    return [floor for floor in floors if floor.lines]
