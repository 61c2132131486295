"""Parse the sewing input challan report.

Rows live in ``<tbody id="tbl_list_search">``. Each data row has at least
13 cells at fixed positions:

    3  challan no        4  buyer           7  style
    10 serving company   11 quantity        12 date / time
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup, Tag

from erp_core.parsing.cleaning import cell_text, extract_date, is_int_text, parse_quantity
from erp_core.types import UNKNOWN_COLOR, ChallanMeta, ChallanRecord

TABLE_ID = "tbl_list_search"
MIN_CELLS = 13

COL_CHALLAN = 3
COL_BUYER = 4
COL_STYLE = 7
COL_COMPANY = 10
COL_QTY = 11
COL_DATE = 12


def _data_rows(html: str) -> list[list[str]]:
    soup = BeautifulSoup(html, "html.parser")
    tbody = soup.find("tbody", id=TABLE_ID)
    if not isinstance(tbody, Tag):
        return []
    rows = []
    for tr in tbody.find_all("tr"):
        texts = [cell_text(td) for td in tr.find_all("td")]
        if len(texts) >= MIN_CELLS:
            rows.append(texts)
    return rows


def parse_challans(html: str) -> list[ChallanRecord]:
    """Parse challan rows, summing quantities of rows sharing a challan number.

    Returns:
        Records in first-appearance order, one per challan number.

    Examples:
        Two rows for ``CH-100`` with quantities 50 and 75 give a single
        record with ``qty == 125``.
    """
    records: dict[str, ChallanRecord] = {}
    for texts in _data_rows(html):
        challan_no = texts[COL_CHALLAN]
        qty = parse_quantity(texts[COL_QTY])
        existing = records.get(challan_no)
        if existing is not None:
            existing.qty += qty
            continue
        records[challan_no] = ChallanRecord(
            challan_no=challan_no,
            date=texts[COL_DATE],
            buyer=texts[COL_BUYER],
            style=texts[COL_STYLE],
            company=texts[COL_COMPANY],
            qty=qty,
        )
    return list(records.values())


def parse_challan_list(html: str) -> dict[str, ChallanMeta]:
    """Distinct challan numbers with the metadata of their first row.

    The date is reduced to ``DD-MM-YYYY`` and the buyer to 20 characters.
    """
    seen: dict[str, ChallanMeta] = {}
    for texts in _data_rows(html):
        challan_no = texts[COL_CHALLAN]
        if not challan_no or challan_no in seen:
            continue
        seen[challan_no] = ChallanMeta(
            date=extract_date(texts[COL_DATE]),
            buyer=texts[COL_BUYER][:20],
            style=texts[COL_STYLE],
        )
    return seen


def has_challan_table(html: str) -> bool:
    """True when the body holds the challan table with at least one data row."""
    return TABLE_ID in html and bool(_data_rows(html))


_LINE_LABEL_RE = re.compile(r"^Line(\s*No\.?)?\s*:?$", re.IGNORECASE)
MAX_LINE_LEN = 20
COL_PRINT_COLOR = 12


@dataclass(frozen=True)
class ChallanPrint:
    """Line, colors and total quantity from a challan print page."""

    line: str
    color: str
    qty: int


def parse_challan_print(html: str) -> ChallanPrint:
    """Parse the bundle wise sewing input challan print page.

    The line number is the cell after a ``Line`` label. Colors come from
    column 12 of the ``rpt_table`` rows (numeric cells and the Grand Total
    row excluded); the quantity is the third cell from the end of the
    Grand Total row.
    """
    soup = BeautifulSoup(html, "html.parser")

    line = "-"
    for td in soup.find_all("td"):
        if not _LINE_LABEL_RE.match(cell_text(td)):
            continue
        value = cell_text(td.find_next_sibling("td")).lstrip(":").strip()
        if value and len(value) < MAX_LINE_LEN:
            line = value
            break

    colors: dict[str, None] = {}
    qty = 0
    table = soup.find("table", class_="rpt_table")
    if isinstance(table, Tag):
        for tr in table.find_all("tr"):
            cells = tr.find_all("td")
            is_total = "Grand Total" in cell_text(tr)
            if is_total and len(cells) >= 3:
                total_text = cell_text(cells[-3])
                if is_int_text(total_text):
                    qty = parse_quantity(total_text)
            elif not is_total and len(cells) > COL_PRINT_COLOR:
                color = cell_text(cells[COL_PRINT_COLOR])
                if color and not color.isdigit():
                    colors[color] = None

    color = ", ".join(colors) if colors else UNKNOWN_COLOR
    return ChallanPrint(line=line, color=color, qty=qty)


def find_system_id(text: str, challan_no: str) -> str | None:
    """Internal system id from a challan search list (``js_set_value('<id>', '<challan>')``)."""
    pattern = r"js_set_value\s*\(\s*'(\d+)'\s*,\s*'%s'\s*\)" % re.escape(challan_no)
    m = re.search(pattern, text)
    return m.group(1) if m else None


def challan_search_number(challan_no: str) -> str:
    """Trailing digits of a challan number without leading zeros ("0" if none).

    Examples:
        >>> challan_search_number("CCL-SI-000123")
        '123'
    """
    m = re.search(r"(\d+)$", challan_no)
    return str(int(m.group(1))) if m else "0"
