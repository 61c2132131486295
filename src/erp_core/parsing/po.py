"""Parse buyer purchase-order (PO) sheets from their extracted PDF text.

PDF text extraction is a black box that returns page-joined plain text;
``extract_pdf_text`` wraps pypdf for that. Everything else works on lines
of text and recognizes two table layouts:

- horizontal: ``Color/Size 2A 3A 4A Total`` header, then one line per color
  with the quantities on the same line (``SNOW WHITE 11-0602 168 147 125 440``)
- vertical: a header line of sizes ending in ``Total``, then a color name
  followed by one quantity line (and one price line) per size
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import asdict, dataclass
from typing import Any

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from erp_core.exceptions import ParseError

logger = logging.getLogger(__name__)

NON_SIZE_HEADERS = {
    "COLO", "SIZE", "TOTAL", "QUANTITY", "PRICE", "AMOUNT", "CURRENCY", "ORDER NO", "P.O NO",
}
_LETTER_SIZE_RE = re.compile(r"^(XXS|XS|S|M|L|XL|XXL|XXXL|3XL|4XL|5XL|TU|ONE\s*SIZE|ONESIZE)$")
_COLOR_KEYWORDS = ("spec", "price", "total", "quantity", "amount", "currency", "order")
_PARTIAL_KEYWORDS = ("spec", "price", "total", "quantity", "amount")
ITEM_TYPES = (
    "T-SHIRT", "SHIRT", "PANTS", "SHORTS", "JACKET", "DRESS", "POLO", "SWEATER",
    "HOODIE", "BLOUSE", "TROUSER",
)
FABRIC_BOOKING_MARKERS = ("Main Fabric Booking", "Fabric Booking Sheet")
VERTICAL_HEADER_NOISE = {"Colo", "/", "Size", "Colo/Size", "Colo/", "Size's", "Color/Size"}


@dataclass
class POMetadata:
    buyer: str = "N/A"
    booking: str = "N/A"
    style: str = "N/A"
    season: str = "N/A"
    dept: str = "N/A"
    item: str = "N/A"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PODataRow:
    po_no: str
    color: str
    size: str
    quantity: int


def is_potential_size(header: str) -> bool:
    """True for size-like headers: ``10``, ``2A``, ``18M``, ``XL``, ``TU``.

    Examples:
        >>> is_potential_size("2A"), is_potential_size("TOTAL"), is_potential_size("A123")
        (True, False, False)
    """
    h = header.strip().upper()
    if h in NON_SIZE_HEADERS:
        return False
    if re.fullmatch(r"\d+", h):
        return True
    if re.fullmatch(r"\d+[AMYT]", h):
        return True
    return bool(_LETTER_SIZE_RE.match(h))


def is_color_name(text: str) -> bool:
    s = text.strip()
    if not s:
        return False
    if re.fullmatch(r"\d+", s) or re.fullmatch(r"\d+[,.]\d{2}", s):
        return False
    if is_potential_size(s):
        return False
    if any(kw in s.lower() for kw in _COLOR_KEYWORDS):
        return False
    return re.search(r"[A-Za-z]", s) is not None


def is_partial_color_name(text: str) -> bool:
    """Continuation line of a multi-line color name (letters and spaces only)."""
    s = text.strip()
    if not s or not re.fullmatch(r"[A-Za-z\s]+", s):
        return False
    return not any(kw in s.lower() for kw in _PARTIAL_KEYWORDS)


def _valid_horizontal_color(text: str) -> bool:
    s = text.strip()
    return len(s) >= 2 and not s.isdigit() and re.search(r"[A-Za-z]", s) is not None


def extract_metadata(text: str) -> POMetadata:
    """Pull buyer, booking, style, season, department and item from PO text."""
    meta = POMetadata()

    if "KIABI" in text.upper():
        meta.buyer = "KIABI"
    else:
        m = re.search(r"Buyer.*?Name[\s\S]*?([\w\s&]+)(?:\n|$)", text, re.IGNORECASE)
        if m:
            meta.buyer = m.group(1).strip()

    m = re.search(
        r"(?:Internal )?Booking NO\.?[:\s]*([\s\S]*?)(?:System NO|Control No|Buyer)",
        text,
        re.IGNORECASE,
    )
    if m:
        booking = re.sub(r"[\r\n ]", "", m.group(1).strip())
        meta.booking = booking.split("System")[0]

    m = re.search(r"Style Ref\.?[:\s]*([\w-]+)", text, re.IGNORECASE)
    if m:
        meta.style = m.group(1).strip()
    else:
        m = re.search(r"Style Des\.?[\s\S]*?([\w-]+)", text, re.IGNORECASE)
        if m:
            meta.style = m.group(1).strip()
        else:
            # KIABI: middle part of "FDL79 / MSBS26HCVIS / WORLD"
            m = re.search(r"Computer Reference\s*:\s*([^\n]+)", text, re.IGNORECASE)
            if m:
                parts = [p.strip() for p in m.group(1).split("/")]
                meta.style = parts[1] if len(parts) >= 2 else parts[0]

    m = re.search(r"Season\s*[:\n\"]*([\w\d-]+)", text, re.IGNORECASE)
    if m:
        meta.season = m.group(1).strip()

    m = re.search(r"Dept\.?[\s\n:]*([A-Za-z]+)", text, re.IGNORECASE)
    if m:
        meta.dept = m.group(1).strip()

    m = re.search(r"Garments? Item[\s\n:]*([^\n\r]+)", text, re.IGNORECASE)
    if m:
        meta.item = m.group(1).strip().split("Style")[0].strip()
    else:
        upper = text.upper()
        for item_type in ITEM_TYPES:
            if item_type in upper:
                meta.item = item_type
                break

    return meta


def extract_order_no(text: str) -> str:
    """Order number of a PO; a trailing ``00`` is dropped.

    Examples:
        >>> extract_order_no("Order no : 12345600")
        '123456'
    """
    m = re.search(r"Order no\s*[:.]?\s*(\d+)", text, re.IGNORECASE)
    if not m:
        m = re.search(r"Order\s*[:.]?\s*(\d+)", text, re.IGNORECASE)
    order_no = m.group(1).strip() if m else "Unknown"
    if order_no.endswith("00"):
        order_no = order_no[:-2]
    return order_no


def parse_vertical_table(
    lines: list[str], start: int, sizes: list[str], order_no: str
) -> list[PODataRow]:
    """Parse color blocks where each size quantity sits on its own line.

    Each quantity line is followed by a price line; a blank quantity and
    price pair means 0 for that size. A new color name before all sizes are
    read pads the rest with 0.
    """
    rows: list[PODataRow] = []
    i = start
    n = len(lines)

    while i < n:
        line = lines[i].strip()

        if line.startswith("Total") and i + 1 < n:
            nxt = lines[i + 1].strip()
            if "Quantity" in nxt or "Amount" in nxt or nxt[:1].isdigit():
                break

        if not (line and is_color_name(line)):
            i += 1
            continue

        color = line
        i += 1
        while i < n:
            nxt = lines[i].strip()
            if "spec" in nxt.lower():
                i += 1
                break
            if nxt.isdigit():
                break
            if not nxt:
                i += 1
                continue
            if is_partial_color_name(nxt):
                color = f"{color} {nxt}"
                i += 1
            else:
                break

        if i < n and "spec" in lines[i].lower():
            i += 1

        quantities: list[int] = []
        while len(quantities) < len(sizes) and i < n:
            qty_line = lines[i].strip()
            price_line = lines[i + 1].strip() if i + 1 < n else ""
            if qty_line and is_color_name(qty_line):
                break
            if not qty_line and not price_line:
                quantities.append(0)
                i += 2
                continue
            if qty_line.isdigit():
                quantities.append(int(qty_line))
                i += 2
                continue
            i += 1

        quantities += [0] * (len(sizes) - len(quantities))
        for size, qty in zip(sizes, quantities):
            rows.append(PODataRow(order_no, color, size, qty))

    return rows


def _is_qty_token(part: str) -> bool:
    return re.fullmatch(r"\d+", part) is not None or re.fullmatch(r"\d{1,3}(,\d{3})+", part) is not None


def parse_horizontal_table(
    lines: list[str], start: int, sizes: list[str], order_no: str
) -> list[PODataRow]:
    """Parse lines holding a color name followed by per-size quantities.

    Stops at ``Sub Total`` / ``Grand Total``. When a run of ``len(sizes)``
    numbers is found the text before it is the color; otherwise the trailing
    numbers are used, dropping the last one (the line total).
    """
    rows: list[PODataRow] = []
    n_sizes = len(sizes)

    for raw in lines[start:]:
        line = raw.strip()
        if re.match(r"^(Sub\s*Total|Grand\s*Total)", line, re.IGNORECASE):
            break
        if not line or "Color/Size" in line or "PO" in line:
            continue
        if re.match(r"^Total\s", line, re.IGNORECASE):
            continue

        parts = line.split()
        color_end = -1
        run = 0
        for j, part in enumerate(parts):
            if _is_qty_token(part):
                run += 1
                if run >= n_sizes:
                    color_end = j - n_sizes + 1
                    break
            elif not re.fullmatch(r"[\d,]+", part):
                run = 0

        if color_end > 0:
            color = " ".join(parts[:color_end]).strip()
            quantities = [int(p.replace(",", "")) for p in parts[color_end : color_end + n_sizes]]
            if color and len(quantities) == n_sizes:
                rows.extend(PODataRow(order_no, color, s, q) for s, q in zip(sizes, quantities))
            continue

        trailing: list[int] = []
        last_text = len(parts) - 1
        for j in range(len(parts) - 1, -1, -1):
            token = parts[j].replace(",", "")
            if token.isdigit():
                trailing.insert(0, int(token))
            else:
                last_text = j
                break
        if len(trailing) > n_sizes:
            color = " ".join(parts[: last_text + 1]).strip()
            quantities = trailing[-(n_sizes + 1) : -1]
            if _valid_horizontal_color(color) and len(quantities) == n_sizes:
                rows.extend(PODataRow(order_no, color, s, q) for s, q in zip(sizes, quantities))

    return rows


def _horizontal_sizes(line: str) -> list[str]:
    parts = line.split()
    idx = next((k for k, p in enumerate(parts) if "Color/Size" in p), -1)
    sizes = []
    for part in parts[idx + 1 :]:
        if part == "Total" or "Order" in part or "Qty" in part:
            break
        if is_potential_size(part):
            sizes.append(part)
    return sizes


def _vertical_sizes(line: str) -> list[str]:
    parts = line.split()
    total_idx = next((k for k, p in enumerate(parts) if "Total" in p), -1)
    if total_idx < 0:
        return []
    sizes = [p for p in parts[:total_idx] if p not in VERTICAL_HEADER_NOISE]
    valid = sum(1 for s in sizes if is_potential_size(s))
    if sizes and valid >= len(sizes) / 2:
        return sizes
    return []


def is_fabric_booking(text: str) -> bool:
    return any(marker in text for marker in FABRIC_BOOKING_MARKERS)


def parse_po_text(text: str) -> tuple[list[PODataRow], POMetadata]:
    """Extract PO rows and metadata from one document's text.

    Fabric booking sheets carry metadata only and yield no rows. The first
    table header found (horizontal first, then vertical) is parsed.
    """
    metadata = extract_metadata(text)
    if is_fabric_booking(text):
        return [], metadata

    order_no = extract_order_no(text)
    lines = text.split("\n")

    for i, line in enumerate(lines):
        if "Color/Size" in line and ("Total" in line or re.search(r"\d+M|\d+A", line)):
            sizes = _horizontal_sizes(line)
            if sizes:
                rows = parse_horizontal_table(lines, i + 1, sizes, order_no)
                if not rows:
                    rows = parse_vertical_table(lines, i + 1, sizes, order_no)
                if rows:
                    return rows, metadata

        if ("Colo" in line or "Size" in line) and "Total" in line:
            sizes = _vertical_sizes(line)
            if sizes:
                rows = parse_vertical_table(lines, i + 1, sizes, order_no)
                if rows:
                    return rows, metadata

    logger.debug("No PO table found (order %s)", order_no)
    return [], metadata


def extract_pdf_text(data: bytes) -> str:
    """Extract page-joined text from a PDF.

    Raises:
        ParseError: If the bytes are not a readable PDF.
    """
    try:
        reader = PdfReader(io.BytesIO(data))
        return "\n".join(page.extract_text() or "" for page in reader.pages)
    except (PdfReadError, ValueError) as e:
        raise ParseError(f"Unreadable PDF: {e}") from e
