"""Shared helpers for turning ERP HTML cells into clean text and numbers.

ERP report markup is full of non-breaking spaces, zero-width characters,
thousands separators and cells that hold labels where numbers are expected.
Everything here is total: no helper raises on odd input.

Examples:
    >>> parse_quantity("1,234")
    1234
    >>> parse_quantity("")
    0
    >>> clean_text("  Color  Total ")
    'Color Total'
"""

from __future__ import annotations

import re
from typing import Any

from bs4 import Tag

# Unicode characters that should be stripped from text
NBSP = "\u00a0"  # Non-breaking space
NNBSP = "\u202f"  # Narrow non-breaking space
ZW = "".join(chr(c) for c in (0x200B, 0x200C, 0x200D, 0xFEFF))  # Zero-width characters

_LEADING_INT_RE = re.compile(r"^[+-]?\d+")
_DATE_RE = re.compile(r"\d{2}-\d{2}-\d{4}")


def clean_text(x: Any) -> str:
    """Remove invisible and problematic whitespace characters from text.

    Strips carriage returns, converts tabs and non-breaking spaces to spaces,
    removes zero-width characters and collapses runs of whitespace.

    Args:
        x: Value to clean (string, number, or None).

    Returns:
        Cleaned string ("" for None).
    """
    if x is None:
        return ""
    s = str(x)
    s = s.replace("\r", "").replace("\t", " ").replace(NBSP, " ").replace(NNBSP, " ")
    s = re.sub(r"[%s]" % re.escape(ZW), "", s)  # zero-width
    s = re.sub(r"\s+", " ", s).strip()
    return s


def parse_quantity(x: Any) -> int:
    """Parse an integer quantity from a report cell.

    Thousands separators are removed before parsing. Like a lenient integer
    parse, a leading integer is read and anything after it is ignored, so
    "1,234 pcs" is 1234 and "12.9" is 12. Empty or non-numeric cells give 0.

    Args:
        x: Cell text or number.

    Returns:
        Parsed integer, 0 if nothing parses.

    Examples:
        >>> parse_quantity("1,234") == parse_quantity("1234")
        True
        >>> parse_quantity("N/A")
        0
    """
    if x is None:
        return 0
    if isinstance(x, bool):
        return int(x)
    if isinstance(x, int):
        return x
    if isinstance(x, float):
        return int(x) if x == x and x not in (float("inf"), float("-inf")) else 0
    s = clean_text(x).replace(",", "").replace(" ", "")
    m = _LEADING_INT_RE.match(s)
    return int(m.group(0)) if m else 0


def is_int_text(s: str, allow_negative: bool = False) -> bool:
    """True when the comma-stripped text is a bare integer."""
    s = clean_text(s).replace(",", "")
    pattern = r"-?\d+" if allow_negative else r"\d+"
    return re.fullmatch(pattern, s) is not None


def _attr_to_str(attr: Any) -> str:
    """Convert BeautifulSoup attribute value to string."""
    if attr is None:
        return ""
    if isinstance(attr, list):
        return str(attr[0]) if attr else ""
    return str(attr)


def cell_text(cell: Tag | None) -> str:
    """Clean text content of a table cell ("" for None)."""
    if cell is None:
        return ""
    return clean_text(cell.get_text(" "))


def row_cells(row: Tag) -> list[Tag]:
    """Direct ``td`` children of a table row."""
    return [c for c in row.find_all("td", recursive=False) if isinstance(c, Tag)]


def extract_date(text: str) -> str:
    """Pull ``DD-MM-YYYY`` out of a date/time cell, else its first 11 chars."""
    m = _DATE_RE.search(text)
    if m:
        return m.group(0)
    return text[:11]
