"""Tests for the challan list, search list and print page parsers."""

from __future__ import annotations

from erp_core.parsing.challan import (
    challan_search_number,
    find_system_id,
    has_challan_table,
    parse_challan_list,
    parse_challan_print,
    parse_challans,
)
from erp_core.types import UNKNOWN_COLOR
from tests.test_utils import challan_print_html, challan_row, challan_table, search_list_html


def test_duplicate_challans_are_summed() -> None:
    """Test rows sharing a challan number merge into one record."""
    html = challan_table(
        [
            challan_row("CH-100", "50"),
            challan_row("CH-200", "1,200", buyer="H&amp;M"),
            challan_row("CH-100", "75"),
        ]
    )
    records = parse_challans(html)

    assert [r.challan_no for r in records] == ["CH-100", "CH-200"]
    assert records[0].qty == 125
    assert records[1].qty == 1200
    assert records[1].buyer == "H&M"
    assert sum(r.qty for r in records) == 1325


def test_short_rows_ignored() -> None:
    """Test rows with fewer than 13 cells are not challans."""
    html = challan_table(["<tr><td>Total</td><td>1325</td></tr>", challan_row("CH-1", "5")])
    assert [r.challan_no for r in parse_challans(html)] == ["CH-1"]
    assert has_challan_table(html)
    assert not has_challan_table("<table><tbody id='tbl_list_search'></tbody></table>")
    assert parse_challans("<p>no table</p>") == []


def test_challan_list_metadata() -> None:
    """Test the distinct list keeps the first row's date, buyer and style."""
    long_buyer = "A VERY LONG BUYER NAME LIMITED"
    html = challan_table(
        [
            challan_row("CH-9", "10", buyer=long_buyer, date="07-01-2026 08:00"),
            challan_row("CH-9", "10", buyer="OTHER"),
        ]
    )
    meta = parse_challan_list(html)
    assert list(meta) == ["CH-9"]
    assert meta["CH-9"].date == "07-01-2026"
    assert meta["CH-9"].buyer == long_buyer[:20]
    assert meta["CH-9"].style == "ST-100"


def test_challan_print_page() -> None:
    """Test line, distinct colors and Grand Total quantity."""
    html = challan_print_html("L-07", ["NAVY", "NAVY", "RED"], 150)
    page = parse_challan_print(html)
    assert page.line == "L-07"
    assert page.color == "NAVY, RED"
    assert page.qty == 150


def test_challan_print_without_colors() -> None:
    """Test a page without bundle rows gives the unknown color and line '-'."""
    page = parse_challan_print("<table class='rpt_table'></table>")
    assert page.color == UNKNOWN_COLOR
    assert page.line == "-"
    assert page.qty == 0


def test_find_system_id() -> None:
    """Test the system id is matched to the exact challan number."""
    text = search_list_html({"CCL-SI-000123": "98765", "CCL-SI-0001234": "55555"})
    assert find_system_id(text, "CCL-SI-000123") == "98765"
    assert find_system_id(text, "CCL-SI-0001234") == "55555"
    assert find_system_id(text, "CCL-SI-9") is None


def test_challan_search_number() -> None:
    """Test trailing digits lose their leading zeros."""
    assert challan_search_number("CCL-SI-000123") == "123"
    assert challan_search_number("000") == "0"
    assert challan_search_number("NO-DIGITS") == "0"
