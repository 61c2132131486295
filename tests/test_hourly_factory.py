"""Tests for the hourly production and factory report parsers."""

from __future__ import annotations

from erp_core.parsing.factory import parse_factory_report
from erp_core.parsing.hourly import parse_hourly_report
from tests.test_utils import cells_row


def line_row(line: str, qty: str) -> str:
    return cells_row([line] + ["0"] * 10 + [qty] + ["0"] * 4)


HOURLY_HTML = (
    '<table><tbody id="table_body">'
    + cells_row(["Floor Name: Floor-1"])
    + cells_row(["Line No", "Buyer"] + ["h"] * 14)
    + line_row("L-01", "120")
    + line_row("L-02", "1,080")
    + line_row("", "1200")
    + cells_row(["Floor Name: Floor-2"])
    + line_row("L-10", "200")
    + cells_row(["Floor Name: Floor-3"])
    + "</tbody></table>"
)


def test_hourly_floors_and_lines() -> None:
    """Test floors with their lines, subtotal rows skipped, empty floors dropped."""
    floors = parse_hourly_report(HOURLY_HTML)

    assert [f.floor_name for f in floors] == ["Floor-1", "Floor-2"]
    assert [(line.line_no, line.input) for line in floors[0].lines] == [("L-01", 120), ("L-02", 1080)]
    assert floors[0].subtotal == 1200
    assert sum(f.subtotal for f in floors) == 1400


def test_hourly_target_line() -> None:
    """Test the line filter is case-insensitive."""
    floors = parse_hourly_report(HOURLY_HTML, target_line=" l-02 ")
    assert len(floors) == 1
    assert floors[0].to_dict() == {
        "floor_name": "Floor-1",
        "lines": [{"line_no": "L-02", "input": 1080}],
        "subtotal": 1080,
    }


def test_hourly_without_table_body() -> None:
    """Test a body without the data table is reported as None."""
    assert parse_hourly_report("<table><tr><td>x</td></tr></table>") is None
    assert parse_hourly_report(HOURLY_HTML, target_line="L-99") == []


FACTORY_HTML = (
    "<table>"
    + cells_row(["Date", "28-Jan-2026", "", ""])
    + cells_row(["Buyer", "Sewing Input", "Output", "Finishing", "Shipment"])
    + cells_row(["KIABI", "1,200", "1000", "900", "800"])
    + cells_row(["H&amp;M", "0", "2,500", "0", "0"])
    + cells_row(["KIABI", "300", "0", "0", "0"])
    + cells_row(["A", "99", "99", "99", "99"])
    + cells_row(["Grand Total", "3,700", "3,500", "1,800", "1,600"])
    + "</table>"
)


def test_factory_buyers_sorted() -> None:
    """Test buyer input is summed per buyer and sorted descending."""
    parsed = parse_factory_report(FACTORY_HTML)
    assert [(b.buyer_name, b.sewing_input) for b in parsed.buyers] == [("H&M", 2500), ("KIABI", 1500)]


def test_factory_totals_row() -> None:
    """Test totals are read by column from the grand total row."""
    totals = parse_factory_report(FACTORY_HTML).totals
    assert (totals.sewing_input, totals.sewing_output, totals.finishing, totals.shipment) == (
        3700,
        3500,
        1800,
        1600,
    )


def test_factory_empty_page() -> None:
    """Test a page without rows gives no buyers and zero totals."""
    parsed = parse_factory_report("<p>nothing</p>")
    assert parsed.buyers == []
    assert parsed.totals.sewing_input == 0
