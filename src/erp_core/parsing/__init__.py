"""Parsing layer - ERP HTML and PO text into typed records.

Every parser here is a pure function: no I/O, no exceptions for malformed
rows. Rows that do not have the expected shape are skipped.
"""

from erp_core.parsing.challan import parse_challan_list, parse_challans
from erp_core.parsing.closing import parse_closing_report
from erp_core.parsing.factory import parse_factory_report
from erp_core.parsing.hourly import parse_hourly_report
from erp_core.parsing.po import parse_po_text
from erp_core.parsing.sewing import parse_sewing_report

__all__ = [
    "parse_challan_list",
    "parse_challans",
    "parse_closing_report",
    "parse_factory_report",
    "parse_hourly_report",
    "parse_po_text",
    "parse_sewing_report",
]
