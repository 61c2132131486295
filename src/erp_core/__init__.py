"""ERP Core - production reports scraped from a legacy garments ERP.

This package logs in to the ERP, finds report data by sweeping the ERP's
report controllers, parses the HTML into typed records and aggregates them
into size x metric tables:

- **Raw**: ERP session cookie, form POSTs, dimension sweeps, session pool
- **Parsing**: BeautifulSoup parsers for each report, PO sheet text parser
- **Metrics**: +3% order quantities, balances, color grouping, PO pivots

Module Structure:
    erp_core.raw: HTTP access (cookie, sweep, pool)
    erp_core.parsing: HTML/text to records
    erp_core.metrics: Derived quantities and pivots
    erp_core.reports: Public report services (``fetch_*``)
    erp_core.store: Key-value document store backends
    erp_core.web: Flask JSON API
    erp_core.cli: ``erp-core`` command-line tool

Quick Start:
    >>> from erp_core import ERPConfig, fetch_closing_report_data
    >>> from erp_core.metrics import block_totals
    >>>
    >>> config = ERPConfig.from_env()
    >>> blocks = fetch_closing_report_data("DFL/2025/1234", config=config)
    >>> for block in blocks or []:
    ...     print(block.color, block_totals(block).short_plus)
"""

__version__ = "0.1.0"

from erp_core.config import ERPConfig, SweepBounds
from erp_core.exceptions import (
    ConfigError,
    ErpCoreError,
    ERPUnavailableError,
    ParseError,
    StoreError,
)
from erp_core.raw.cookie import get_valid_erp_cookie
from erp_core.reports import (
    fetch_challan_report,
    fetch_closing_report_data,
    fetch_color_wise_report,
    fetch_factory_report,
    fetch_hourly_report,
    fetch_sewing_closing_report_data,
    process_po_files,
)

__all__ = [
    "ConfigError",
    "ERPConfig",
    "ERPUnavailableError",
    "ErpCoreError",
    "ParseError",
    "StoreError",
    "SweepBounds",
    "__version__",
    "fetch_challan_report",
    "fetch_closing_report_data",
    "fetch_color_wise_report",
    "fetch_factory_report",
    "fetch_hourly_report",
    "fetch_sewing_closing_report_data",
    "get_valid_erp_cookie",
    "process_po_files",
]
