"""Report services - the operations exposed to the API and CLI.

Each ``fetch_*`` function wires config, store and session, runs the raw
layer, parses and aggregates. Expected outcomes (not found, ERP down,
missing configuration) come back as ``None`` or ``success=False``; only
unexpected errors propagate.
"""

from erp_core.reports.challan import ChallanReportResult, fetch_challan_report
from erp_core.reports.closing import fetch_closing_report_data
from erp_core.reports.color_wise import ColorWiseReportResult, fetch_color_wise_report
from erp_core.reports.context import ERPContext
from erp_core.reports.factory import FactoryReportResult, fetch_factory_report
from erp_core.reports.hourly import HourlyReportResult, fetch_hourly_report
from erp_core.reports.po import POReport, process_po_files
from erp_core.reports.query import fetch_report
from erp_core.reports.sewing import fetch_sewing_closing_report_data
from erp_core.reports.snapshots import capture_snapshot, get_snapshots_for_date

__all__ = [
    "ChallanReportResult",
    "ColorWiseReportResult",
    "ERPContext",
    "FactoryReportResult",
    "HourlyReportResult",
    "POReport",
    "capture_snapshot",
    "fetch_challan_report",
    "fetch_closing_report_data",
    "fetch_color_wise_report",
    "fetch_factory_report",
    "fetch_hourly_report",
    "fetch_report",
    "fetch_sewing_closing_report_data",
    "get_snapshots_for_date",
    "process_po_files",
]
