"""Dispatch a ``ReportQuery`` to the matching report service."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import requests

from erp_core.config import ERPConfig
from erp_core.raw.sweep import ReportQuery, ReportType
from erp_core.reports.challan import fetch_challan_report
from erp_core.reports.closing import fetch_closing_report_data
from erp_core.reports.color_wise import fetch_color_wise_report
from erp_core.reports.factory import fetch_factory_report
from erp_core.reports.hourly import fetch_hourly_report
from erp_core.reports.sewing import fetch_sewing_closing_report_data
from erp_core.store import DocumentStore

logger = logging.getLogger(__name__)

SERVICES: dict[ReportType, Callable[..., Any]] = {
    ReportType.CLOSING: fetch_closing_report_data,
    ReportType.SEWING: fetch_sewing_closing_report_data,
    ReportType.CHALLAN: fetch_challan_report,
    ReportType.COLOR_WISE: fetch_color_wise_report,
    ReportType.FACTORY: fetch_factory_report,
    ReportType.HOURLY: fetch_hourly_report,
}


def fetch_report(
    query: ReportQuery,
    config: ERPConfig | None = None,
    store: DocumentStore | None = None,
    session: requests.Session | None = None,
) -> Any:
    """Run the report service for ``query.report_type``.

    Args:
        query: Reference and report type.
        config: ERP settings (defaults to the environment).
        store: Document store holding the ERP cookie.
        session: HTTP session to reuse.

    Returns:
        Whatever the service returns: blocks or a result object, None when
        a closing or sewing reference is not found.
    """
    service = SERVICES[ReportType(query.report_type)]
    logger.debug("Fetching %s report for %s", query.report_type.value, query.reference)
    return service(query.reference, config=config, store=store, session=session)
