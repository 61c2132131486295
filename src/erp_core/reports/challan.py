"""Challan-wise sewing input report for a booking."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import requests

from erp_core.config import ERPConfig
from erp_core.exceptions import ConfigError, ERPUnavailableError
from erp_core.parsing.challan import has_challan_table, parse_challans
from erp_core.raw.sweep import Dimension, DimensionSweep, run_sweep
from erp_core.reports.context import AUTH_FAILED_MESSAGE, ERPContext
from erp_core.store import DocumentStore
from erp_core.types import ChallanRecord

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "No data found in any company. Please verify the booking number."

BASE_FORM = {
    "action": "report_generate",
    "cbo_buyer_name": "0",
    "txt_job_no": "",
    "txt_order_no": "",
    "txt_file_no": "",
    "txt_challan_no": "",
    "txt_date_from": "",
    "txt_date_to": "",
}


@dataclass
class ChallanReportResult:
    success: bool
    message: str
    data: list[ChallanRecord] = field(default_factory=list)
    grand_total: int = 0
    company_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "data": [record.to_dict() for record in self.data],
            "grand_total": self.grand_total,
            "company_id": self.company_id,
        }


def company_sweep(company_ids: tuple[str, ...]) -> DimensionSweep:
    return DimensionSweep([Dimension("company", ("cbo_company_name",), company_ids)])


def fetch_challan_report(
    booking: str,
    config: ERPConfig | None = None,
    store: DocumentStore | None = None,
    session: requests.Session | None = None,
) -> ChallanReportResult:
    """List sewing input challans for a booking, trying each company in turn.

    Rows sharing a challan number are merged with their quantities summed.

    Args:
        booking: Booking / internal reference.
        config: ERP settings (defaults to the environment).
        store: Document store holding the ERP cookie.
        session: HTTP session to reuse.

    Returns:
        ChallanReportResult; ``success`` is False when no company has data or
        the ERP cannot be reached.
    """
    booking = booking.strip()
    if not booking:
        return ChallanReportResult(success=False, message="Booking number is required.")

    try:
        with ERPContext.build(config, store, session) as ctx:
            url = ctx.config.require_url("challan_report_url")
            cookie = ctx.require_cookie()
            result = run_sweep(
                ctx.session,
                url,
                {**BASE_FORM, "txt_internal_ref": booking},
                company_sweep(ctx.config.sweep.challan_company_ids),
                cookie,
                accept=has_challan_table,
                min_length=ctx.config.min_response_length,
            )
    except ConfigError as e:
        logger.error("Challan report unavailable: %s", e)
        return ChallanReportResult(success=False, message=AUTH_FAILED_MESSAGE)
    except ERPUnavailableError as e:
        logger.warning("ERP unavailable for challan report %s: %s", booking, e)
        return ChallanReportResult(success=False, message=AUTH_FAILED_MESSAGE)

    if result is None:
        logger.info("Challan report for %s not found in ERP", booking)
        return ChallanReportResult(success=False, message=NOT_FOUND_MESSAGE)

    records = parse_challans(result.html)
    company_id = result.combination["cbo_company_name"]
    return ChallanReportResult(
        success=True,
        message=f"Data found (Company ID: {company_id})",
        data=records,
        grand_total=sum(r.qty for r in records),
        company_id=company_id,
    )
