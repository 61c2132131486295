"""Color-wise sewing input report: challans drilled down to line and color.

Two phases. The challan list for the booking is found with a company sweep
on the main cookie. Then every distinct challan is resolved to its system
id and print page concurrently, over a pool of separately logged-in
sessions sized to the number of challans.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import requests

from erp_core.config import ERPConfig
from erp_core.exceptions import ConfigError, ERPUnavailableError
from erp_core.metrics.colorwise import grand_total, group_by_color
from erp_core.parsing.challan import has_challan_table, parse_challan_list
from erp_core.raw.pool import ChallanDrillDown, SessionPool, pool_size
from erp_core.raw.sweep import run_sweep
from erp_core.reports.challan import NOT_FOUND_MESSAGE, company_sweep
from erp_core.reports.context import AUTH_FAILED_MESSAGE, ERPContext
from erp_core.store import DocumentStore
from erp_core.types import ColorGroup

logger = logging.getLogger(__name__)

BASE_FORM = {"action": "report_generate", "cbo_buyer_name": "0"}


@dataclass
class ColorWiseReportResult:
    success: bool
    message: str
    data: list[ColorGroup] = field(default_factory=list)
    grand_total: int = 0
    total_challans: int = 0
    company_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "data": [group.to_dict() for group in self.data],
            "grand_total": self.grand_total,
            "total_challans": self.total_challans,
            "company_id": self.company_id,
        }


def fetch_color_wise_report(
    booking: str,
    config: ERPConfig | None = None,
    store: DocumentStore | None = None,
    session: requests.Session | None = None,
    pool: SessionPool | None = None,
) -> ColorWiseReportResult:
    """Group a booking's challans by color with line and quantity per challan.

    Challans whose drill-down fails stay in the report with quantity 0 and an
    ``error`` marker; they never fail the report.

    Args:
        booking: Booking / internal reference.
        config: ERP settings (defaults to the environment).
        store: Document store holding the ERP cookie.
        session: HTTP session to reuse.
        pool: Pre-built session pool (built from fresh logins when omitted).

    Returns:
        ColorWiseReportResult with color groups in first-appearance order.
    """
    booking = booking.strip()
    if not booking:
        return ColorWiseReportResult(success=False, message="Booking number is required.")

    try:
        with ERPContext.build(config, store, session) as ctx:
            report_url = ctx.config.require_url("challan_report_url")
            search_url = ctx.config.require_url("challan_search_url")
            cookie = ctx.require_cookie()
            result = run_sweep(
                ctx.session,
                report_url,
                {**BASE_FORM, "txt_internal_ref": booking},
                company_sweep(ctx.config.sweep.challan_company_ids),
                cookie,
                accept=has_challan_table,
                min_length=ctx.config.min_response_length,
            )
            if result is None:
                logger.info("Color-wise report for %s not found in ERP", booking)
                return ColorWiseReportResult(success=False, message=NOT_FOUND_MESSAGE)

            company_id = result.combination["cbo_company_name"]
            challans = parse_challan_list(result.html)
            logger.info("Found %d challans for %s (company %s)", len(challans), booking, company_id)

            if pool is None:
                size = pool_size(len(challans), ctx.config.max_pool_sessions)
                pool = SessionPool.create(ctx.cookies.fetch_cookie, size)
            if not len(pool):
                raise ERPUnavailableError("No pooled ERP session could log in")

            records = ChallanDrillDown(ctx.session, search_url, pool).run(challans, company_id)
    except ConfigError as e:
        logger.error("Color-wise report unavailable: %s", e)
        return ColorWiseReportResult(success=False, message=AUTH_FAILED_MESSAGE)
    except ERPUnavailableError as e:
        logger.warning("ERP unavailable for color-wise report %s: %s", booking, e)
        return ColorWiseReportResult(success=False, message=AUTH_FAILED_MESSAGE)

    failed = sum(1 for r in records if r.error)
    if failed:
        logger.warning("%d of %d challans could not be resolved", failed, len(records))

    groups = group_by_color(records)
    return ColorWiseReportResult(
        success=True,
        message=f"Data found (Company ID: {company_id})",
        data=groups,
        grand_total=grand_total(groups),
        total_challans=len(records),
        company_id=company_id,
    )
