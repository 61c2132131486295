"""Factory monthly production report: buyer-wise sewing input for a day."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import requests

from erp_core.config import ERPConfig
from erp_core.exceptions import ConfigError, ERPUnavailableError
from erp_core.parsing.factory import parse_factory_report
from erp_core.raw.http import is_success, post_form
from erp_core.reports.context import UNAVAILABLE_MESSAGE, ERPContext
from erp_core.store import DocumentStore
from erp_core.types import BuyerInputSummary

logger = logging.getLogger(__name__)


@dataclass
class FactoryReportResult:
    success: bool
    buyer_summary: list[BuyerInputSummary] = field(default_factory=list)
    total_sewing_input: int = 0
    total_sewing_output: int = 0
    total_finishing: int = 0
    total_shipment: int = 0
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "buyer_summary": [
                {"buyer_name": b.buyer_name, "sewing_input": b.sewing_input}
                for b in self.buyer_summary
            ],
            "total_sewing_input": self.total_sewing_input,
            "total_sewing_output": self.total_sewing_output,
            "total_finishing": self.total_finishing,
            "total_shipment": self.total_shipment,
            "message": self.message,
        }


def factory_form(date: str) -> dict[str, str]:
    """Day, month and year fields for a ``DD-Mon-YYYY`` date.

    Raises:
        ValueError: If the date is not ``DD-Mon-YYYY``.

    Examples:
        >>> factory_form("05-Feb-2026")
        {'month': '02', 'year': '2026', 'day': '05', 'submit': 'Show'}
    """
    day = datetime.strptime(date.strip(), "%d-%b-%Y")
    return {
        "month": day.strftime("%m"),
        "year": day.strftime("%Y"),
        "day": day.strftime("%d"),
        "submit": "Show",
    }


def fetch_factory_report(
    date: str,
    config: ERPConfig | None = None,
    store: DocumentStore | None = None,
    session: requests.Session | None = None,
) -> FactoryReportResult:
    """Fetch buyer-wise sewing input and factory totals for a day.

    Args:
        date: Report date as ``DD-Mon-YYYY``.
        config: ERP settings (defaults to the environment).
        store: Document store holding the ERP cookie.
        session: HTTP session to reuse.

    Returns:
        FactoryReportResult; ``success`` is False with a message on a bad
        date, an ERP error or a transport failure.
    """
    try:
        form = factory_form(date)
    except ValueError:
        return FactoryReportResult(success=False, message=f"Invalid date {date!r}, expected DD-Mon-YYYY")

    try:
        with ERPContext.build(config, store, session) as ctx:
            url = ctx.config.require_url("factory_report_url")
            cookie = ctx.require_cookie()
            resp = post_form(ctx.session, url, form, cookie)
    except ConfigError as e:
        logger.error("Factory report unavailable: %s", e)
        return FactoryReportResult(success=False, message="ERP is not configured")
    except ERPUnavailableError as e:
        logger.warning("ERP unavailable for factory report %s: %s", date, e)
        return FactoryReportResult(success=False, message="ERP login failed")
    except requests.RequestException as e:
        logger.warning("Factory report request for %s failed: %s", date, e)
        return FactoryReportResult(success=False, message=UNAVAILABLE_MESSAGE)

    if not is_success(resp):
        return FactoryReportResult(success=False, message=f"HTTP error: {resp.status_code}")

    parsed = parse_factory_report(resp.text)
    totals = parsed.totals
    return FactoryReportResult(
        success=True,
        buyer_summary=parsed.buyers,
        total_sewing_input=totals.sewing_input,
        total_sewing_output=totals.sewing_output,
        total_finishing=totals.finishing,
        total_shipment=totals.shipment,
    )
