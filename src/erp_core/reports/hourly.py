"""Hourly production monitoring: sewing input per line and floor for a day."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import requests

from erp_core.config import ERPConfig
from erp_core.exceptions import ConfigError, ERPUnavailableError
from erp_core.parsing.hourly import parse_hourly_report
from erp_core.raw.http import is_success, post_form
from erp_core.reports.context import UNAVAILABLE_MESSAGE, ERPContext
from erp_core.store import DocumentStore
from erp_core.types import FloorData

logger = logging.getLogger(__name__)

NO_LINE_ENGAGE = "No Line Engage"
REPORT_TITLE = "Hourly Production Monitoring Report"


@dataclass
class HourlyReportResult:
    success: bool
    date: str
    floors: list[FloorData] = field(default_factory=list)
    target_line: str | None = None
    message: str | None = None

    @property
    def grand_total(self) -> int:
        return sum(floor.subtotal for floor in self.floors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "date": self.date,
            "floors": [floor.to_dict() for floor in self.floors],
            "grand_total": self.grand_total,
            "target_line": self.target_line,
            "message": self.message,
        }


def erp_date(value: str) -> str:
    """Quote a ``DD-Mon-YYYY`` date the way the report controller expects.

    Examples:
        >>> erp_date('"28-Jan-2026" ')
        "'28-Jan-2026'"
    """
    return "'%s'" % value.replace("'", "").replace('"', "").strip()


def hourly_form(date: str, company_id: str) -> dict[str, str]:
    return {
        "action": "report_generate2",
        "type": "1",
        "cbo_company_id": company_id,
        "cbo_location_id": "",
        "cbo_floor_id": "",
        "cbo_line": "",
        "hidden_line_id": "",
        "cbo_buyer_name": "0",
        "txt_date": erp_date(date),
        "txt_parcentage": "60",
        "cbo_no_prod_type": "1",
        "cbo_shift_name": "0",
        "report_title": REPORT_TITLE,
    }


def fetch_hourly_report(
    date: str,
    target_line: str | None = None,
    config: ERPConfig | None = None,
    store: DocumentStore | None = None,
    session: requests.Session | None = None,
) -> HourlyReportResult:
    """Fetch line-wise sewing input for one day.

    Args:
        date: Report date as ``DD-Mon-YYYY`` (e.g. ``"28-Jan-2026"``).
        target_line: Return only this line (case-insensitive).
        config: ERP settings (defaults to the environment).
        store: Document store holding the ERP cookie.
        session: HTTP session to reuse.

    Returns:
        HourlyReportResult. ``success`` is False when no line was engaged,
        nothing matched, or the ERP could not be reached.
    """
    date = date.strip()

    def failure(message: str) -> HourlyReportResult:
        return HourlyReportResult(
            success=False, date=date, target_line=target_line, message=message
        )

    try:
        with ERPContext.build(config, store, session) as ctx:
            url = ctx.config.require_url("hourly_report_url")
            cookie = ctx.require_cookie()
            resp = post_form(ctx.session, url, hourly_form(date, ctx.config.hourly_company_id), cookie)
    except ConfigError as e:
        logger.error("Hourly report unavailable: %s", e)
        return failure("ERP login failed.")
    except ERPUnavailableError as e:
        logger.warning("ERP unavailable for hourly report %s: %s", date, e)
        return failure("ERP login failed.")
    except requests.RequestException as e:
        logger.warning("Hourly report request for %s failed: %s", date, e)
        return failure(UNAVAILABLE_MESSAGE)

    if not is_success(resp):
        logger.warning("Hourly report for %s: HTTP %s", date, resp.status_code)
        return failure(f"Server error: {resp.status_code}")

    html = resp.text
    if NO_LINE_ENGAGE in html:
        logger.info("No line engaged on %s", date)
        return failure("No line engaged on this date.")

    floors = parse_hourly_report(html, target_line)
    if floors is None:
        return failure("Data table not found.")
    if not floors:
        if target_line:
            return failure(f"Line '{target_line}' not found or has no input.")
        return failure("No data found.")

    return HourlyReportResult(success=True, date=date, floors=floors, target_line=target_line)
