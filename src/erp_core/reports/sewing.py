"""Sewing closing report: input, output, rejection and WIP per color."""

from __future__ import annotations

import logging

import requests

from erp_core.config import ERPConfig, SweepBounds
from erp_core.exceptions import ConfigError, ERPUnavailableError
from erp_core.parsing.sewing import has_color_total, parse_sewing_report
from erp_core.raw.sweep import Dimension, DimensionSweep, run_sweep
from erp_core.reports.context import ERPContext
from erp_core.store import DocumentStore
from erp_core.types import SewingReportResult

logger = logging.getLogger(__name__)

REPORT_TITLE = "❏ Sewing Input and Output Report"
BASE_FORM = {
    "action": "generate_report",
    "cbo_company_name": "0",
    "type": "1",
    "report_title": REPORT_TITLE,
}


def sewing_sweep(bounds: SweepBounds) -> DimensionSweep:
    return DimensionSweep(
        [
            Dimension("year", ("cbo_year",), bounds.sewing_years),
            Dimension("wo_company", ("cbo_wo_company_name",), bounds.sewing_wo_company_ids),
        ]
    )


def fetch_sewing_closing_report_data(
    ref: str,
    config: ERPConfig | None = None,
    store: DocumentStore | None = None,
    session: requests.Session | None = None,
) -> SewingReportResult | None:
    """Fetch the sewing input/output report for an internal reference.

    Args:
        ref: Internal reference number.
        config: ERP settings (defaults to the environment).
        store: Document store holding the ERP cookie.
        session: HTTP session to reuse.

    Returns:
        Parsed report, or None when no year yields a ``Color Total`` row,
        the ERP is unreachable or the configuration is incomplete.
    """
    ref = ref.strip()
    if not ref:
        return None

    try:
        with ERPContext.build(config, store, session) as ctx:
            url = ctx.config.require_url("sewing_report_url")
            cookie = ctx.require_cookie()
            result = run_sweep(
                ctx.session,
                url,
                {**BASE_FORM, "txt_int_ref": ref},
                sewing_sweep(ctx.config.sweep),
                cookie,
                accept=has_color_total,
                min_length=ctx.config.min_response_length,
            )
    except ConfigError as e:
        logger.error("Sewing closing report unavailable: %s", e)
        return None
    except ERPUnavailableError as e:
        logger.warning("ERP unavailable for sewing closing report %s: %s", ref, e)
        return None

    if result is None:
        logger.info("Sewing closing report for %s not found in ERP", ref)
        return None
    return parse_sewing_report(result.html, ref)
