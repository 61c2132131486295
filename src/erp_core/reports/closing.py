"""Closing report: cutting/sewing position per color and size for one internal ref."""

from __future__ import annotations

import logging

import requests

from erp_core.config import ERPConfig, SweepBounds
from erp_core.exceptions import ConfigError, ERPUnavailableError
from erp_core.parsing.closing import parse_closing_report
from erp_core.raw.sweep import Dimension, DimensionSweep, run_sweep
from erp_core.reports.context import ERPContext
from erp_core.store import DocumentStore
from erp_core.types import ReportBlock

logger = logging.getLogger(__name__)

BASE_FORM = {
    "action": "report_generate",
    "cbo_floor_id": "0",
    "cbo_buyer_name": "0",
    "reportType": "3",
}


def closing_sweep(bounds: SweepBounds) -> DimensionSweep:
    """Location (outermost), then year, then company.

    The location id is posted as both working company and location.
    """
    return DimensionSweep(
        [
            Dimension("location", ("cbo_wo_company_name", "cbo_location_name"), bounds.closing_locations),
            Dimension("year", ("cbo_year_selection",), bounds.years),
            Dimension("company", ("cbo_company_name",), bounds.company_ids),
        ]
    )


def _has_blocks(html: str) -> bool:
    return bool(parse_closing_report(html))


def fetch_closing_report_data(
    ref: str,
    config: ERPConfig | None = None,
    store: DocumentStore | None = None,
    session: requests.Session | None = None,
) -> list[ReportBlock] | None:
    """Fetch and parse the closing report for an internal reference.

    Sweeps location x year x company and parses the first combination that
    yields at least one color block.

    Args:
        ref: Internal reference number (e.g. ``"DFL/2025/1234"``).
        config: ERP settings (defaults to the environment).
        store: Document store holding the ERP cookie.
        session: HTTP session to reuse.

    Returns:
        Report blocks, or None when the reference is not found, the ERP is
        unreachable or the configuration is incomplete.

    Examples:
        >>> blocks = fetch_closing_report_data("DFL/2025/1234")
        >>> blocks[0].color if blocks else None
        'NAVY'
    """
    ref = ref.strip()
    if not ref:
        return None

    try:
        with ERPContext.build(config, store, session) as ctx:
            url = ctx.config.require_url("closing_report_url")
            cookie = ctx.require_cookie()
            result = run_sweep(
                ctx.session,
                url,
                {**BASE_FORM, "txt_internal_ref_no": ref},
                closing_sweep(ctx.config.sweep),
                cookie,
                accept=_has_blocks,
                min_length=ctx.config.min_response_length,
            )
    except ConfigError as e:
        logger.error("Closing report unavailable: %s", e)
        return None
    except ERPUnavailableError as e:
        logger.warning("ERP unavailable for closing report %s: %s", ref, e)
        return None

    if result is None:
        logger.info("Closing report for %s not found in ERP", ref)
        return None
    return parse_closing_report(result.html)
