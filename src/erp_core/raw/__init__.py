"""Raw layer - HTTP access to the legacy ERP.

This layer talks to the ERP directly:
- Session cookie login, caching and refresh
- Deterministic dimension sweeps over report controllers
- The session pool used for the color-wise challan drill-down

Responses are returned as raw HTML; parsing happens in ``erp_core.parsing``.
"""

from erp_core.raw.cookie import AuthToken, ERPCookieManager, get_valid_erp_cookie
from erp_core.raw.http import make_session, post_form
from erp_core.raw.pool import ChallanDrillDown, SessionPool, pool_size
from erp_core.raw.sweep import (
    Attempt,
    Dimension,
    DimensionSweep,
    ReportQuery,
    ReportType,
    SkipReason,
    SweepResult,
    run_sweep,
)

__all__ = [
    "Attempt",
    "AuthToken",
    "ChallanDrillDown",
    "Dimension",
    "DimensionSweep",
    "ReportQuery",
    "ERPCookieManager",
    "ReportType",
    "SessionPool",
    "SkipReason",
    "SweepResult",
    "get_valid_erp_cookie",
    "make_session",
    "pool_size",
    "post_form",
    "run_sweep",
]
