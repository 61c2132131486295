"""Activity history: who downloaded which report, newest first.

Records live in the ``stats_data`` document as a ``downloads`` list capped
at 5000 entries. Dates are factory-local (Asia/Dhaka).
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from erp_core.clock import local_now
from erp_core.raw.sweep import ReportType
from erp_core.store import DocumentStore

logger = logging.getLogger(__name__)

STATS_KEY = "stats_data"
MAX_RECORDS = 5000

PO_SHEET = "PO Sheet"
ACCESSORIES = "Accessories"

REPORT_LABELS = {
    ReportType.CLOSING: "Closing Report",
    ReportType.SEWING: "Sewing Closing Report",
    ReportType.CHALLAN: "Challan Report",
    ReportType.COLOR_WISE: "Color Wise Report",
    ReportType.FACTORY: "Factory Report",
    ReportType.HOURLY: "Hourly Report",
}


def activity_label(kind: ReportType | str) -> str:
    """Display label for a report type; plain strings pass through."""
    if isinstance(kind, ReportType):
        return REPORT_LABELS[kind]
    return str(kind)


def load_stats(store: DocumentStore) -> dict[str, Any]:
    data = store.get(STATS_KEY) or {}
    data.setdefault("downloads", [])
    data.setdefault("last_booking", "None")
    return data


def record_activity(
    store: DocumentStore,
    ref: str,
    user: str,
    kind: ReportType | str,
    status: str = "success",
    **details: Any,
) -> dict[str, Any]:
    """Prepend an activity record and trim the history to ``MAX_RECORDS``.

    Args:
        store: Document store.
        ref: Booking / reference the activity was about.
        user: Username.
        kind: Report type, or a label such as ``"PO Sheet"``.
        status: ``"success"`` or ``"failed"``.
        **details: Extra fields (``file_count``, ``info``...).

    Returns:
        The stored record.
    """
    now = local_now()
    record = {
        "ref": ref,
        "user": user,
        "date": now.strftime("%d-%m-%Y"),
        "display_date": now.strftime("%d %b %Y"),
        "time": now.strftime("%I:%M %p"),
        "type": activity_label(kind),
        "iso_time": now.isoformat(),
        "status": status,
        **details,
    }
    data = load_stats(store)
    data["downloads"].insert(0, record)
    del data["downloads"][MAX_RECORDS:]
    if kind == ReportType.CLOSING and status == "success":
        data["last_booking"] = ref
    store.upsert(STATS_KEY, data)
    logger.debug("Recorded %s for %s by %s", record["type"], ref, user)
    return record


def recent_activity(store: DocumentStore, limit: int = 50) -> list[dict[str, Any]]:
    """Newest records first, sorted by ``iso_time``."""
    downloads = load_stats(store)["downloads"]
    ordered = sorted(downloads, key=lambda r: r.get("iso_time", ""), reverse=True)
    return ordered[:limit]


def activity_counts(store: DocumentStore) -> dict[str, int]:
    """Count history records per type label."""
    counts = Counter(r.get("type", "") for r in load_stats(store)["downloads"])
    return dict(counts)
