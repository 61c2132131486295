"""Factory-local time (Asia/Dhaka) for user-facing dates and audit records."""

from __future__ import annotations

from datetime import datetime

import pytz

LOCAL_TZ = pytz.timezone("Asia/Dhaka")


def local_now() -> datetime:
    return datetime.now(LOCAL_TZ)


def erp_date_str(moment: datetime | None = None) -> str:
    """Date in the ERP's ``DD-Mon-YYYY`` format (local time by default).

    Examples:
        >>> erp_date_str(datetime(2026, 1, 28))
        '28-Jan-2026'
    """
    return (moment or local_now()).strftime("%d-%b-%Y")
