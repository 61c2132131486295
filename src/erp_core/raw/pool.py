"""Raw layer: session pool and concurrent challan drill-down.

The color-wise report needs two extra lookups per challan (system id, then
the challan print page). They are fanned out over a pool of independently
logged-in ERP sessions so that no single session gets rate limited.

Each challan is isolated: a failure becomes a record with zero quantity and
an error marker, never an exception that stops the batch.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed

import requests

from erp_core.parsing.challan import (
    ChallanPrint,
    challan_search_number,
    find_system_id,
    parse_challan_print,
)
from erp_core.raw.http import get_with_cookie, is_success
from erp_core.types import UNKNOWN_COLOR, ChallanDetailRecord, ChallanMeta

logger = logging.getLogger(__name__)

RESOLVE_ATTEMPTS = 3
RESOLVE_DELAY_RANGE = (0.1, 0.3)  # seconds
SEARCH_ACTION = "create_challan_search_list_view"
PRINT_ACTION = "sewing_input_challan_print_5"
PRINT_TITLE = "❏ Bundle Wise Sewing Input"

NOT_FOUND = "Not Found"
ERROR = "Error"


def pool_size(challan_count: int, max_sessions: int) -> int:
    """Sessions to open for a drill-down: ``challans // 3 + 2``, capped.

    Examples:
        >>> pool_size(10, 30), pool_size(200, 30)
        (5, 30)
    """
    return max(1, min(challan_count // 3 + 2, max_sessions))


class SessionPool:
    """Cookies from separate ERP logins, handed out at random.

    Args:
        cookies: One raw cookie header value per logged-in session.
    """

    def __init__(self, cookies: list[str]) -> None:
        self._cookies = list(cookies)
        self._lock = threading.Lock()

    @classmethod
    def create(cls, login: Callable[[], str | None], size: int) -> SessionPool:
        """Log in ``size`` times concurrently; failed logins are dropped."""
        with ThreadPoolExecutor(max_workers=max(1, size)) as executor:
            futures = [executor.submit(login) for _ in range(size)]
            cookies = []
            for future in as_completed(futures):
                try:
                    cookie = future.result()
                except requests.RequestException as e:
                    logger.debug("Pool login failed: %s", e)
                    continue
                if cookie:
                    cookies.append(cookie)
        logger.info("Session pool ready: %d of %d logins", len(cookies), size)
        return cls(cookies)

    def __len__(self) -> int:
        return len(self._cookies)

    def pick(self) -> str | None:
        with self._lock:
            return random.choice(self._cookies) if self._cookies else None


class ChallanDrillDown:
    """Resolve and fetch challan details over a session pool.

    Args:
        session: Shared HTTP session (connections only; auth is per-request cookie).
        url: Bundle wise sewing input controller URL.
        pool: Session pool providing cookies.
        sleep: Sleep function, injectable for tests.
    """

    def __init__(
        self,
        session: requests.Session,
        url: str,
        pool: SessionPool,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session = session
        self.url = url
        self.pool = pool
        self._sleep = sleep

    def resolve_system_id(self, challan_no: str, company_id: str) -> str | None:
        """Find the internal system id for a challan number.

        Up to three attempts with a random 100-300 ms delay before each.
        Only transport errors and non-2xx responses are retried; a good
        response without a matching entry means the challan is not found.
        """
        params = {
            "data": f"{challan_search_number(challan_no)}_0__{company_id}_2__1___",
            "action": SEARCH_ACTION,
        }
        for attempt in range(1, RESOLVE_ATTEMPTS + 1):
            cookie = self.pool.pick()
            if cookie is None:
                return None
            self._sleep(random.uniform(*RESOLVE_DELAY_RANGE))
            try:
                resp = get_with_cookie(self.session, self.url, cookie, params=params)
            except requests.RequestException as e:
                logger.debug("Resolve %s attempt %d failed: %s", challan_no, attempt, e)
                continue
            if not is_success(resp):
                logger.debug("Resolve %s attempt %d: HTTP %s", challan_no, attempt, resp.status_code)
                continue
            return find_system_id(resp.text, challan_no)
        return None

    def fetch_details(self, system_id: str, company_id: str) -> ChallanPrint | None:
        """Fetch and parse the challan print page; None on failure."""
        cookie = self.pool.pick()
        if cookie is None:
            return None
        params = {
            "data": f"{company_id}*{system_id}*3*{PRINT_TITLE}*undefined*undefined*undefined*1",
            "action": PRINT_ACTION,
        }
        try:
            resp = get_with_cookie(self.session, self.url, cookie, params=params)
        except requests.RequestException as e:
            logger.debug("Details for system id %s failed: %s", system_id, e)
            return None
        if not is_success(resp):
            return None
        return parse_challan_print(resp.text)

    def process(self, challan_no: str, meta: ChallanMeta, company_id: str) -> ChallanDetailRecord:
        """Resolve one challan end to end."""
        base = dict(
            challan=challan_no,
            date=meta.date,
            buyer=meta.buyer,
            style=meta.style,
            company_id=company_id,
        )
        system_id = self.resolve_system_id(challan_no, company_id)
        if system_id is None:
            return ChallanDetailRecord(
                **base, line="N/A", color=UNKNOWN_COLOR, qty=0, system_id="", error=NOT_FOUND
            )
        details = self.fetch_details(system_id, company_id)
        if details is None:
            return ChallanDetailRecord(
                **base, line="Err", color=UNKNOWN_COLOR, qty=0, system_id=system_id, error=ERROR
            )
        return ChallanDetailRecord(
            **base, line=details.line, color=details.color, qty=details.qty, system_id=system_id
        )

    def run(self, challans: dict[str, ChallanMeta], company_id: str) -> list[ChallanDetailRecord]:
        """Process all challans concurrently, one worker per pooled session.

        Returns:
            One record per challan, in the order of ``challans``.
        """
        results: dict[str, ChallanDetailRecord] = {}
        workers = max(1, len(self.pool))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_challan = {
                executor.submit(self.process, challan_no, meta, company_id): challan_no
                for challan_no, meta in challans.items()
            }
            for future in as_completed(future_to_challan):
                challan_no = future_to_challan[future]
                try:
                    results[challan_no] = future.result()
                except Exception as e:
                    logger.warning("Drill-down for %s failed: %s", challan_no, e)
                    meta = challans[challan_no]
                    results[challan_no] = ChallanDetailRecord(
                        challan=challan_no,
                        date=meta.date,
                        buyer=meta.buyer,
                        style=meta.style,
                        line="Err",
                        color=UNKNOWN_COLOR,
                        qty=0,
                        system_id="",
                        company_id=company_id,
                        error=ERROR,
                    )
        return [results[challan_no] for challan_no in challans]
