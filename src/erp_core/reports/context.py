"""Per-call wiring shared by the report services.

Every report call needs the same three things: settings, the document store
holding the ERP cookie, and an HTTP session. ``ERPContext`` builds whatever
the caller did not pass in and closes only what it created.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import requests

from erp_core.config import ERPConfig
from erp_core.exceptions import ERPUnavailableError
from erp_core.raw.cookie import ERPCookieManager
from erp_core.raw.http import DEFAULT_POOL_MAXSIZE, make_session
from erp_core.store import DocumentStore, open_store

logger = logging.getLogger(__name__)

AUTH_FAILED_MESSAGE = "ERP authentication failed. Please try again later."
UNAVAILABLE_MESSAGE = "ERP temporarily unavailable. Please try again later."


@dataclass
class ERPContext:
    """Settings, store and HTTP session for one report call.

    Attributes:
        config: ERP settings.
        store: Document store holding the ERP cookie.
        session: HTTP session used for report requests.
        owns_session: Whether ``close()`` should close ``session``.
    """

    config: ERPConfig
    store: DocumentStore
    session: requests.Session
    owns_session: bool = False
    _cookies: ERPCookieManager | None = field(default=None, init=False, repr=False)

    @classmethod
    def build(
        cls,
        config: ERPConfig | None = None,
        store: DocumentStore | None = None,
        session: requests.Session | None = None,
    ) -> ERPContext:
        """Fill in defaults for anything not given.

        Args:
            config: Settings (defaults to ``ERPConfig.from_env()``).
            store: Document store (defaults to ``open_store(config)``).
            session: HTTP session (defaults to ``make_session()`` with the
                configured timeout and retries).

        Raises:
            ConfigError: If environment settings cannot be parsed.
        """
        config = config or ERPConfig.from_env()
        store = store if store is not None else open_store(config)
        owns = session is None
        if session is None:
            session = make_session(
                timeout=config.timeout,
                retries=config.retries,
                pool_maxsize=max(DEFAULT_POOL_MAXSIZE, config.max_pool_sessions),
            )
        return cls(config=config, store=store, session=session, owns_session=owns)

    @property
    def cookies(self) -> ERPCookieManager:
        if self._cookies is None:
            self._cookies = ERPCookieManager(self.config, self.store)
        return self._cookies

    def require_cookie(self) -> str:
        """Return a valid ERP cookie.

        Raises:
            ConfigError: If login settings are missing.
            ERPUnavailableError: If the ERP login did not yield a cookie.
        """
        self.config.validate()
        cookie = self.cookies.get_valid_cookie()
        if cookie is None:
            raise ERPUnavailableError("ERP login did not return a session cookie")
        return cookie

    def close(self) -> None:
        if self.owns_session:
            self.session.close()

    def __enter__(self) -> ERPContext:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
