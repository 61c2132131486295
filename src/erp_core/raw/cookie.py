"""Raw layer: ERP session cookie lifecycle.

The ERP issues a session cookie that lives for five minutes. The manager
logs in with the configured report user, stores the cookie in the shared
document store and hands the same cookie to every caller until 80% of its
lifetime has passed, after which the next access logs in again.

There is no background refresh loop. Refresh happens lazily on access or
when an external caller (the ``POST /api/erp-cookie`` endpoint) asks for
it; both paths write the same store document, last write wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import requests

from erp_core.config import ERPConfig
from erp_core.exceptions import ConfigError
from erp_core.raw.http import make_session, post_form
from erp_core.store import DocumentStore, open_store

logger = logging.getLogger(__name__)

STORE_KEY = "erp_session"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AuthToken:
    """A stored ERP session cookie.

    Attributes:
        cookie: Raw ``Cookie`` header value.
        created_at: When the cookie was obtained.
        expires_at: When the ERP stops accepting it.
        last_refreshed: When it was last (re)stored.
    """

    cookie: str
    created_at: datetime
    expires_at: datetime
    last_refreshed: datetime

    def to_dict(self) -> dict[str, str]:
        """Convert to a JSON-serializable dict (ISO timestamps)."""
        data = asdict(self)
        for key in ("created_at", "expires_at", "last_refreshed"):
            data[key] = data[key].isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuthToken:
        """Create a token from a store document."""
        return cls(
            cookie=str(data["cookie"]),
            created_at=_parse_ts(data["created_at"]),
            expires_at=_parse_ts(data["expires_at"]),
            last_refreshed=_parse_ts(data["last_refreshed"]),
        )

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def needs_refresh(self, now: datetime, interval: timedelta) -> bool:
        """True when expired or older than the refresh interval."""
        return self.is_expired(now) or now - self.last_refreshed >= interval


def _parse_ts(value: Any) -> datetime:
    ts = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def cookie_from_response(resp: requests.Response) -> str | None:
    """Build a ``Cookie`` header value from a login response.

    Uses the parsed cookie jar when available and falls back to the first
    ``name=value`` segment of the raw ``Set-Cookie`` header.

    Returns:
        Cookie header value, or None if the response set no cookie.
    """
    raw = resp.headers.get("Set-Cookie")
    pairs = [f"{c.name}={c.value}" for c in resp.cookies]
    if pairs:
        return "; ".join(pairs)
    if raw:
        first = raw.split(";", 1)[0].strip()
        return first or None
    return None


class ERPCookieManager:
    """Obtain, cache and refresh the ERP session cookie.

    Args:
        config: ERP settings (login URL, credentials, lifetime).
        store: Shared document store holding the token under ``erp_session``.
        session_factory: Builds the HTTP session used for the login call.
        clock: Returns the current aware datetime.
    """

    def __init__(
        self,
        config: ERPConfig,
        store: DocumentStore,
        session_factory: Callable[[], requests.Session] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config
        self.store = store
        self._session_factory = session_factory or (
            lambda: make_session(timeout=config.timeout, retries=config.retries)
        )
        self._clock = clock

    def fetch_cookie(self) -> str | None:
        """Log in to the ERP and return a fresh cookie (not stored).

        Returns:
            Cookie header value, or None on configuration error, transport
            error, HTTP error status or a response without ``Set-Cookie``.
        """
        try:
            self.config.validate()
        except ConfigError as e:
            logger.error("ERP login not possible: %s", e)
            return None

        form = {
            "txt_userid": str(self.config.username),
            "txt_password": str(self.config.password),
            "submit": "Login",
        }
        try:
            with self._session_factory() as session:
                resp = post_form(
                    session, str(self.config.login_url), form, allow_redirects=False
                )
        except requests.RequestException as e:
            logger.warning("ERP login failed: %s", e)
            return None

        # PHP logins usually answer 302 with the cookie; only 4xx/5xx are failures
        if resp.status_code >= 400:
            logger.warning("ERP login rejected: HTTP %s", resp.status_code)
            return None

        cookie = cookie_from_response(resp)
        if not cookie:
            logger.warning("ERP login returned no session cookie")
            return None
        logger.info("Fetched new ERP cookie")
        return cookie

    def store_cookie(self, cookie: str) -> AuthToken:
        """Persist a cookie with fresh timestamps and return the token."""
        now = self._clock()
        token = AuthToken(
            cookie=cookie,
            created_at=now,
            expires_at=now + self.config.token_lifetime,
            last_refreshed=now,
        )
        self.store.upsert(STORE_KEY, token.to_dict())
        logger.debug("Stored ERP cookie, expires at %s", token.expires_at.isoformat())
        return token

    def get_stored_token(self) -> AuthToken | None:
        """Return the stored token unless missing, unreadable or expired."""
        doc = self.store.get(STORE_KEY)
        if not doc:
            return None
        try:
            token = AuthToken.from_dict(doc)
        except (KeyError, TypeError, ValueError):
            logger.warning("Stored ERP cookie document is malformed, ignoring")
            return None
        if token.is_expired(self._clock()):
            logger.debug("Stored ERP cookie has expired")
            return None
        return token

    def refresh(self) -> AuthToken | None:
        """Log in again and store the new cookie.

        Returns:
            The new token, or None if the login failed.
        """
        cookie = self.fetch_cookie()
        if cookie is None:
            return None
        return self.store_cookie(cookie)

    def get_valid_token(self) -> AuthToken | None:
        """Return a usable token, logging in when the stored one is due.

        A stored token younger than the refresh interval is returned as is,
        so calls spaced closer than the interval never trigger a login.
        An expired token is never returned.
        """
        token = self.get_stored_token()
        if token is not None and not token.needs_refresh(
            self._clock(), self.config.refresh_interval
        ):
            return token
        return self.refresh()

    def get_valid_cookie(self) -> str | None:
        token = self.get_valid_token()
        return token.cookie if token else None

    def status(self) -> dict[str, Any]:
        """Summarize the stored cookie for the status endpoint."""
        token = self.get_stored_token()
        now = self._clock()
        return {
            "has_cookie": token is not None,
            "needs_refresh": token is None
            or token.needs_refresh(now, self.config.refresh_interval),
            "expires_at": token.expires_at.isoformat() if token else None,
            "last_refreshed": token.last_refreshed.isoformat() if token else None,
            "refresh_interval_seconds": int(self.config.refresh_interval.total_seconds()),
        }


def get_valid_erp_cookie(
    config: ERPConfig | None = None, store: DocumentStore | None = None
) -> str | None:
    """Return a valid ERP cookie string, or None if the ERP is unavailable.

    Args:
        config: ERP settings (defaults to ``ERPConfig.from_env()``).
        store: Token store (defaults to the store selected by the config).
    """
    config = config or ERPConfig.from_env()
    store = store if store is not None else open_store(config)
    return ERPCookieManager(config, store).get_valid_cookie()
