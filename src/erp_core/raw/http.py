"""Raw layer: HTTP plumbing for the legacy ERP.

The ERP is a PHP application that authenticates with a PHPSESSID-style
cookie and serves reports as HTML fragments from ``*_controller.php``
endpoints. Every call here sends the cookie as a raw ``Cookie`` header so
that a single stored cookie string can be shared across sessions and
processes.
"""

from __future__ import annotations

import logging
from http.cookiejar import DefaultCookiePolicy
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

DEFAULT_TIMEOUT = 60.0
DEFAULT_RETRIES = 0
DEFAULT_POOL_MAXSIZE = 10


def make_session(
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
    pool_maxsize: int = DEFAULT_POOL_MAXSIZE,
) -> requests.Session:
    """Create a requests Session with retry logic and default timeout.

    Configures the session with:
    - Browser User-Agent header
    - Retry adapter for HTTP/HTTPS with exponential backoff
    - Default timeout for all requests
    - Retries on 429, 500, 502, 503, 504 status codes

    Report sweeps default to ``retries=0``: the next sweep combination is the
    retry, and re-posting one combination only slows the sweep down.

    Args:
        timeout: Default timeout in seconds for all requests.
        retries: Number of adapter retry attempts.
        pool_maxsize: Connections kept per host. Size it to the number of
            threads sharing the session.

    Returns:
        Configured requests.Session object.
    """
    s = requests.Session()
    s.headers.update({"User-Agent": USER_AGENT})
    # Auth travels in the raw Cookie header; a jar cookie would override it
    s.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=0.8,  # 0.8, 1.6, 3.2, ...
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"GET", "POST", "HEAD", "OPTIONS"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry, pool_maxsize=pool_maxsize)
    s.mount("http://", adapter)
    s.mount("https://", adapter)
    # Default timeouts via a wrapper
    orig_request = s.request

    def timed_request(method: str, url: str, **kwargs: Any) -> requests.Response:
        kwargs.setdefault("timeout", timeout)
        return orig_request(method, url, **kwargs)

    s.request = timed_request  # type: ignore[method-assign,assignment]
    return s


def _headers(cookie: str | None, extra: dict[str, str] | None = None) -> dict[str, str]:
    headers = {"User-Agent": USER_AGENT}
    if cookie:
        headers["Cookie"] = cookie
    if extra:
        headers.update(extra)
    return headers


def post_form(
    session: requests.Session,
    url: str,
    data: dict[str, str],
    cookie: str | None = None,
    **kwargs: Any,
) -> requests.Response:
    """POST a form-urlencoded body with an optional raw Cookie header.

    Args:
        session: Session to send through.
        url: Endpoint URL.
        data: Form fields. Order is preserved on the wire.
        cookie: Raw cookie header value (``name=value; name2=value2``).
        **kwargs: Passed to ``session.post`` (e.g. ``allow_redirects``).

    Returns:
        The response. Transport errors propagate as ``requests.RequestException``.
    """
    headers = _headers(cookie, {"Content-Type": FORM_CONTENT_TYPE})
    return session.post(url, data=data, headers=headers, **kwargs)


def get_with_cookie(
    session: requests.Session,
    url: str,
    cookie: str | None = None,
    **kwargs: Any,
) -> requests.Response:
    """GET with an optional raw Cookie header."""
    return session.get(url, headers=_headers(cookie), **kwargs)


def is_success(resp: requests.Response) -> bool:
    """True when the response status code is in the 200-299 range."""
    return 200 <= resp.status_code < 300
