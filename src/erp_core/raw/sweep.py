"""Raw layer: combinatorial endpoint sweep.

Most ERP reports need dimension values the caller does not know (fiscal
year, company id, location, working company). The sweep posts one form per
combination, in a fixed order, and stops at the first usable response.

Each attempt yields an ``Attempt`` carrying either the body or a
``SkipReason``; transport errors on a single combination are recorded as a
skip and the sweep moves on. Only exhaustion is a failure, and it is
reported as ``None``.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum

import requests

from erp_core.raw.http import post_form

logger = logging.getLogger(__name__)

DEFAULT_MIN_LENGTH = 500
NO_DATA_SENTINELS = ("Data not Found", "No data found")


class ReportType(str, Enum):
    """Report kinds served by the ERP integration."""

    CLOSING = "closing"
    SEWING = "sewing"
    CHALLAN = "challan"
    COLOR_WISE = "color_wise"
    FACTORY = "factory"
    HOURLY = "hourly"


@dataclass(frozen=True)
class ReportQuery:
    """A business reference plus the report it is looked up in.

    For the hourly and factory reports the reference is the report date
    (``DD-Mon-YYYY``).
    """

    reference: str
    report_type: ReportType


class SkipReason(str, Enum):
    """Why a sweep attempt was not accepted."""

    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    TOO_SHORT = "too_short"
    NO_DATA = "no_data"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Dimension:
    """One sweep dimension.

    Attributes:
        name: Label used in logs.
        fields: Form fields that receive the value (a location id, for
            example, is posted as both working company and location).
        values: Values in the order they are tried.
    """

    name: str
    fields: tuple[str, ...]
    values: tuple[str, ...]


@dataclass(frozen=True)
class Attempt:
    """Outcome of posting one combination."""

    combination: dict[str, str]
    html: str | None = None
    skip: SkipReason | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.skip is None and self.html is not None


@dataclass
class DimensionSweep:
    """Ordered cross-product of dimension values.

    The first dimension is the outermost loop, so
    ``DimensionSweep([location, year, company])`` tries every year and
    company for the first location before moving to the second.
    """

    dimensions: Sequence[Dimension]

    def combinations(self) -> Iterator[dict[str, str]]:
        """Yield form-field assignments in deterministic sweep order."""
        value_lists = [dim.values for dim in self.dimensions]
        for values in itertools.product(*value_lists):
            form: dict[str, str] = {}
            for dim, value in zip(self.dimensions, values):
                for name in dim.fields:
                    form[name] = value
            yield form

    def __len__(self) -> int:
        total = 1
        for dim in self.dimensions:
            total *= len(dim.values)
        return total


@dataclass
class SweepResult:
    """First usable response and the attempts that led to it."""

    html: str
    combination: dict[str, str]
    attempts: list[Attempt] = field(default_factory=list)

    @property
    def probe_count(self) -> int:
        return len(self.attempts)


def classify_response(
    resp: requests.Response,
    combination: dict[str, str],
    min_length: int = DEFAULT_MIN_LENGTH,
    sentinels: Sequence[str] = NO_DATA_SENTINELS,
    accept: Callable[[str], bool] | None = None,
) -> Attempt:
    """Decide whether a response is usable.

    A response is usable when it is HTTP 200, longer than ``min_length``,
    free of every no-data sentinel (case-insensitive) and, if given,
    accepted by ``accept``.
    """
    if resp.status_code != 200:
        return Attempt(combination, skip=SkipReason.HTTP_STATUS, detail=str(resp.status_code))
    body = resp.text or ""
    if len(body) <= min_length:
        return Attempt(combination, skip=SkipReason.TOO_SHORT, detail=str(len(body)))
    lowered = body.lower()
    for sentinel in sentinels:
        if sentinel.lower() in lowered:
            return Attempt(combination, skip=SkipReason.NO_DATA, detail=sentinel)
    if accept is not None and not accept(body):
        return Attempt(combination, skip=SkipReason.REJECTED)
    return Attempt(combination, html=body)


def run_sweep(
    session: requests.Session,
    url: str,
    base_form: dict[str, str],
    sweep: DimensionSweep,
    cookie: str | None,
    accept: Callable[[str], bool] | None = None,
    min_length: int = DEFAULT_MIN_LENGTH,
    sentinels: Sequence[str] = NO_DATA_SENTINELS,
) -> SweepResult | None:
    """Post every combination in order until one is usable.

    Args:
        session: HTTP session.
        url: Report controller URL.
        base_form: Fixed form fields (action, reference, report type...).
        sweep: Dimensions to iterate.
        cookie: Raw ERP cookie header value.
        accept: Extra acceptance check on the body (e.g. "parses to rows").
        min_length: Bodies at or below this length are error pages.
        sentinels: Phrases that mark a "no data" page.

    Returns:
        SweepResult for the first usable response, or None when every
        combination was skipped.
    """
    attempts: list[Attempt] = []
    for combination in sweep.combinations():
        form = {**base_form, **combination}
        try:
            resp = post_form(session, url, form, cookie)
        except requests.RequestException as e:
            attempt = Attempt(combination, skip=SkipReason.TRANSPORT, detail=str(e))
        else:
            attempt = classify_response(resp, combination, min_length, sentinels, accept)
        attempts.append(attempt)

        if attempt.ok:
            logger.info("Sweep hit after %d probe(s): %s", len(attempts), combination)
            return SweepResult(html=str(attempt.html), combination=combination, attempts=attempts)
        logger.debug("Skipped %s: %s %s", combination, attempt.skip, attempt.detail)

    logger.info("Sweep exhausted after %d probe(s) without usable data", len(attempts))
    return None
