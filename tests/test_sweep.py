"""Tests for the dimension sweep."""

from __future__ import annotations

import requests

from erp_core.raw.sweep import Dimension, DimensionSweep, SkipReason, run_sweep
from tests.test_utils import PADDING, FakeResponse, FakeSession

SWEEP = DimensionSweep(
    [
        Dimension("location", ("cbo_wo_company_name", "cbo_location_name"), ("2", "0")),
        Dimension("year", ("cbo_year_selection",), ("2026", "2025")),
        Dimension("company", ("cbo_company_name",), ("1", "2", "3")),
    ]
)


def test_combinations_outer_dimension_first() -> None:
    """Test the first dimension is the outermost loop."""
    combos = list(SWEEP.combinations())
    assert len(combos) == len(SWEEP) == 12
    assert combos[0] == {
        "cbo_wo_company_name": "2",
        "cbo_location_name": "2",
        "cbo_year_selection": "2026",
        "cbo_company_name": "1",
    }
    assert combos[1]["cbo_company_name"] == "2"
    assert combos[3]["cbo_year_selection"] == "2025"
    assert combos[6]["cbo_location_name"] == "0"


def test_stops_at_first_usable_combination() -> None:
    """Test the sweep posts exactly up to and including the first hit."""
    good = {"cbo_location_name": "0", "cbo_year_selection": "2026", "cbo_company_name": "2"}

    def handler(method: str, url: str, form: dict) -> FakeResponse:
        if all(form[k] == v for k, v in good.items()):
            return FakeResponse("<table>report</table>" + PADDING)
        return FakeResponse("Data not Found" + PADDING)

    session = FakeSession(handler)
    result = run_sweep(session, "http://erp.test/report", {"action": "report_generate"}, SWEEP, "c=1")

    assert result is not None
    # index of the hit in sweep order, plus one
    assert result.probe_count == 8
    assert len(session.calls) == 8
    assert result.combination["cbo_company_name"] == "2"
    assert all(call["payload"]["action"] == "report_generate" for call in session.calls)
    assert session.calls[0]["headers"]["Cookie"] == "c=1"


def test_skip_reasons_recorded() -> None:
    """Test transport, status, length, sentinel and predicate skips."""
    answers = iter(
        [
            requests.Timeout("slow"),
            FakeResponse("x" * 900, status_code=500),
            FakeResponse("short"),
            FakeResponse("NO DATA FOUND" + PADDING),
            FakeResponse("<p>nothing to parse</p>" + PADDING),
            FakeResponse("<table>ok</table>" + PADDING),
        ]
    )

    def handler(method: str, url: str, form: dict) -> FakeResponse:
        answer = next(answers)
        if isinstance(answer, Exception):
            raise answer
        return answer

    result = run_sweep(
        FakeSession(handler), "http://erp.test/report", {}, SWEEP, None,
        accept=lambda html: "<table>" in html,
    )

    assert result is not None
    assert [a.skip for a in result.attempts] == [
        SkipReason.TRANSPORT,
        SkipReason.HTTP_STATUS,
        SkipReason.TOO_SHORT,
        SkipReason.NO_DATA,
        SkipReason.REJECTED,
        None,
    ]


def test_exhausted_sweep_returns_none() -> None:
    """Test every combination is tried once when none is usable."""
    session = FakeSession(lambda m, u, f: FakeResponse("", status_code=404))
    assert run_sweep(session, "http://erp.test/report", {}, SWEEP, None) is None
    assert len(session.calls) == len(SWEEP)
