"""Tests for the report services, end to end over a fake ERP."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import requests

from erp_core.clock import local_now
from erp_core.config import ERPConfig
from erp_core.raw.cookie import ERPCookieManager
from erp_core.raw.pool import SessionPool
from erp_core.raw.sweep import ReportQuery, ReportType
from erp_core.reports import (
    fetch_challan_report,
    fetch_closing_report_data,
    fetch_color_wise_report,
    fetch_factory_report,
    fetch_hourly_report,
    fetch_report,
    fetch_sewing_closing_report_data,
)
from erp_core.reports.context import AUTH_FAILED_MESSAGE, UNAVAILABLE_MESSAGE, ERPContext
from erp_core.reports.hourly import HourlyReportResult
from erp_core.reports.snapshots import (
    CONFIG_KEY,
    SnapshotConfig,
    capture_snapshot,
    delete_old_snapshots,
    due_slot,
    get_snapshot,
    get_snapshot_config,
    get_snapshots_for_date,
    update_snapshot_config,
)
from erp_core.store import MemoryStore
from erp_core.types import FloorData, LineData
from tests.test_utils import (
    CLOSING_HTML,
    PADDING,
    SEWING_HTML,
    FakeResponse,
    FakeSession,
    cells_row,
    challan_print_html,
    challan_row,
    challan_table,
    search_list_html,
)

NO_DATA = FakeResponse("<p>Data not Found</p>" + PADDING)


@pytest.fixture
def erp_down(monkeypatch: pytest.MonkeyPatch) -> None:
    """Every login attempt fails."""
    monkeypatch.setattr(ERPCookieManager, "get_valid_cookie", lambda self: None)


def test_closing_report_sweeps_to_hit(erp_config: ERPConfig, logged_in_store: MemoryStore) -> None:
    """Test the closing sweep stops at the first combination with blocks."""

    def handler(method: str, url: str, form: dict) -> FakeResponse:
        if (form["cbo_location_name"], form["cbo_year_selection"], form["cbo_company_name"]) == ("2", "2025", "2"):
            return FakeResponse(CLOSING_HTML)
        return NO_DATA

    session = FakeSession(handler)
    blocks = fetch_closing_report_data(" DFL/25/1 ", config=erp_config, store=logged_in_store, session=session)

    assert [b.color for b in blocks] == ["NAVY", "RED"]
    assert len(session.calls) == 5
    first = session.calls[0]
    assert first["url"] == erp_config.closing_report_url
    assert first["payload"]["txt_internal_ref_no"] == "DFL/25/1"
    assert first["payload"]["reportType"] == "3"
    assert first["payload"]["cbo_wo_company_name"] == first["payload"]["cbo_location_name"]
    assert first["headers"]["Cookie"] == "PHPSESSID=stored"
    assert not session.closed


def test_closing_report_not_found(erp_config: ERPConfig, logged_in_store: MemoryStore) -> None:
    """Test an exhausted sweep is reported as None after every combination."""
    session = FakeSession(lambda m, u, f: NO_DATA)
    assert fetch_closing_report_data("X", config=erp_config, store=logged_in_store, session=session) is None
    assert len(session.calls) == 12
    assert fetch_closing_report_data("  ", config=erp_config, store=logged_in_store, session=session) is None


def test_fetch_report_dispatches_on_type(erp_config: ERPConfig, logged_in_store: MemoryStore) -> None:
    """Test a query runs the service for its report type."""
    session = FakeSession(lambda m, u, f: NO_DATA)
    query = ReportQuery("X", ReportType.CLOSING)
    assert fetch_report(query, config=erp_config, store=logged_in_store, session=session) is None
    assert len(session.calls) == 12

    query = ReportQuery("BK-1", ReportType.CHALLAN)
    result = fetch_report(query, config=erp_config, store=logged_in_store, session=session)
    assert result.success is False


def test_closing_report_unconfigured(store: MemoryStore) -> None:
    """Test a missing base URL is a None result, not an exception."""
    session = FakeSession(lambda m, u, f: NO_DATA)
    assert fetch_closing_report_data("X", config=ERPConfig(), store=store, session=session) is None
    assert session.calls == []


def test_closing_report_erp_down(erp_config: ERPConfig, store: MemoryStore, erp_down: None) -> None:
    """Test a failed login gives None without posting the report."""
    session = FakeSession(lambda m, u, f: FakeResponse(CLOSING_HTML))
    assert fetch_closing_report_data("X", config=erp_config, store=store, session=session) is None
    assert session.calls == []


def test_challan_report(erp_config: ERPConfig, logged_in_store: MemoryStore) -> None:
    """Test the company sweep and merged challan totals."""
    table = challan_table([challan_row("CH-1", "50"), challan_row("CH-2", "20"), challan_row("CH-1", "30")])

    def handler(method: str, url: str, form: dict) -> FakeResponse:
        return FakeResponse(table) if form["cbo_company_name"] == "2" else NO_DATA

    session = FakeSession(handler)
    result = fetch_challan_report("DFL/25/1", config=erp_config, store=logged_in_store, session=session)

    assert result.success
    assert result.message == "Data found (Company ID: 2)"
    assert result.company_id == "2"
    assert [(r.challan_no, r.qty) for r in result.data] == [("CH-1", 80), ("CH-2", 20)]
    assert result.grand_total == 100
    assert session.calls[0]["payload"]["txt_internal_ref"] == "DFL/25/1"


def test_challan_report_failures(erp_config: ERPConfig, logged_in_store: MemoryStore) -> None:
    """Test empty booking, not found and unconfigured messages."""
    session = FakeSession(lambda m, u, f: NO_DATA)
    assert fetch_challan_report("", config=erp_config, store=logged_in_store, session=session).message == (
        "Booking number is required."
    )
    missing = fetch_challan_report("X", config=erp_config, store=logged_in_store, session=session)
    assert not missing.success
    assert "verify the booking number" in missing.message
    unconfigured = fetch_challan_report("X", config=ERPConfig(), store=logged_in_store, session=session)
    assert unconfigured.message == AUTH_FAILED_MESSAGE


def test_color_wise_report(
    erp_config: ERPConfig, logged_in_store: MemoryStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test list sweep, pooled drill-down and color grouping."""
    monkeypatch.setattr("erp_core.raw.pool.RESOLVE_DELAY_RANGE", (0.0, 0.0))
    table = challan_table(
        [challan_row("CH-1", "50"), challan_row("CH-2", "20"), challan_row("CH-3", "30"), challan_row("CH-4", "9")]
    )
    ids = {"CH-1": "11", "CH-2": "12", "CH-3": "13"}
    pages = {
        "11": challan_print_html("L-1", ["NAVY"], 50),
        "12": challan_print_html("L-2", ["RED"], 20),
        "13": challan_print_html("L-3", ["NAVY"], 30),
    }

    def handler(method: str, url: str, payload: dict) -> FakeResponse:
        if method == "POST":
            return FakeResponse(table) if payload["cbo_company_name"] == "1" else NO_DATA
        if payload["action"] == "create_challan_search_list_view":
            return FakeResponse(search_list_html(ids))
        return FakeResponse(pages[payload["data"].split("*")[1]])

    result = fetch_color_wise_report(
        "DFL/25/1",
        config=erp_config,
        store=logged_in_store,
        session=FakeSession(handler),
        pool=SessionPool(["p1", "p2"]),
    )

    assert result.success
    assert result.company_id == "1"
    assert result.total_challans == 4
    assert [g.color for g in result.data] == ["NAVY", "RED", "Unknown Color"]
    assert [r.challan for r in result.data[0].items] == ["CH-3", "CH-1"]
    assert result.data[0].subtotal == 80
    assert result.data[2].items[0].error == "Not Found"
    assert result.grand_total == 100


def test_color_wise_report_without_pool_sessions(erp_config: ERPConfig, logged_in_store: MemoryStore) -> None:
    """Test an empty session pool fails the report as an ERP outage."""
    table = challan_table([challan_row("CH-1", "50")])
    result = fetch_color_wise_report(
        "DFL/25/1",
        config=erp_config,
        store=logged_in_store,
        session=FakeSession(lambda m, u, p: FakeResponse(table)),
        pool=SessionPool([]),
    )
    assert not result.success
    assert result.message == AUTH_FAILED_MESSAGE


def test_sewing_report_year_sweep(erp_config: ERPConfig, logged_in_store: MemoryStore) -> None:
    """Test years are tried newest first until a Color Total appears."""

    def handler(method: str, url: str, form: dict) -> FakeResponse:
        return FakeResponse(SEWING_HTML) if form["cbo_year"] == "2026" else NO_DATA

    session = FakeSession(handler)
    result = fetch_sewing_closing_report_data("dfl/25/1", config=erp_config, store=logged_in_store, session=session)

    assert result.success
    assert result.ref_no == "DFL/25/1"
    assert [c["payload"]["cbo_year"] for c in session.calls] == ["2027", "2026"]
    assert session.calls[0]["payload"]["txt_int_ref"] == "dfl/25/1"
    assert session.calls[0]["payload"]["cbo_wo_company_name"] == "2"


def _hourly_html(*lines: tuple[str, str]) -> str:
    rows = "".join(cells_row([line] + ["0"] * 10 + [qty] + ["0"] * 4) for line, qty in lines)
    return f'<table><tbody id="table_body">{cells_row(["Floor Name: F-1"])}{rows}</tbody></table>'


def test_hourly_report(erp_config: ERPConfig, logged_in_store: MemoryStore) -> None:
    """Test the quoted date is posted and floors are returned."""
    session = FakeSession(lambda m, u, f: FakeResponse(_hourly_html(("L-1", "10"), ("L-2", "15"))))
    result = fetch_hourly_report("28-Jan-2026", config=erp_config, store=logged_in_store, session=session)

    assert result.success
    assert result.grand_total == 25
    form = session.calls[0]["payload"]
    assert form["txt_date"] == "'28-Jan-2026'"
    assert form["cbo_company_id"] == "2"
    assert form["action"] == "report_generate2"


@pytest.mark.parametrize(
    "response, target, message",
    [
        (FakeResponse("<p>No Line Engage</p>"), None, "No line engaged on this date."),
        (FakeResponse("", status_code=502), None, "Server error: 502"),
        (FakeResponse("<p>empty</p>"), None, "Data table not found."),
        (FakeResponse(_hourly_html(("L-1", "10"))), "L-9", "Line 'L-9' not found or has no input."),
    ],
)
def test_hourly_report_failures(
    erp_config: ERPConfig, logged_in_store: MemoryStore, response: FakeResponse, target: str | None, message: str
) -> None:
    """Test each failure maps to its message."""
    session = FakeSession(lambda m, u, f: response)
    result = fetch_hourly_report("28-Jan-2026", target, config=erp_config, store=logged_in_store, session=session)
    assert not result.success
    assert result.message == message


def test_hourly_report_login_failed(erp_config: ERPConfig, store: MemoryStore, erp_down: None) -> None:
    """Test a failed login is reported without posting the report."""
    session = FakeSession(lambda m, u, f: FakeResponse(_hourly_html(("L-1", "10"))))
    result = fetch_hourly_report("28-Jan-2026", config=erp_config, store=store, session=session)
    assert result.message == "ERP login failed."
    assert session.calls == []


def test_transport_error_hides_erp_address(erp_config: ERPConfig, logged_in_store: MemoryStore) -> None:
    """Test a transport error is reported without the ERP address."""

    def boom(method: str, url: str, form: dict) -> FakeResponse:
        raise requests.ConnectionError("HTTPConnectionPool(host='10.9.8.7', port=8022): reset")

    result = fetch_hourly_report("28-Jan-2026", config=erp_config, store=logged_in_store, session=FakeSession(boom))
    assert result.message == UNAVAILABLE_MESSAGE
    assert "10.9.8.7" not in result.message
    factory = fetch_factory_report("05-Feb-2026", config=erp_config, store=logged_in_store, session=FakeSession(boom))
    assert factory.message == UNAVAILABLE_MESSAGE


def test_factory_report(erp_config: ERPConfig, logged_in_store: MemoryStore) -> None:
    """Test the date fields and the parsed buyer summary."""
    html = "<table>" + cells_row(["KIABI", "120", "0", "0"]) + cells_row(["Total", "120", "100", "90", "80"]) + "</table>"
    session = FakeSession(lambda m, u, f: FakeResponse(html))
    result = fetch_factory_report("05-Feb-2026", config=erp_config, store=logged_in_store, session=session)

    assert result.success
    assert result.to_dict()["buyer_summary"] == [{"buyer_name": "KIABI", "sewing_input": 120}]
    assert (result.total_sewing_input, result.total_shipment) == (120, 80)
    assert session.calls[0]["payload"] == {"month": "02", "year": "2026", "day": "05", "submit": "Show"}
    assert session.calls[0]["headers"]["Cookie"] == "PHPSESSID=stored"


def test_factory_report_failures(erp_config: ERPConfig, logged_in_store: MemoryStore) -> None:
    """Test a bad date and an HTTP error status."""
    session = FakeSession(lambda m, u, f: FakeResponse("", status_code=503))
    bad = fetch_factory_report("2026-02-05", config=erp_config, store=logged_in_store, session=session)
    assert not bad.success
    assert "DD-Mon-YYYY" in bad.message
    assert session.calls == []
    down = fetch_factory_report("05-Feb-2026", config=erp_config, store=logged_in_store, session=session)
    assert down.message == "HTTP error: 503"


def _report(total: int) -> HourlyReportResult:
    return HourlyReportResult(
        success=True, date="28-Jan-2026", floors=[FloorData("F-1", [LineData("L-1", total)])]
    )


def test_snapshots_capture_and_list(store: MemoryStore) -> None:
    """Test a slot is stored, replaced on recapture and listed per date."""
    assert capture_snapshot(store, "28-Jan-2026", "slot1", _report(10))["success"]
    result = capture_snapshot(store, "28-Jan-2026", "slot1", _report(25))

    assert result["grand_total"] == 25
    assert get_snapshot(store, "28-Jan-2026", "slot1")["grand_total"] == 25
    by_slot = get_snapshots_for_date(store, "28-Jan-2026")
    assert list(by_slot) == ["slot1", "slot2", "slot3"]
    assert by_slot["slot2"] is None
    assert by_slot["slot1"]["floors"][0]["lines"] == [{"line_no": "L-1", "input": 25}]


def test_snapshot_failure_not_stored(store: MemoryStore) -> None:
    """Test a failed report leaves no snapshot and bad slots raise."""
    failed = HourlyReportResult(success=False, date="28-Jan-2026", message="No data found.")
    assert capture_snapshot(store, "28-Jan-2026", "slot2", failed) == {
        "success": False,
        "message": "No data found.",
        "grand_total": None,
    }
    assert get_snapshot(store, "28-Jan-2026", "slot2") is None
    with pytest.raises(ValueError):
        capture_snapshot(store, "28-Jan-2026", "slot9", _report(1))


def test_snapshot_config(store: MemoryStore) -> None:
    """Test defaults, partial updates and unknown settings."""
    assert get_snapshot_config(store).slot1_time == "12:45"
    updated = update_snapshot_config(store, slot2_time="16:30")
    assert updated.slot2_time == "16:30"
    assert store.get(CONFIG_KEY)["timezone"] == "Asia/Dhaka"
    with pytest.raises(ValueError):
        update_snapshot_config(store, slot4_time="10:00")


def test_due_slot_follows_configured_times() -> None:
    """Test the latest passed slot is due, in the configured time zone."""
    config = SnapshotConfig()
    utc = timezone.utc
    # 12:45 Dhaka is 06:45 UTC
    assert due_slot(config, datetime(2026, 1, 28, 6, 0, tzinfo=utc)) is None
    assert due_slot(config, datetime(2026, 1, 28, 6, 45, tzinfo=utc)) == "slot1"
    assert due_slot(config, datetime(2026, 1, 28, 16, 0, tzinfo=utc)) == "slot3"
    earlier = SnapshotConfig(slot2_time="06:00")
    assert due_slot(earlier, datetime(2026, 1, 28, 6, 45, tzinfo=utc)) == "slot1"


def test_old_snapshots_deleted(store: MemoryStore) -> None:
    """Test snapshots captured before the retention window are removed."""
    capture_snapshot(store, "28-Jan-2026", "slot1", _report(10))
    capture_snapshot(store, "28-Jan-2026", "slot3", _report(30))
    now = local_now()

    assert delete_old_snapshots(store, 30, now=now + timedelta(days=29)) == 0
    assert get_snapshot(store, "28-Jan-2026", "slot1") is not None
    assert delete_old_snapshots(store, 30, now=now + timedelta(days=31)) == 2
    assert get_snapshots_for_date(store, "28-Jan-2026") == {"slot1": None, "slot2": None, "slot3": None}
    assert delete_old_snapshots(store, 30, now=now + timedelta(days=31)) == 0


def test_snapshot_config_rejects_bad_values(store: MemoryStore) -> None:
    """Test malformed times, zones and retention are refused and not stored."""
    with pytest.raises(ValueError):
        update_snapshot_config(store, slot1_time="quarter to one")
    with pytest.raises(ValueError):
        update_snapshot_config(store, timezone="Mars/Olympus")
    with pytest.raises(ValueError):
        update_snapshot_config(store, days_to_keep=-1)
    assert store.get(CONFIG_KEY) is None
    assert update_snapshot_config(store, days_to_keep="7").days_to_keep == 7


def test_context_session_pool_fits_drill_down_workers(erp_config: ERPConfig, store: MemoryStore) -> None:
    """Test the shared session keeps a connection per drill-down worker."""
    with ERPContext.build(erp_config, store) as ctx:
        adapter = ctx.session.get_adapter("http://erp.test/erp")
        assert ctx.owns_session
        assert adapter._pool_maxsize == erp_config.max_pool_sessions == 30
