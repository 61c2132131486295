"""Tests for the Flask JSON API."""

from __future__ import annotations

import io

import pytest
import requests

from erp_core import history, web
from erp_core.config import ERPConfig
from erp_core.parsing.closing import parse_closing_report
from erp_core.reports import factory as factory_module
from erp_core.reports.challan import ChallanReportResult
from erp_core.reports.context import UNAVAILABLE_MESSAGE
from erp_core.reports.hourly import HourlyReportResult
from erp_core.store import MemoryStore
from erp_core.types import ChallanRecord, FloorData, LineData
from tests.test_utils import CLOSING_HTML


@pytest.fixture
def app_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def client(erp_config: ERPConfig, app_store: MemoryStore):
    app = web.create_app(erp_config, app_store)
    app.config.update(TESTING=True)
    return app.test_client()


@pytest.fixture
def closing_found(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    calls: list[str] = []

    def fake(ref, config=None, store=None, session=None):
        calls.append(ref)
        return parse_closing_report(CLOSING_HTML)

    monkeypatch.setattr(web, "fetch_closing_report_data", fake)
    return calls


def test_closing_requires_ref(client) -> None:
    """Test a missing reference is a 400."""
    resp = client.get("/api/closing")
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_closing_report(client, closing_found: list[str], app_store: MemoryStore) -> None:
    """Test block summaries are served and the download is recorded."""
    resp = client.get("/api/closing?ref=dfl/25/1", headers={"X-User": "rafi"})
    body = resp.get_json()

    assert resp.status_code == 200
    assert body["ref"] == "DFL/25/1"
    assert [b["color"] for b in body["data"]] == ["NAVY", "RED"]
    assert body["data"][0]["totals"]["order_qty_tolerance"] == 1545
    record = history.load_stats(app_store)["downloads"][0]
    assert (record["user"], record["type"], record["status"]) == ("rafi", "Closing Report", "success")


def test_closing_not_found(client, monkeypatch: pytest.MonkeyPatch, app_store: MemoryStore) -> None:
    """Test an unknown reference is a 404 and recorded as failed."""
    monkeypatch.setattr(web, "fetch_closing_report_data", lambda ref, **kw: None)
    resp = client.get("/api/closing?ref=NOPE")
    assert resp.status_code == 404
    assert resp.get_json()["message"] == web.NOT_FOUND_MESSAGE
    assert history.load_stats(app_store)["downloads"][0]["status"] == "failed"


def test_closing_excel(client, closing_found: list[str]) -> None:
    """Test the workbook download."""
    resp = client.get("/api/closing/excel?ref=dfl/25/1")
    assert resp.status_code == 200
    assert resp.mimetype == web.XLSX_MIMETYPE
    assert "Closing-Report-DFL_25_1.xlsx" in resp.headers["Content-Disposition"]
    assert resp.data[:2] == b"PK"


def test_challan_report_endpoint(client, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test a found challan report is passed through as JSON."""
    result = ChallanReportResult(
        success=True,
        message="Data found (Company ID: 2)",
        data=[ChallanRecord("CH-1", "05-01-2026", "KIABI", "ST", "CCL", 10)],
        grand_total=10,
        company_id="2",
    )
    monkeypatch.setattr(web, "fetch_challan_report", lambda booking, **kw: result)
    body = client.get("/api/challan-report?booking=BK-1").get_json()
    assert body["grand_total"] == 10
    assert body["data"][0]["challan_no"] == "CH-1"


def test_challan_report_failure(client, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test a failed report returns its message with 404."""
    failed = ChallanReportResult(success=False, message="ERP authentication failed. Please try again later.")
    monkeypatch.setattr(web, "fetch_challan_report", lambda booking, **kw: failed)
    resp = client.get("/api/challan-report?booking=BK-1")
    assert resp.status_code == 404
    assert "authentication" in resp.get_json()["message"]


def test_hourly_and_snapshot(client, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test the hourly report and capturing it into a snapshot slot."""
    report = HourlyReportResult(success=True, date="28-Jan-2026", floors=[FloorData("F-1", [LineData("L-1", 40)])])
    monkeypatch.setattr(web, "fetch_hourly_report", lambda date, line=None, **kw: report)

    assert client.get("/api/hourly-report?date=28-Jan-2026").get_json()["grand_total"] == 40

    resp = client.post("/api/snapshot", json={"slot": "slot2", "date": "28-Jan-2026"})
    assert resp.status_code == 200
    assert resp.get_json()["grand_total"] == 40
    snaps = client.get("/api/snapshot?date=28-Jan-2026").get_json()["snapshots"]
    assert snaps["slot2"]["grand_total"] == 40
    assert snaps["slot1"] is None

    assert client.post("/api/snapshot", json={"slot": "noon"}).status_code == 400


def test_po_upload(client) -> None:
    """Test an upload without usable PO rows is rejected."""
    resp = client.post(
        "/api/po",
        data={"files": (io.BytesIO(b"plain text"), "notes.txt")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400
    assert resp.get_json()["file_count"] == 1
    assert client.post("/api/po", data={}).status_code == 400


def test_erp_cookie_status(client) -> None:
    """Test the cookie status of an empty store, without the cookie value."""
    body = client.get("/api/erp-cookie").get_json()
    assert body["has_cookie"] is False
    assert body["needs_refresh"] is True
    assert "cookie" not in body


def test_accessories_flow(client, closing_found: list[str]) -> None:
    """Test a booking is seeded from the closing report, then challans are edited."""
    resp = client.get("/api/accessories/dfl/25/1")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["colors"] == ["NAVY", "RED"]
    assert closing_found == ["dfl/25/1"]

    client.get("/api/accessories/DFL/25/1")
    assert len(closing_found) == 1

    assert client.post("/api/accessories/DFL/25/1/challans", json={"line": "L-1"}).status_code == 400
    added = client.post(
        "/api/accessories/DFL/25/1/challans",
        json={"line": "L-1", "color": "NAVY", "qty": "300"},
        headers={"X-User": "rafi"},
    )
    assert added.get_json()["data"]["challans"][0]["qty"] == 300

    put = client.put("/api/accessories/DFL/25/1/challans/0", json={"qty": 250})
    assert put.get_json()["data"]["challans"][0]["qty"] == 250
    assert client.put("/api/accessories/DFL/25/1/challans/9", json={}).status_code == 404

    listing = client.get("/api/accessories").get_json()["data"]
    assert listing[0]["total_qty"] == 250

    stats = client.get("/api/stats").get_json()
    assert stats["accessories_challans"] == 1
    assert stats["counts"]["Accessories"] == 1

    assert client.delete("/api/accessories/DFL/25/1/challans/0").status_code == 200
    assert client.delete("/api/accessories/DFL/25/1").status_code == 200
    assert client.delete("/api/accessories/DFL/25/1").status_code == 404


def test_unexpected_error_is_500(erp_config: ERPConfig, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test unhandled exceptions become a generic JSON 500."""

    def broken(ref, **kw):
        raise RuntimeError("parser exploded")

    monkeypatch.setattr(web, "fetch_closing_report_data", broken)
    app = web.create_app(erp_config, MemoryStore())
    app.config.update(PROPAGATE_EXCEPTIONS=False)
    resp = app.test_client().get("/api/closing?ref=X")

    assert resp.status_code == 500
    assert resp.get_json() == {"success": False, "message": "Internal server error"}


def test_factory_transport_error_body(
    erp_config: ERPConfig, logged_in_store: MemoryStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test the 404 body carries a generic message, not the ERP host or path."""

    def refused(*args, **kwargs):
        raise requests.ConnectionError(
            "HTTPConnectionPool(host='10.9.8.7', port=8022): Max retries exceeded with url: /erp/factory.php"
        )

    monkeypatch.setattr(factory_module, "post_form", refused)
    client = web.create_app(erp_config, logged_in_store).test_client()
    resp = client.get("/api/factory-report?date=05-Feb-2026")

    assert resp.status_code == 404
    assert resp.get_json()["message"] == UNAVAILABLE_MESSAGE
    assert "10.9.8.7" not in resp.get_data(as_text=True)


def test_snapshot_config_drives_scheduled_capture(client, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test slot times are editable and a capture without a slot uses the due one."""
    report = HourlyReportResult(success=True, date="28-Jan-2026", floors=[FloorData("F-1", [LineData("L-1", 7)])])
    monkeypatch.setattr(web, "fetch_hourly_report", lambda date, line=None, **kw: report)
    seen: list[str] = []

    def fake_due(config):
        seen.append(config.slot3_time)
        return "slot3"

    monkeypatch.setattr(web, "due_slot", fake_due)

    assert client.put("/api/snapshot/config", json={"slot3_time": "25:00"}).status_code == 400
    assert client.put("/api/snapshot/config", json=["slot3_time"]).status_code == 400
    updated = client.put("/api/snapshot/config", json={"slot3_time": "20:30"}).get_json()
    assert updated["config"]["slot3_time"] == "20:30"
    assert client.get("/api/snapshot/config").get_json()["config"]["days_to_keep"] == 30

    resp = client.post("/api/snapshot", json={"date": "28-Jan-2026"})
    assert resp.get_json()["slot"] == "slot3"
    assert seen == ["20:30"]
    body = client.get("/api/snapshot?date=28-Jan-2026").get_json()
    assert body["snapshots"]["slot3"]["grand_total"] == 7
    assert body["config"]["slot3_time"] == "20:30"
