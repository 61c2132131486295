"""JSON HTTP API over the report services.

Status mapping: missing input is 400; a report that is not found or an ERP
that cannot be reached is 404 (operators tell them apart in the logs);
anything unexpected is logged and returned as a generic 500.
"""

from __future__ import annotations

import io
import logging
from typing import Any

from flask import Blueprint, Flask, current_app, jsonify, request, send_file
from werkzeug.exceptions import InternalServerError

from erp_core import accessories, history
from erp_core.clock import erp_date_str
from erp_core.config import ERPConfig
from erp_core.export import closing_report_to_excel
from erp_core.metrics.closing import block_summary
from erp_core.raw.cookie import ERPCookieManager
from erp_core.raw.sweep import ReportType
from erp_core.reports import (
    fetch_challan_report,
    fetch_closing_report_data,
    fetch_color_wise_report,
    fetch_factory_report,
    fetch_hourly_report,
    fetch_sewing_closing_report_data,
    process_po_files,
)
from erp_core.reports.snapshots import (
    SLOTS,
    capture_snapshot,
    delete_old_snapshots,
    due_slot,
    get_snapshot_config,
    get_snapshots_for_date,
    update_snapshot_config,
)
from erp_core.store import DocumentStore, open_store

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Booking not found in ERP"
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

api_bp = Blueprint("api", __name__, url_prefix="/api")


def _config() -> ERPConfig:
    return current_app.extensions["erp_core"]["config"]


def _store() -> DocumentStore:
    return current_app.extensions["erp_core"]["store"]


def _user() -> str:
    return request.headers.get("X-User", "anonymous")


def _arg(name: str) -> str:
    return (request.args.get(name) or "").strip()


def _missing(name: str):
    return jsonify({"success": False, "message": f"{name} is required"}), 400


def _not_found(message: str = NOT_FOUND_MESSAGE):
    return jsonify({"success": False, "message": message}), 404


def _record(ref: str, kind: ReportType | str, success: bool, **details: Any) -> None:
    history.record_activity(
        _store(), ref, _user(), kind, status="success" if success else "failed", **details
    )


@api_bp.get("/closing")
def closing_report():
    ref = _arg("ref")
    if not ref:
        return _missing("ref")
    blocks = fetch_closing_report_data(ref, config=_config(), store=_store())
    _record(ref, ReportType.CLOSING, blocks is not None)
    if blocks is None:
        return _not_found()
    return jsonify({"success": True, "ref": ref.upper(), "data": [block_summary(b) for b in blocks]})


@api_bp.get("/closing/excel")
def closing_excel():
    ref = _arg("ref")
    if not ref:
        return _missing("ref")
    blocks = fetch_closing_report_data(ref, config=_config(), store=_store())
    if blocks is None:
        return _not_found()
    data = closing_report_to_excel(blocks, ref)
    filename = "Closing-Report-%s.xlsx" % ref.upper().replace("/", "_")
    return send_file(
        io.BytesIO(data), mimetype=XLSX_MIMETYPE, as_attachment=True, download_name=filename
    )


@api_bp.get("/challan-report")
def challan_report():
    booking = _arg("booking")
    if not booking:
        return _missing("booking")
    result = fetch_challan_report(booking, config=_config(), store=_store())
    _record(booking, ReportType.CHALLAN, result.success)
    if not result.success:
        return _not_found(result.message)
    return jsonify(result.to_dict())


@api_bp.get("/color-wise-report")
def color_wise_report():
    booking = _arg("booking")
    if not booking:
        return _missing("booking")
    result = fetch_color_wise_report(booking, config=_config(), store=_store())
    _record(booking, ReportType.COLOR_WISE, result.success)
    if not result.success:
        return _not_found(result.message)
    return jsonify(result.to_dict())


@api_bp.get("/sewing-closing")
def sewing_closing():
    ref = _arg("ref")
    if not ref:
        return _missing("ref")
    result = fetch_sewing_closing_report_data(ref, config=_config(), store=_store())
    _record(ref, ReportType.SEWING, result is not None)
    if result is None:
        return _not_found()
    return jsonify(result.to_dict())


@api_bp.get("/hourly-report")
def hourly_report():
    date = _arg("date") or erp_date_str()
    result = fetch_hourly_report(date, _arg("line") or None, config=_config(), store=_store())
    _record(date, ReportType.HOURLY, result.success)
    if not result.success:
        return _not_found(result.message or NOT_FOUND_MESSAGE)
    return jsonify(result.to_dict())


@api_bp.get("/factory-report")
def factory_report():
    date = _arg("date") or erp_date_str()
    result = fetch_factory_report(date, config=_config(), store=_store())
    if not result.success:
        return _not_found(result.message or NOT_FOUND_MESSAGE)
    return jsonify(result.to_dict())


@api_bp.post("/po")
def po_sheet():
    uploads = request.files.getlist("files")
    if not uploads:
        return jsonify({"success": False, "message": "No files uploaded"}), 400
    report = process_po_files((f.filename or "", f.read()) for f in uploads)
    if not report.success:
        return jsonify(report.to_dict()), 400
    _record(report.metadata.booking, history.PO_SHEET, True, file_count=report.file_count)
    return jsonify(report.to_dict())


@api_bp.get("/erp-cookie")
def erp_cookie_status():
    return jsonify(ERPCookieManager(_config(), _store()).status())


@api_bp.post("/erp-cookie")
def erp_cookie_refresh():
    token = ERPCookieManager(_config(), _store()).refresh()
    if token is None:
        return jsonify({"success": False, "message": "ERP login failed"}), 502
    return jsonify(
        {
            "success": True,
            "expires_at": token.expires_at.isoformat(),
            "last_refreshed": token.last_refreshed.isoformat(),
        }
    )


@api_bp.get("/snapshot")
def snapshots():
    date = _arg("date") or erp_date_str()
    return jsonify(
        {
            "date": date,
            "snapshots": get_snapshots_for_date(_store(), date),
            "config": get_snapshot_config(_store()).to_dict(),
        }
    )


@api_bp.post("/snapshot")
def take_snapshot():
    body = request.get_json(silent=True) or {}
    config = get_snapshot_config(_store())
    slot = body.get("slot") or due_slot(config)
    if slot is None:
        return jsonify({"success": False, "message": "No snapshot slot is due yet"}), 400
    if slot not in SLOTS:
        return jsonify({"success": False, "message": f"slot must be one of {', '.join(SLOTS)}"}), 400
    date = body.get("date") or erp_date_str()
    report = fetch_hourly_report(date, config=_config(), store=_store())
    result = capture_snapshot(_store(), date, slot, report)
    if result["success"]:
        delete_old_snapshots(_store(), config.days_to_keep)
    return jsonify({**result, "date": date, "slot": slot}), 200 if result["success"] else 502


@api_bp.get("/snapshot/config")
def snapshot_config():
    return jsonify({"success": True, "config": get_snapshot_config(_store()).to_dict()})


@api_bp.put("/snapshot/config")
def snapshot_config_update():
    changes = request.get_json(silent=True) or {}
    if not isinstance(changes, dict):
        return jsonify({"success": False, "message": "Expected a JSON object"}), 400
    try:
        config = update_snapshot_config(_store(), **changes)
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400
    return jsonify({"success": True, "config": config.to_dict()})


@api_bp.get("/accessories")
def accessories_list():
    return jsonify({"success": True, "data": accessories.list_bookings(_store())})


@api_bp.get("/accessories/<path:ref>")
def accessories_get(ref: str):
    booking = accessories.get_booking(_store(), ref)
    if booking is None:
        blocks = fetch_closing_report_data(ref, config=_config(), store=_store())
        if not blocks:
            return _not_found()
        meta = accessories.booking_from_blocks(blocks)
        booking = accessories.create_or_update_booking(_store(), ref, **meta)
    return jsonify({"success": True, "ref": ref.strip().upper(), "data": booking})


@api_bp.delete("/accessories/<path:ref>")
def accessories_delete_booking(ref: str):
    if not accessories.delete_booking(_store(), ref):
        return _not_found("Booking not found")
    return jsonify({"success": True})


@api_bp.post("/accessories/<path:ref>/challans")
def accessories_add(ref: str):
    body = request.get_json(silent=True) or {}
    for name in ("line", "color", "qty"):
        if not str(body.get(name, "")).strip():
            return _missing(name)
    booking = accessories.add_challan(
        _store(),
        ref,
        line=str(body["line"]),
        color=str(body["color"]),
        qty=body["qty"],
        size=str(body.get("size") or "ALL"),
        item_type=str(body.get("type") or "Top"),
        user=_user(),
        date=body.get("date"),
    )
    if booking is None:
        return _not_found("Booking not found")
    _record(ref.strip().upper(), history.ACCESSORIES, True, info=f"Line: {body['line']}, Qty: {body['qty']}")
    return jsonify({"success": True, "data": booking})


@api_bp.put("/accessories/<path:ref>/challans/<int:index>")
def accessories_update(ref: str, index: int):
    body = request.get_json(silent=True) or {}
    booking = accessories.update_challan(_store(), ref, index, body, user=_user())
    if booking is None:
        return _not_found("Challan not found")
    return jsonify({"success": True, "data": booking})


@api_bp.delete("/accessories/<path:ref>/challans/<int:index>")
def accessories_delete(ref: str, index: int):
    booking = accessories.delete_challan(_store(), ref, index)
    if booking is None:
        return _not_found("Challan not found")
    return jsonify({"success": True, "data": booking})


@api_bp.get("/stats")
def stats():
    store = _store()
    return jsonify(
        {
            "counts": history.activity_counts(store),
            "recent": history.recent_activity(store, limit=_int_arg("limit", 50)),
            "accessories_challans": sum(
                b["challan_count"] for b in accessories.list_bookings(store)
            ),
        }
    )


def _int_arg(name: str, default: int) -> int:
    value = request.args.get(name, type=int)
    return default if value is None else value


def create_app(config: ERPConfig | None = None, store: DocumentStore | None = None) -> Flask:
    """Build the Flask app.

    Args:
        config: ERP settings (defaults to ``ERPConfig.from_env()``).
        store: Document store shared by all requests (defaults to
            ``open_store(config)``).
    """
    app = Flask(__name__)
    config = config or ERPConfig.from_env()
    app.extensions["erp_core"] = {
        "config": config,
        "store": store if store is not None else open_store(config),
    }
    app.register_blueprint(api_bp)

    @app.errorhandler(InternalServerError)
    def internal_error(e: InternalServerError):
        original = getattr(e, "original_exception", None) or e
        logger.error("Unhandled error on %s %s: %r", request.method, request.path, original)
        return jsonify({"success": False, "message": "Internal server error"}), 500

    return app
