"""Accessories challan book-keeping per booking.

All bookings are held in one ``accessories_data`` document, keyed by the
upper-cased booking reference. Booking metadata (buyer, style, colors) is
seeded from the closing report; challan lines are entered by users.
"""

from __future__ import annotations

import logging
from typing import Any

from erp_core.clock import local_now
from erp_core.parsing.cleaning import parse_quantity
from erp_core.store import DocumentStore
from erp_core.types import ReportBlock

logger = logging.getLogger(__name__)

STORE_KEY = "accessories_data"


def _normalize_ref(ref: str) -> str:
    return ref.strip().upper()


def load_bookings(store: DocumentStore) -> dict[str, dict[str, Any]]:
    return store.get(STORE_KEY) or {}


def save_bookings(store: DocumentStore, data: dict[str, dict[str, Any]]) -> None:
    store.upsert(STORE_KEY, data)


def list_bookings(store: DocumentStore) -> list[dict[str, Any]]:
    """Summaries of all bookings, sorted by reference descending."""
    summaries = []
    for ref, booking in load_bookings(store).items():
        challans = booking.get("challans", [])
        summaries.append(
            {
                "ref": ref,
                "buyer": booking.get("buyer", "N/A"),
                "style": booking.get("style", "N/A"),
                "challan_count": len(challans),
                "total_qty": sum(parse_quantity(c.get("qty", 0)) for c in challans),
                "last_updated": booking.get("last_api_call", "N/A"),
            }
        )
    return sorted(summaries, key=lambda s: s["ref"], reverse=True)


def get_booking(store: DocumentStore, ref: str) -> dict[str, Any] | None:
    return load_bookings(store).get(_normalize_ref(ref))


def booking_from_blocks(blocks: list[ReportBlock]) -> dict[str, Any]:
    """Buyer, style and distinct colors from closing report blocks."""
    first = blocks[0] if blocks else None
    return {
        "buyer": first.buyer if first else "N/A",
        "style": first.style if first else "N/A",
        "colors": list(dict.fromkeys(block.color for block in blocks)),
    }


def create_or_update_booking(
    store: DocumentStore,
    ref: str,
    buyer: str,
    style: str,
    colors: list[str],
) -> dict[str, Any]:
    """Create a booking or refresh its metadata, keeping existing challans."""
    ref = _normalize_ref(ref)
    data = load_bookings(store)
    booking = data.get(ref, {"challans": []})
    booking.update(
        buyer=buyer,
        style=style,
        colors=list(colors),
        last_api_call=local_now().strftime("%d-%b-%Y %I:%M %p"),
    )
    data[ref] = booking
    save_bookings(store, data)
    return booking


def add_challan(
    store: DocumentStore,
    ref: str,
    line: str,
    color: str,
    qty: int | str,
    size: str = "ALL",
    item_type: str = "Top",
    user: str | None = None,
    date: str | None = None,
) -> dict[str, Any] | None:
    """Append a challan line to a booking.

    Returns:
        The updated booking, or None if the booking does not exist.
    """
    ref = _normalize_ref(ref)
    data = load_bookings(store)
    booking = data.get(ref)
    if booking is None:
        return None
    now = local_now()
    booking.setdefault("challans", []).append(
        {
            "type": item_type,
            "date": date or now.strftime("%d-%m-%Y"),
            "time": now.strftime("%I:%M %p"),
            "line": line,
            "color": color,
            "size": size,
            "qty": parse_quantity(qty),
            "user": user,
        }
    )
    save_bookings(store, data)
    logger.info("Added accessories challan to %s (line %s, qty %s)", ref, line, qty)
    return booking


def _challan_at(data: dict[str, dict[str, Any]], ref: str, index: int) -> list[dict[str, Any]] | None:
    booking = data.get(ref)
    if booking is None:
        return None
    challans = booking.get("challans", [])
    if not 0 <= index < len(challans):
        return None
    return challans


def update_challan(
    store: DocumentStore,
    ref: str,
    index: int,
    changes: dict[str, Any],
    user: str | None = None,
) -> dict[str, Any] | None:
    """Update fields of one challan line.

    Only ``date``, ``line``, ``color``, ``size`` and ``qty`` can change.

    Returns:
        The updated booking, or None if the booking or index does not exist.
    """
    ref = _normalize_ref(ref)
    data = load_bookings(store)
    challans = _challan_at(data, ref, index)
    if challans is None:
        return None
    item = challans[index]
    for key in ("date", "line", "color", "size"):
        if key in changes:
            item[key] = str(changes[key])
    if "qty" in changes:
        item["qty"] = parse_quantity(changes["qty"])
    item["updated_by"] = user
    item["updated_at"] = local_now().strftime("%d-%b-%Y %I:%M %p")
    save_bookings(store, data)
    return data[ref]


def delete_challan(store: DocumentStore, ref: str, index: int) -> dict[str, Any] | None:
    ref = _normalize_ref(ref)
    data = load_bookings(store)
    challans = _challan_at(data, ref, index)
    if challans is None:
        return None
    challans.pop(index)
    save_bookings(store, data)
    return data[ref]


def delete_booking(store: DocumentStore, ref: str) -> bool:
    ref = _normalize_ref(ref)
    data = load_bookings(store)
    if ref not in data:
        return False
    del data[ref]
    save_bookings(store, data)
    logger.info("Deleted accessories booking %s", ref)
    return True
