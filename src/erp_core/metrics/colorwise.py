"""Color-wise grouping of drilled-down challans."""

from __future__ import annotations

from erp_core.types import UNKNOWN_COLOR, ChallanDetailRecord, ColorGroup


def group_by_color(records: list[ChallanDetailRecord]) -> list[ColorGroup]:
    """Group challans by exact color text.

    Groups appear in order of the first record carrying each color, so the
    result depends only on the input order and not on when concurrent
    lookups finished. Members are sorted by challan number, descending.
    Records without a color go to the ``Unknown Color`` group.

    Examples:
        Colors ``RED, RED, BLUE`` with quantities ``10, 20, 5`` give
        ``RED`` (subtotal 30, 2 members) then ``BLUE`` (subtotal 5).
    """
    groups: dict[str, list[ChallanDetailRecord]] = {}
    for record in records:
        color = record.color or UNKNOWN_COLOR
        groups.setdefault(color, []).append(record)
    return [
        ColorGroup(color=color, items=sorted(items, key=lambda r: r.challan, reverse=True))
        for color, items in groups.items()
    ]


def grand_total(groups: list[ColorGroup]) -> int:
    return sum(group.subtotal for group in groups)
