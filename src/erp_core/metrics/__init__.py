"""Metrics layer - derived quantities, totals and pivots over parsed records."""

from erp_core.metrics.closing import block_totals, size_metrics, tolerance_qty
from erp_core.metrics.colorwise import group_by_color
from erp_core.metrics.po import process_data_into_tables, sort_sizes

__all__ = [
    "block_totals",
    "group_by_color",
    "process_data_into_tables",
    "size_metrics",
    "sort_sizes",
    "tolerance_qty",
]
