"""Excel export of the closing report."""

from __future__ import annotations

import io
import logging
from pathlib import Path

import pandas as pd

from erp_core.metrics.closing import METRIC_ROWS, block_frame
from erp_core.types import ReportBlock

logger = logging.getLogger(__name__)

SHEET_NAME = "Closing Report"
PERCENT_LABEL = dict(METRIC_ROWS)["percentage"]
BLOCK_GAP = 2  # empty rows between color tables


def closing_report_to_excel(
    blocks: list[ReportBlock],
    ref: str,
    output_path: str | Path | None = None,
) -> bytes:
    """Write one size x metric table per color block to a workbook.

    Each table is preceded by a title row (reference, buyer, style, color);
    percentages are formatted ``0.00%``.

    Args:
        blocks: Closing report blocks.
        ref: Internal reference, shown in every title row.
        output_path: Also write the workbook here when given.

    Returns:
        The ``.xlsx`` file content.
    """
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="xlsxwriter") as xw:
        workbook = xw.book
        title_fmt = workbook.add_format({"bold": True, "font_size": 12})
        pct_fmt = workbook.add_format({"num_format": "0.00%"})

        sheet = workbook.add_worksheet(SHEET_NAME)
        row = 0
        for block in blocks:
            title = f"{ref.upper()}  |  {block.buyer}  |  {block.style}  |  {block.color}"
            sheet.write(row, 0, title, title_fmt)
            frame = block_frame(block)
            frame.to_excel(xw, sheet_name=SHEET_NAME, startrow=row + 1)

            # Header row, then metrics in METRIC_ROWS order
            pct_row = row + 2 + list(frame.index).index(PERCENT_LABEL)
            for col, value in enumerate(frame.loc[PERCENT_LABEL].tolist(), start=1):
                sheet.write_number(pct_row, col, float(value), pct_fmt)

            row += len(frame) + 2 + BLOCK_GAP

        sheet.set_column(0, 0, 18)

    data = buffer.getvalue()
    if output_path:
        Path(output_path).write_bytes(data)
        logger.info("Wrote closing report workbook %s", output_path)
    return data
