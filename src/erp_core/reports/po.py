"""PO sheet ingestion: PDFs in, per-color size tables out."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from erp_core.exceptions import ParseError
from erp_core.metrics.po import ColorTable, process_data_into_tables
from erp_core.parsing.po import PODataRow, POMetadata, extract_pdf_text, parse_po_text

logger = logging.getLogger(__name__)


@dataclass
class POReport:
    """Combined result of one PO upload.

    Attributes:
        success: False when no file contained PO rows.
        metadata: Booking metadata, preferring a file with a booking number.
        tables: One table per color.
        grand_total: Sum of all PO quantities.
        file_count: Number of files uploaded (PDF or not).
        message: Failure reason.
    """

    success: bool
    metadata: POMetadata = field(default_factory=POMetadata)
    tables: list[ColorTable] = field(default_factory=list)
    grand_total: int = 0
    file_count: int = 0
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "metadata": self.metadata.to_dict(),
            "tables": [table.to_dict() for table in self.tables],
            "grand_total": self.grand_total,
            "file_count": self.file_count,
            "message": self.message,
        }


def merge_metadata(current: POMetadata, candidate: POMetadata) -> POMetadata:
    """Pick between two files' metadata.

    A file with a booking number wins over one without; otherwise a file
    with a buyer fills in when none has been found yet.
    """
    if candidate.booking != "N/A" and current.booking == "N/A":
        return candidate
    if current.buyer == "N/A" and candidate.buyer != "N/A":
        return candidate
    return current


def process_po_files(
    files: Iterable[tuple[str, bytes]],
    extractor: Callable[[bytes], str] = extract_pdf_text,
) -> POReport:
    """Parse uploaded PO PDFs into color tables.

    Non-PDF files are counted but skipped. An unreadable PDF is logged and
    skipped; the rest of the upload is still processed.

    Args:
        files: ``(filename, content)`` pairs.
        extractor: PDF to text function.

    Returns:
        POReport with tables built from every file's rows.
    """
    rows: list[PODataRow] = []
    metadata = POMetadata()
    file_count = 0

    for name, content in files:
        file_count += 1
        if not name.lower().endswith(".pdf"):
            logger.debug("Skipping non-PDF upload %s", name)
            continue
        try:
            text = extractor(content)
        except ParseError as e:
            logger.warning("Could not read %s: %s", name, e)
            continue
        file_rows, file_meta = parse_po_text(text)
        logger.debug("%s: %d PO rows", name, len(file_rows))
        metadata = merge_metadata(metadata, file_meta)
        rows.extend(file_rows)

    if not rows:
        return POReport(
            success=False,
            metadata=metadata,
            file_count=file_count,
            message="No valid PO data found in uploaded files",
        )

    tables, grand_total = process_data_into_tables(rows)
    return POReport(
        success=True,
        metadata=metadata,
        tables=tables,
        grand_total=grand_total,
        file_count=file_count,
    )
