"""Production download sizing and manifest generation.

Productions are delivered as archives assembled by the surrounding
application. This adapter decides whether a production fits in one download
and renders the index.csv manifest that accompanies the files.
"""

import csv
import io
import math
from dataclasses import dataclass

from discoverease_bates.core.models import Document, ProductionDocument

MANIFEST_HEADERS: tuple[str, ...] = ("Bates Number", "Document Name", "Original Name", "File Size", "Type")

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


@dataclass
class DownloadInfo:
    """Download sizing for a production set."""

    document_count: int
    total_size: int
    total_size_formatted: str
    can_download: bool
    show_warning: bool
    warning_message: str | None
    exceeds_limit: bool
    parts_needed: int | None
    max_download_size: int


def format_bytes(size: int) -> str:
    """Format a byte count for display (e.g. 1536 -> "1.5 KB")."""
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 2):g} {_SIZE_UNITS[unit]}"


def compute_download_info(
    entries: list[tuple[ProductionDocument, Document]],
    max_download_bytes: int,
    warning_bytes: int,
) -> DownloadInfo:
    """Size a production download.

    Args:
        entries: Production entries with their documents.
        max_download_bytes: Largest single archive allowed.
        warning_bytes: Size above which the caller should warn the user.

    Returns:
        DownloadInfo with part counts when the limit is exceeded.
    """
    total_size = sum(document.file_size or 0 for _, document in entries)
    exceeds_limit = total_size > max_download_bytes
    show_warning = total_size > warning_bytes
    warning_message = None
    if show_warning and not exceeds_limit:
        warning_message = (
            f"This download is {format_bytes(total_size)}. Large downloads may take several minutes."
        )
    return DownloadInfo(
        document_count=len(entries),
        total_size=total_size,
        total_size_formatted=format_bytes(total_size),
        can_download=not exceeds_limit,
        show_warning=show_warning,
        warning_message=warning_message,
        exceeds_limit=exceeds_limit,
        parts_needed=math.ceil(total_size / max_download_bytes) if exceeds_limit else None,
        max_download_size=max_download_bytes,
    )


def build_manifest_csv(entries: list[tuple[ProductionDocument, Document]]) -> str:
    """Render index.csv for the produced (non-privileged) documents.

    Args:
        entries: Production entries with their documents, in Bates order.

    Returns:
        CSV text with a header line.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(MANIFEST_HEADERS)
    for production_document, document in entries:
        if production_document.is_privileged:
            continue
        writer.writerow(
            [
                production_document.bates_number or "",
                document.name,
                document.original_name,
                document.file_size or 0,
                document.mime_type or "",
            ]
        )
    return buffer.getvalue()
