"""Privilege log row building and CSV rendering.

Each row field is resolved from an ordered list of sources, first present
value wins. Empty strings count as absent. A malformed supplemental value
degrades that field to its fallback instead of failing the export.
"""

import csv
import io
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any

from discoverease_bates.core.models import Document, PrivilegeLogEntry, ProductionDocument
from discoverease_bates.observability import get_logger

logger = get_logger(__name__)

NOT_AVAILABLE = "N/A"
DEFAULT_PRIVILEGE_CLAIMED = "Attorney-Client Privilege"
RECIPIENT_SEPARATOR = "; "

CSV_HEADERS: tuple[str, ...] = (
    "Bates Number",
    "Document Date",
    "Author",
    "Recipients",
    "Document Type",
    "Privilege Claimed",
    "Basis",
    "Description",
)


@dataclass
class PrivilegeLogRow:
    """One line of a privilege log."""

    bates_number: str
    document_date: str
    author: str
    recipients: list[str] = field(default_factory=list)
    document_type: str = "Unknown"
    privilege_claimed: str = DEFAULT_PRIVILEGE_CLAIMED
    basis: str = NOT_AVAILABLE
    description: str = NOT_AVAILABLE

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_csv_fields(self) -> list[str]:
        return [
            self.bates_number,
            self.document_date,
            self.author,
            RECIPIENT_SEPARATOR.join(self.recipients),
            self.document_type,
            self.privilege_claimed,
            self.basis,
            self.description,
        ]


def first_present(*candidates: Any, default: Any) -> Any:
    """Return the first candidate that is neither None nor an empty string."""
    for candidate in candidates:
        if candidate is None or candidate == "":
            continue
        return candidate
    return default


def _render_date(value: datetime | date | str | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _coerce_recipients(value: Any, document_id: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    logger.warning(
        "Malformed privilege log recipients, using fallback",
        document_id=str(document_id),
        value_type=type(value).__name__,
    )
    return []


def _text_or_none(value: Any, field_name: str, document_id: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    logger.warning(
        "Malformed privilege log field, using fallback",
        document_id=str(document_id),
        field=field_name,
    )
    return None


def build_row(
    production_document: ProductionDocument,
    document: Document | None,
    log_entry: PrivilegeLogEntry | None,
) -> PrivilegeLogRow:
    """Build one privilege log row from an entry, its document and log data.

    Args:
        production_document: The privileged production entry.
        document: The owning document, if it still exists.
        log_entry: Supplemental privilege log metadata, if recorded.

    Returns:
        PrivilegeLogRow with every fallback applied.
    """
    document_id = production_document.document_id
    document_name = document.name if document is not None else None
    document_created = document.created_at if document is not None else None

    log_date = author = privilege_type = basis = description = None
    recipients: list[str] = []
    if log_entry is not None:
        log_date = log_entry.document_date
        author = _text_or_none(log_entry.author, "author", document_id)
        privilege_type = _text_or_none(log_entry.privilege_type, "privilege_type", document_id)
        basis = _text_or_none(log_entry.basis, "basis", document_id)
        description = _text_or_none(log_entry.description, "description", document_id)
        recipients = _coerce_recipients(log_entry.recipients, document_id)

    return PrivilegeLogRow(
        bates_number=first_present(production_document.bates_number, default=NOT_AVAILABLE),
        document_date=first_present(
            _render_date(log_date), _render_date(document_created), default=NOT_AVAILABLE
        ),
        author=first_present(author, default=NOT_AVAILABLE),
        recipients=recipients,
        document_type=first_present(document_name, default="Unknown"),
        privilege_claimed=first_present(privilege_type, default=DEFAULT_PRIVILEGE_CLAIMED),
        basis=first_present(basis, production_document.privilege_reason, default=NOT_AVAILABLE),
        description=first_present(description, document_name, default=NOT_AVAILABLE),
    )


def render_csv(rows: list[PrivilegeLogRow]) -> str:
    """Render privilege log rows as CSV text.

    Every field is quoted and embedded quotes are doubled, so values holding
    commas, quotes or newlines survive a round trip through a CSV parser.

    Args:
        rows: Rows to render, in output order.

    Returns:
        CSV text with a header line.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for row in rows:
        writer.writerow(row.to_csv_fields())
    return buffer.getvalue()
