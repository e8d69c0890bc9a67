"""SQLAlchemy ORM models for discoverease-bates.

All tables extend TenantModel (id, tenant_id, created_at, updated_at).

Table naming convention: dse_{table_name}

Two independent Bates numbering domains live here:
  - Case.current_bates_number: upload-time high-water mark, stamped onto
    Document.bates_start / Document.bates_end.
  - ProductionSet.current_bates_number: production-scoped high-water mark,
    stamped onto ProductionDocument.bates_number.
"""

import uuid
from datetime import datetime

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from discoverease_bates.database import TenantModel

JSONList = JSON().with_variant(JSONB(), "postgresql")


class Case(TenantModel):
    """A legal matter that owns documents and production sets.

    Only the Bates-related columns are managed by this service; the rest of
    the case record is maintained by the surrounding application.

    Table: dse_cases
    """

    __tablename__ = "dse_cases"

    case_number: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    bates_prefix: Mapped[str | None] = mapped_column(String(32), nullable=True)
    current_bates_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Document(TenantModel):
    """An uploaded document and its intake-time Bates range.

    bates_start / bates_end are written once at intake and never renumbered.

    Table: dse_documents
    """

    __tablename__ = "dse_documents"

    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dse_cases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(512), nullable=False)
    original_name: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    storage_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    file_size: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    mime_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    page_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bates_start: Mapped[str | None] = mapped_column(String(64), nullable=True)
    bates_end: Mapped[str | None] = mapped_column(String(64), nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tags: Mapped[list | None] = mapped_column(JSONList, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="draft")
    uploaded_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)


class ProductionSet(TenantModel):
    """A named production of documents to an opposing party.

    current_bates_number is the explicit high-water mark of the set's own
    sequence; it only grows, so removed or abandoned numbers are never reused.

    Table: dse_production_sets
    """

    __tablename__ = "dse_production_sets"

    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dse_cases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    bates_prefix: Mapped[str | None] = mapped_column(String(32), nullable=True)
    bates_start: Mapped[str | None] = mapped_column(String(64), nullable=True)
    bates_end: Mapped[str | None] = mapped_column(String(64), nullable=True)
    current_bates_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    produced_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    produced_to: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class ProductionDocument(TenantModel):
    """Membership of a document in a production set.

    bates_number is scoped to the production set and unrelated to the
    document's intake range. Entries added in one call share created_at and
    are ordered by batch_position. Only the privilege columns change after
    insert.

    Table: dse_production_documents
    """

    __tablename__ = "dse_production_documents"

    production_set_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dse_production_sets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dse_documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    bates_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    bates_sequence: Mapped[int | None] = mapped_column(Integer, nullable=True)
    batch_position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_privileged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    privilege_reason: Mapped[str | None] = mapped_column(Text, nullable=True)


class PrivilegeLogEntry(TenantModel):
    """Supplemental privilege log metadata for a document.

    Optional: when absent, the privilege log falls back to document and
    production entry fields.

    Table: dse_privilege_log_entries
    """

    __tablename__ = "dse_privilege_log_entries"
    __table_args__ = (UniqueConstraint("tenant_id", "document_id", name="uq_dse_privilege_log_document"),)

    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dse_cases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dse_documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    document_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    author: Mapped[str | None] = mapped_column(String(255), nullable=True)
    recipients: Mapped[list | None] = mapped_column(JSONList, nullable=True)
    privilege_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    basis: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
