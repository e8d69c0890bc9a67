"""Pydantic request and response schemas for discoverease-bates API.

All API inputs and outputs use Pydantic models, never raw dicts.
Schemas are grouped by resource following the naming convention:
  {Resource}Request  : POST/PUT/PATCH body
  {Resource}Response : GET/POST response
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Case Schemas
# ---------------------------------------------------------------------------


class CaseBatesConfigRequest(BaseModel):
    """Request body for PUT /api/v1/discovery/cases/{case_id}/bates."""

    bates_prefix: str | None = Field(description="Bates prefix, stored verbatim; null disables numbering")


class CaseBatesConfigResponse(BaseModel):
    """Bates configuration of a case."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(description="Case identifier")
    case_number: str = Field(description="Case number")
    bates_prefix: str | None = Field(description="Configured Bates prefix")
    current_bates_number: int = Field(description="Last upload-time Bates number issued")


# ---------------------------------------------------------------------------
# Document Intake Schemas
# ---------------------------------------------------------------------------


class DocumentIntakeRequest(BaseModel):
    """Request body for POST /api/v1/discovery/documents/intake."""

    case_id: uuid.UUID = Field(description="Owning case")
    name: str = Field(min_length=1, description="Document display name")
    original_name: str | None = Field(default=None, description="Uploaded filename")
    storage_path: str = Field(min_length=1, description="Blob-store key the file was written to")
    file_size: int | None = Field(default=None, ge=0, description="File size in bytes")
    mime_type: str | None = Field(default=None, description="File content type")
    auto_bates: bool = Field(default=False, description="Assign upload-time Bates numbers")
    description: str | None = Field(default=None, description="Optional description")
    category: str | None = Field(default=None, description="Optional category")
    tags: list[str] = Field(default_factory=list, description="Optional tags")


class DocumentResponse(BaseModel):
    """Response schema for a document record."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(description="Document identifier")
    case_id: uuid.UUID = Field(description="Owning case")
    name: str = Field(description="Document display name")
    original_name: str = Field(description="Uploaded filename")
    storage_path: str = Field(description="Blob-store key")
    file_size: int | None = Field(description="File size in bytes")
    mime_type: str | None = Field(description="File content type")
    page_count: int | None = Field(description="Estimated page count used for numbering")
    bates_start: str | None = Field(description="First upload-time Bates label")
    bates_end: str | None = Field(description="Last upload-time Bates label")
    category: str | None = Field(description="Category")
    status: str = Field(description="Document status")
    created_at: datetime = Field(description="When the document was recorded")


# ---------------------------------------------------------------------------
# Production Set Schemas
# ---------------------------------------------------------------------------


class ProductionSetCreateRequest(BaseModel):
    """Request body for POST /api/v1/discovery/productions."""

    case_id: uuid.UUID = Field(description="Owning case")
    name: str = Field(min_length=1, description="Production name")
    bates_prefix: str | None = Field(default=None, description="Prefix for production Bates numbers")
    description: str | None = Field(default=None, description="Optional description")
    produced_date: datetime | None = Field(default=None, description="Date served on the recipient")
    produced_to: str | None = Field(default=None, description="Receiving party")
    notes: str | None = Field(default=None, description="Internal notes")


class ProductionSetResponse(BaseModel):
    """Response schema for production set metadata."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(description="Production set identifier")
    case_id: uuid.UUID = Field(description="Owning case")
    name: str = Field(description="Production name")
    description: str | None = Field(description="Description")
    bates_prefix: str | None = Field(description="Prefix of production Bates numbers")
    bates_start: str | None = Field(description="First production Bates label")
    bates_end: str | None = Field(description="Last production Bates label")
    current_bates_number: int = Field(description="Last production Bates number issued")
    produced_date: datetime | None = Field(description="Date served on the recipient")
    produced_to: str | None = Field(description="Receiving party")
    notes: str | None = Field(description="Internal notes")
    created_at: datetime = Field(description="When the set was created")
    updated_at: datetime = Field(description="When the set was last updated")


class AddDocumentsRequest(BaseModel):
    """Request body for POST /api/v1/discovery/productions/{id}/documents."""

    document_ids: list[uuid.UUID] = Field(min_length=1, description="Documents to add, in production order")
    bates_prefix: str | None = Field(default=None, description="Prefix for the new numbers; null leaves them unnumbered")


class ProductionDocumentResponse(BaseModel):
    """Response schema for a production entry."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(description="Production entry identifier")
    production_set_id: uuid.UUID = Field(description="Production set")
    document_id: uuid.UUID = Field(description="Produced document")
    bates_number: str | None = Field(description="Production-scoped Bates label")
    is_privileged: bool = Field(description="Whether the document is withheld as privileged")
    privilege_reason: str | None = Field(description="Reason for the privilege claim")
    created_at: datetime = Field(description="When the document was added")


class ProductionDocumentDetailResponse(ProductionDocumentResponse):
    """Production entry together with its document."""

    document: DocumentResponse = Field(description="The produced document")


class ProductionDocumentListResponse(BaseModel):
    """Response schema for a production's entries."""

    entries: list[ProductionDocumentDetailResponse] = Field(description="Entries in Bates order")
    total_count: int = Field(description="Number of entries")


class PrivilegeUpdateRequest(BaseModel):
    """Request body for PATCH .../documents/{entry_id}/privilege."""

    is_privileged: bool = Field(description="Whether to flag the entry as privileged")
    privilege_reason: str | None = Field(default=None, description="Reason for the privilege claim")


class DownloadInfoResponse(BaseModel):
    """Download sizing for a production set."""

    model_config = ConfigDict(from_attributes=True)

    document_count: int = Field(description="Number of entries")
    total_size: int = Field(description="Total size in bytes")
    total_size_formatted: str = Field(description="Human-readable total size")
    can_download: bool = Field(description="Whether one archive can hold the production")
    show_warning: bool = Field(description="Whether the download is large")
    warning_message: str | None = Field(description="Warning to show the user")
    exceeds_limit: bool = Field(description="Whether the size exceeds the archive limit")
    parts_needed: int | None = Field(description="Archives needed when the limit is exceeded")
    max_download_size: int = Field(description="Largest single archive in bytes")


# ---------------------------------------------------------------------------
# Privilege Log Schemas
# ---------------------------------------------------------------------------


class PrivilegeLogEntryRequest(BaseModel):
    """Request body for PUT /api/v1/discovery/privilege-log/entries/{document_id}."""

    document_date: datetime | None = Field(default=None, description="Date of the document")
    author: str | None = Field(default=None, description="Author")
    recipients: list[str] = Field(default_factory=list, description="Recipients in order")
    privilege_type: str | None = Field(default=None, description="Privilege claimed")
    basis: str | None = Field(default=None, description="Basis for the claim")
    description: str | None = Field(default=None, description="Description of the withheld content")


class PrivilegeLogEntryResponse(BaseModel):
    """Response schema for supplemental privilege log metadata."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(description="Entry identifier")
    document_id: uuid.UUID = Field(description="Document the entry describes")
    case_id: uuid.UUID = Field(description="Owning case")
    document_date: datetime | None = Field(description="Date of the document")
    author: str | None = Field(description="Author")
    recipients: list[str] | None = Field(description="Recipients in order")
    privilege_type: str | None = Field(description="Privilege claimed")
    basis: str | None = Field(description="Basis for the claim")
    description: str | None = Field(description="Description")


class PrivilegeLogRowResponse(BaseModel):
    """One line of a generated privilege log, serialized with camelCase keys."""

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    bates_number: str = Field(description="Production Bates label or N/A")
    document_date: str = Field(description="Document date (ISO 8601) or N/A")
    author: str = Field(description="Author or N/A")
    recipients: list[str] = Field(description="Recipients")
    document_type: str = Field(description="Document type")
    privilege_claimed: str = Field(description="Privilege claimed")
    basis: str = Field(description="Basis for the claim")
    description: str = Field(description="Description")


class PrivilegeLogProductionSetResponse(ProductionSetResponse):
    """Production set metadata as embedded in the privilege log."""

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class PrivilegeLogResponse(BaseModel):
    """JSON privilege log: {"privilegeLog": [...], "productionSet": {...}}."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    privilege_log: list[PrivilegeLogRowResponse] = Field(description="Log rows in Bates order")
    production_set: PrivilegeLogProductionSetResponse = Field(description="The production set the log covers")
