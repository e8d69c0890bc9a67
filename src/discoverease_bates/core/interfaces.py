"""Abstract interfaces (Protocol classes) for discoverease-bates.

Services depend on interfaces, not concrete implementations,
enabling dependency injection and easy test mocking.
"""

import uuid
from datetime import datetime
from typing import Protocol, runtime_checkable

from discoverease_bates.auth import TenantContext
from discoverease_bates.core.models import (
    Case,
    Document,
    PrivilegeLogEntry,
    ProductionDocument,
    ProductionSet,
)


@runtime_checkable
class IPageCountEstimator(Protocol):
    """Estimates how many pages (and so Bates numbers) an upload spans."""

    def estimate(
        self, file_size: int | None, mime_type: str | None = None, content: bytes | None = None
    ) -> int: ...


@runtime_checkable
class ICaseRepository(Protocol):
    """Repository interface for the Bates columns of Case records."""

    async def get_by_id(self, case_id: uuid.UUID, tenant: TenantContext) -> Case | None: ...

    async def get_for_update(self, case_id: uuid.UUID, tenant: TenantContext) -> Case | None: ...

    async def advance_bates_counter(
        self,
        case_id: uuid.UUID,
        expected: int,
        new_value: int,
        tenant: TenantContext,
    ) -> bool: ...

    async def update_bates_prefix(
        self, case_id: uuid.UUID, bates_prefix: str | None, tenant: TenantContext
    ) -> Case | None: ...


@runtime_checkable
class IDocumentRepository(Protocol):
    """Repository interface for Document records."""

    async def get_by_id(self, document_id: uuid.UUID, tenant: TenantContext) -> Document | None: ...

    async def get_many(self, document_ids: list[uuid.UUID], tenant: TenantContext) -> list[Document]: ...

    async def create(
        self,
        case_id: uuid.UUID,
        name: str,
        original_name: str,
        storage_path: str,
        tenant: TenantContext,
        file_size: int | None = None,
        mime_type: str | None = None,
        page_count: int | None = None,
        bates_start: str | None = None,
        bates_end: str | None = None,
        description: str | None = None,
        category: str | None = None,
        tags: list[str] | None = None,
    ) -> Document: ...


@runtime_checkable
class IProductionSetRepository(Protocol):
    """Repository interface for ProductionSet records."""

    async def get_by_id(self, production_set_id: uuid.UUID, tenant: TenantContext) -> ProductionSet | None: ...

    async def get_for_update(
        self, production_set_id: uuid.UUID, tenant: TenantContext
    ) -> ProductionSet | None: ...

    async def create(
        self,
        case_id: uuid.UUID,
        name: str,
        tenant: TenantContext,
        bates_prefix: str | None = None,
        description: str | None = None,
        produced_date: datetime | None = None,
        produced_to: str | None = None,
        notes: str | None = None,
    ) -> ProductionSet: ...

    async def advance_bates_counter(
        self,
        production_set_id: uuid.UUID,
        expected: int,
        new_value: int,
        bates_prefix: str,
        bates_start: str,
        bates_end: str,
        tenant: TenantContext,
    ) -> bool: ...


@runtime_checkable
class IProductionDocumentRepository(Protocol):
    """Repository interface for ProductionDocument entries."""

    async def get_by_id(
        self, entry_id: uuid.UUID, production_set_id: uuid.UUID, tenant: TenantContext
    ) -> ProductionDocument | None: ...

    async def create_many(
        self,
        production_set_id: uuid.UUID,
        entries: list[tuple[uuid.UUID, str | None, int | None]],
        tenant: TenantContext,
    ) -> list[ProductionDocument]: ...

    async def update_privilege(
        self,
        entry_id: uuid.UUID,
        production_set_id: uuid.UUID,
        is_privileged: bool,
        privilege_reason: str | None,
        tenant: TenantContext,
    ) -> ProductionDocument | None: ...

    async def list_bates_labels(self, production_set_id: uuid.UUID, tenant: TenantContext) -> list[str]: ...

    async def list_with_documents(
        self,
        production_set_id: uuid.UUID,
        tenant: TenantContext,
        privileged_only: bool = False,
    ) -> list[tuple[ProductionDocument, Document]]: ...


@runtime_checkable
class IPrivilegeLogEntryRepository(Protocol):
    """Repository interface for supplemental PrivilegeLogEntry records."""

    async def list_by_document_ids(
        self, document_ids: list[uuid.UUID], tenant: TenantContext
    ) -> list[PrivilegeLogEntry]: ...

    async def upsert(
        self,
        document_id: uuid.UUID,
        case_id: uuid.UUID,
        tenant: TenantContext,
        document_date: datetime | None = None,
        author: str | None = None,
        recipients: list[str] | None = None,
        privilege_type: str | None = None,
        basis: str | None = None,
        description: str | None = None,
    ) -> PrivilegeLogEntry: ...
