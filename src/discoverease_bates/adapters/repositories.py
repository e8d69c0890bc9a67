"""SQLAlchemy repository implementations for discoverease-bates.

Every query is scoped to the caller's tenant. Counter columns
(Case.current_bates_number, ProductionSet.current_bates_number) are read with
SELECT ... FOR UPDATE and written with a conditional UPDATE that only matches
the value read, so two transactions can never issue the same range.
"""

import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from discoverease_bates.auth import TenantContext
from discoverease_bates.core.interfaces import (
    ICaseRepository,
    IDocumentRepository,
    IPrivilegeLogEntryRepository,
    IProductionDocumentRepository,
    IProductionSetRepository,
)
from discoverease_bates.core.models import (
    Case,
    Document,
    PrivilegeLogEntry,
    ProductionDocument,
    ProductionSet,
)
from discoverease_bates.database import utcnow


class BaseRepository:
    """Holds the request-scoped session shared by all repositories.

    Args:
        session: The async SQLAlchemy session (injected by FastAPI dependency).
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session


class CaseRepository(BaseRepository, ICaseRepository):
    """Repository for the Bates columns of Case records."""

    async def get_by_id(self, case_id: uuid.UUID, tenant: TenantContext) -> Case | None:
        """Fetch a case by its UUID within the tenant scope.

        Args:
            case_id: UUID of the case.
            tenant: Tenant context for isolation.

        Returns:
            The Case or None if not found.
        """
        result = await self.session.execute(
            select(Case).where(Case.id == case_id, Case.tenant_id == tenant.tenant_id)
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, case_id: uuid.UUID, tenant: TenantContext) -> Case | None:
        """Fetch a case and lock its row until the transaction ends.

        Args:
            case_id: UUID of the case.
            tenant: Tenant context for isolation.

        Returns:
            The freshly loaded Case or None if not found.
        """
        result = await self.session.execute(
            select(Case)
            .where(Case.id == case_id, Case.tenant_id == tenant.tenant_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def advance_bates_counter(
        self,
        case_id: uuid.UUID,
        expected: int,
        new_value: int,
        tenant: TenantContext,
    ) -> bool:
        """Move the case's upload counter from expected to new_value.

        Args:
            case_id: UUID of the case.
            expected: Counter value read at the start of the allocation.
            new_value: New high-water mark.
            tenant: Tenant context for isolation.

        Returns:
            True if exactly one row was updated, False if the counter moved.
        """
        result = await self.session.execute(
            update(Case)
            .where(
                Case.id == case_id,
                Case.tenant_id == tenant.tenant_id,
                Case.current_bates_number == expected,
            )
            .values(current_bates_number=new_value, updated_at=utcnow())
        )
        return result.rowcount == 1

    async def update_bates_prefix(
        self, case_id: uuid.UUID, bates_prefix: str | None, tenant: TenantContext
    ) -> Case | None:
        """Set or clear the case's Bates prefix.

        Args:
            case_id: UUID of the case.
            bates_prefix: New prefix, or None to disable numbering.
            tenant: Tenant context for isolation.

        Returns:
            Updated Case or None if not found.
        """
        case = await self.get_for_update(case_id, tenant)
        if case is None:
            return None
        case.bates_prefix = bates_prefix
        await self.session.flush()
        await self.session.refresh(case)
        return case


class DocumentRepository(BaseRepository, IDocumentRepository):
    """Repository for Document records."""

    async def get_by_id(self, document_id: uuid.UUID, tenant: TenantContext) -> Document | None:
        result = await self.session.execute(
            select(Document).where(Document.id == document_id, Document.tenant_id == tenant.tenant_id)
        )
        return result.scalar_one_or_none()

    async def get_many(self, document_ids: list[uuid.UUID], tenant: TenantContext) -> list[Document]:
        """Fetch every existing document among the given ids.

        Args:
            document_ids: Ids to resolve. Missing ids are simply absent.
            tenant: Tenant context for isolation.

        Returns:
            Documents found, in no particular order.
        """
        if not document_ids:
            return []
        result = await self.session.execute(
            select(Document).where(Document.id.in_(document_ids), Document.tenant_id == tenant.tenant_id)
        )
        return list(result.scalars().all())

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
    ) -> Document:
        """Create a document record.

        Returns:
            The newly created Document.
        """
        document = Document(
            tenant_id=tenant.tenant_id,
            case_id=case_id,
            name=name,
            original_name=original_name,
            storage_path=storage_path,
            file_size=file_size,
            mime_type=mime_type,
            page_count=page_count,
            bates_start=bates_start,
            bates_end=bates_end,
            description=description,
            category=category,
            tags=tags or None,
            status="draft",
            uploaded_by_id=tenant.user_id,
        )
        self.session.add(document)
        await self.session.flush()
        await self.session.refresh(document)
        return document


class ProductionSetRepository(BaseRepository, IProductionSetRepository):
    """Repository for ProductionSet records."""

    async def get_by_id(self, production_set_id: uuid.UUID, tenant: TenantContext) -> ProductionSet | None:
        result = await self.session.execute(
            select(ProductionSet).where(
                ProductionSet.id == production_set_id,
                ProductionSet.tenant_id == tenant.tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_for_update(
        self, production_set_id: uuid.UUID, tenant: TenantContext
    ) -> ProductionSet | None:
        """Fetch a production set and lock its row until the transaction ends."""
        result = await self.session.execute(
            select(ProductionSet)
            .where(
                ProductionSet.id == production_set_id,
                ProductionSet.tenant_id == tenant.tenant_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

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
    ) -> ProductionSet:
        """Create an empty production set with its counter at 0.

        Returns:
            The newly created ProductionSet.
        """
        production_set = ProductionSet(
            tenant_id=tenant.tenant_id,
            case_id=case_id,
            name=name,
            bates_prefix=bates_prefix,
            description=description,
            produced_date=produced_date,
            produced_to=produced_to,
            notes=notes,
            current_bates_number=0,
        )
        self.session.add(production_set)
        await self.session.flush()
        await self.session.refresh(production_set)
        return production_set

    async def advance_bates_counter(
        self,
        production_set_id: uuid.UUID,
        expected: int,
        new_value: int,
        bates_prefix: str,
        bates_start: str,
        bates_end: str,
        tenant: TenantContext,
    ) -> bool:
        """Move the production counter and record the set's label range.

        Returns:
            True if exactly one row was updated, False if the counter moved.
        """
        result = await self.session.execute(
            update(ProductionSet)
            .where(
                ProductionSet.id == production_set_id,
                ProductionSet.tenant_id == tenant.tenant_id,
                ProductionSet.current_bates_number == expected,
            )
            .values(
                current_bates_number=new_value,
                bates_prefix=bates_prefix,
                bates_start=bates_start,
                bates_end=bates_end,
                updated_at=utcnow(),
            )
        )
        return result.rowcount == 1


class ProductionDocumentRepository(BaseRepository, IProductionDocumentRepository):
    """Repository for ProductionDocument entries."""

    async def get_by_id(
        self, entry_id: uuid.UUID, production_set_id: uuid.UUID, tenant: TenantContext
    ) -> ProductionDocument | None:
        result = await self.session.execute(
            select(ProductionDocument).where(
                ProductionDocument.id == entry_id,
                ProductionDocument.production_set_id == production_set_id,
                ProductionDocument.tenant_id == tenant.tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def create_many(
        self,
        production_set_id: uuid.UUID,
        entries: list[tuple[uuid.UUID, str | None, int | None]],
        tenant: TenantContext,
    ) -> list[ProductionDocument]:
        """Insert one entry per (document_id, bates_number, bates_sequence).

        Args:
            production_set_id: Target production set.
            entries: Tuples in insertion order.
            tenant: Tenant context.

        Returns:
            Created entries in the same order.
        """
        batch_time = utcnow()
        created = [
            ProductionDocument(
                tenant_id=tenant.tenant_id,
                production_set_id=production_set_id,
                document_id=document_id,
                bates_number=bates_number,
                bates_sequence=bates_sequence,
                batch_position=position,
                is_privileged=False,
                created_at=batch_time,
                updated_at=batch_time,
            )
            for position, (document_id, bates_number, bates_sequence) in enumerate(entries)
        ]
        self.session.add_all(created)
        await self.session.flush()
        return created

    async def update_privilege(
        self,
        entry_id: uuid.UUID,
        production_set_id: uuid.UUID,
        is_privileged: bool,
        privilege_reason: str | None,
        tenant: TenantContext,
    ) -> ProductionDocument | None:
        """Update the privilege fields of an entry.

        Returns:
            Updated entry or None if not found in the production set.
        """
        entry = await self.get_by_id(entry_id, production_set_id, tenant)
        if entry is None:
            return None
        entry.is_privileged = is_privileged
        entry.privilege_reason = privilege_reason
        await self.session.flush()
        await self.session.refresh(entry)
        return entry

    async def list_bates_labels(self, production_set_id: uuid.UUID, tenant: TenantContext) -> list[str]:
        """List every non-null Bates label issued in a production set."""
        result = await self.session.execute(
            select(ProductionDocument.bates_number).where(
                ProductionDocument.production_set_id == production_set_id,
                ProductionDocument.tenant_id == tenant.tenant_id,
                ProductionDocument.bates_number.is_not(None),
            )
        )
        return list(result.scalars().all())

    async def list_with_documents(
        self,
        production_set_id: uuid.UUID,
        tenant: TenantContext,
        privileged_only: bool = False,
    ) -> list[tuple[ProductionDocument, Document]]:
        """List entries joined with their documents in Bates order.

        Args:
            production_set_id: Production set to list.
            tenant: Tenant context.
            privileged_only: Restrict to entries flagged privileged.

        Returns:
            (entry, document) pairs ordered by Bates sequence. Unnumbered entries
            come last, in the order they were added.
        """
        statement = (
            select(ProductionDocument, Document)
            .join(Document, Document.id == ProductionDocument.document_id)
            .where(
                ProductionDocument.production_set_id == production_set_id,
                ProductionDocument.tenant_id == tenant.tenant_id,
            )
            .order_by(
                ProductionDocument.bates_sequence.asc().nulls_last(),
                ProductionDocument.created_at.asc(),
                ProductionDocument.batch_position.asc(),
            )
        )
        if privileged_only:
            statement = statement.where(ProductionDocument.is_privileged.is_(True))
        result = await self.session.execute(statement)
        return [(entry, document) for entry, document in result.all()]


class PrivilegeLogEntryRepository(BaseRepository, IPrivilegeLogEntryRepository):
    """Repository for supplemental PrivilegeLogEntry records."""

    async def list_by_document_ids(
        self, document_ids: list[uuid.UUID], tenant: TenantContext
    ) -> list[PrivilegeLogEntry]:
        if not document_ids:
            return []
        result = await self.session.execute(
            select(PrivilegeLogEntry).where(
                PrivilegeLogEntry.document_id.in_(document_ids),
                PrivilegeLogEntry.tenant_id == tenant.tenant_id,
            )
        )
        return list(result.scalars().all())

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
    ) -> PrivilegeLogEntry:
        """Create or replace the log metadata recorded for a document.

        Returns:
            The stored PrivilegeLogEntry.
        """
        result = await self.session.execute(
            select(PrivilegeLogEntry).where(
                PrivilegeLogEntry.document_id == document_id,
                PrivilegeLogEntry.tenant_id == tenant.tenant_id,
            )
        )
        entry = result.scalar_one_or_none()
        if entry is None:
            entry = PrivilegeLogEntry(tenant_id=tenant.tenant_id, document_id=document_id)
            self.session.add(entry)
        entry.case_id = case_id
        entry.document_date = document_date
        entry.author = author
        entry.recipients = recipients
        entry.privilege_type = privilege_type
        entry.basis = basis
        entry.description = description
        await self.session.flush()
        await self.session.refresh(entry)
        return entry
