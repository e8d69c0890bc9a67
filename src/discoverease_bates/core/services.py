"""Business logic services for discoverease-bates.

Services contain all domain logic. They:
  - Accept dependencies via constructor injection (repositories, estimators)
  - Orchestrate repository calls inside the caller's transaction
  - Raise domain errors from discoverease_bates.errors
  - Are framework-agnostic (no FastAPI, no direct DB access)

Allocating operations never commit on their own. Any error, including the
allocation timeout, propagates so the request transaction rolls back and no
counter moves without its record, or the reverse.
"""

import asyncio
import enum
import uuid
from collections.abc import Awaitable
from dataclasses import dataclass
from datetime import datetime
from typing import TypeVar

from discoverease_bates.adapters.bates_allocator import (
    allocate,
    format_bates_label,
    parse_bates_label,
    validate_prefix,
)
from discoverease_bates.adapters.privilege_log_renderer import PrivilegeLogRow, build_row, render_csv
from discoverease_bates.adapters.production_export import (
    DownloadInfo,
    build_manifest_csv,
    compute_download_info,
)
from discoverease_bates.auth import TenantContext
from discoverease_bates.core.interfaces import (
    ICaseRepository,
    IDocumentRepository,
    IPageCountEstimator,
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
from discoverease_bates.errors import (
    AllocationTimeoutError,
    ConflictError,
    ExportNotImplementedError,
    InvalidArgumentError,
    NotFoundError,
)
from discoverease_bates.observability import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def run_with_timeout(operation: Awaitable[T], timeout_seconds: float, operation_name: str) -> T:
    """Await an allocating operation within a time bound.

    Raises:
        AllocationTimeoutError: If the operation does not finish in time.
    """
    try:
        async with asyncio.timeout(timeout_seconds):
            return await operation
    except TimeoutError as exc:
        logger.error("Allocation timed out", operation=operation_name, timeout_seconds=timeout_seconds)
        raise AllocationTimeoutError(
            f"{operation_name} did not complete within {timeout_seconds}s and was rolled back"
        ) from exc


class CaseBatesService:
    """Configures upload-time Bates numbering on a case.

    Args:
        case_repository: Repository implementing ICaseRepository.
    """

    def __init__(self, case_repository: ICaseRepository) -> None:
        self._case_repository = case_repository

    async def configure_prefix(
        self, case_id: uuid.UUID, bates_prefix: str | None, tenant: TenantContext
    ) -> Case:
        """Enable, change or disable Bates numbering for a case.

        The upload counter is never reset or lowered, so ranges issued under
        an earlier prefix keep their place in the sequence.

        Args:
            case_id: Case to configure.
            bates_prefix: New prefix, or None to disable numbering.
            tenant: Tenant context.

        Returns:
            The updated Case.

        Raises:
            InvalidArgumentError: If the prefix is malformed.
            NotFoundError: If the case does not exist.
        """
        if bates_prefix is not None:
            validate_prefix(bates_prefix)

        case = await self._case_repository.update_bates_prefix(case_id, bates_prefix, tenant)
        if case is None:
            raise NotFoundError(f"Case {case_id} not found")

        logger.info(
            "Configured case Bates prefix",
            case_id=str(case_id),
            bates_prefix=bates_prefix,
            current_bates_number=case.current_bates_number,
            tenant_id=str(tenant.tenant_id),
        )
        return case


class DocumentIntakeService:
    """Stamps upload-time Bates ranges onto newly uploaded documents.

    The blob itself is already stored by the caller; this service records the
    document and, when requested, allocates a range sized to its estimated
    page count from the case's upload counter.

    Args:
        case_repository: Repository implementing ICaseRepository.
        document_repository: Repository implementing IDocumentRepository.
        page_estimator: Estimator deciding how many numbers an upload consumes.
        allocation_timeout_seconds: Upper bound for the allocation transaction.
    """

    def __init__(
        self,
        case_repository: ICaseRepository,
        document_repository: IDocumentRepository,
        page_estimator: IPageCountEstimator,
        allocation_timeout_seconds: float = 10.0,
    ) -> None:
        self._case_repository = case_repository
        self._document_repository = document_repository
        self._page_estimator = page_estimator
        self._allocation_timeout_seconds = allocation_timeout_seconds

    async def intake(
        self,
        case_id: uuid.UUID,
        name: str,
        storage_path: str,
        tenant: TenantContext,
        file_size: int | None = None,
        mime_type: str | None = None,
        auto_bates: bool = False,
        original_name: str | None = None,
        description: str | None = None,
        category: str | None = None,
        tags: list[str] | None = None,
        content: bytes | None = None,
    ) -> Document:
        """Record an uploaded document, allocating its Bates range if asked.

        No range is assigned when auto_bates is false or the case has no
        prefix. Otherwise the case counter advances by the estimated page
        count and the document receives the matching start/end labels.

        Args:
            case_id: Owning case.
            name: Display name of the document.
            storage_path: Blob-store key the caller wrote the file to.
            tenant: Tenant context.
            file_size: Size in bytes, used for page estimation.
            mime_type: Content type, used for page estimation.
            auto_bates: Caller's explicit request for automatic numbering.
            original_name: Uploaded filename, defaults to name.
            description: Optional description.
            category: Optional category.
            tags: Optional tags.
            content: File bytes, when available, for exact page counting.

        Returns:
            The created Document.

        Raises:
            NotFoundError: If the case does not exist.
            ConflictError: If the case counter moved during allocation.
            AllocationTimeoutError: If allocation exceeded its time bound.
        """
        return await run_with_timeout(
            self._intake(
                case_id=case_id,
                name=name,
                storage_path=storage_path,
                tenant=tenant,
                file_size=file_size,
                mime_type=mime_type,
                auto_bates=auto_bates,
                original_name=original_name,
                description=description,
                category=category,
                tags=tags,
                content=content,
            ),
            self._allocation_timeout_seconds,
            "document_intake",
        )

    async def _intake(
        self,
        case_id: uuid.UUID,
        name: str,
        storage_path: str,
        tenant: TenantContext,
        file_size: int | None,
        mime_type: str | None,
        auto_bates: bool,
        original_name: str | None,
        description: str | None,
        category: str | None,
        tags: list[str] | None,
        content: bytes | None,
    ) -> Document:
        case = await self._case_repository.get_for_update(case_id, tenant)
        if case is None:
            raise NotFoundError(f"Case {case_id} not found")

        bates_start: str | None = None
        bates_end: str | None = None
        page_count: int | None = None

        if auto_bates and case.bates_prefix:
            page_count = self._page_estimator.estimate(file_size, mime_type, content)
            current = case.current_bates_number or 0
            allocation = allocate(current, case.bates_prefix, page_count)

            advanced = await self._case_repository.advance_bates_counter(
                case_id, expected=current, new_value=allocation.high_water_mark, tenant=tenant
            )
            if not advanced:
                raise ConflictError(f"Bates counter for case {case_id} changed during allocation; retry the upload")

            bates_start, bates_end = allocation.start_label, allocation.end_label
            logger.info(
                "Allocated intake Bates range",
                case_id=str(case_id),
                bates_start=bates_start,
                bates_end=bates_end,
                page_count=page_count,
                tenant_id=str(tenant.tenant_id),
            )

        return await self._document_repository.create(
            case_id=case_id,
            name=name,
            original_name=original_name or name,
            storage_path=storage_path,
            tenant=tenant,
            file_size=file_size,
            mime_type=mime_type,
            page_count=page_count,
            bates_start=bates_start,
            bates_end=bates_end,
            description=description,
            category=category,
            tags=tags,
        )


class ProductionSetService:
    """Manages production sets and their production-scoped Bates numbers.

    Production numbers come from the set's own counter and are unrelated to
    the ranges documents received at intake.

    Args:
        case_repository: Repository implementing ICaseRepository.
        production_set_repository: Repository implementing IProductionSetRepository.
        production_document_repository: Repository implementing IProductionDocumentRepository.
        document_repository: Repository implementing IDocumentRepository.
        allocation_timeout_seconds: Upper bound for the batch-add transaction.
        max_download_bytes: Largest single production archive.
        download_warning_bytes: Archive size that triggers a warning.
    """

    def __init__(
        self,
        case_repository: ICaseRepository,
        production_set_repository: IProductionSetRepository,
        production_document_repository: IProductionDocumentRepository,
        document_repository: IDocumentRepository,
        allocation_timeout_seconds: float = 10.0,
        max_download_bytes: int = 2 * 1024 * 1024 * 1024,
        download_warning_bytes: int = 500 * 1024 * 1024,
    ) -> None:
        self._case_repository = case_repository
        self._production_set_repository = production_set_repository
        self._production_document_repository = production_document_repository
        self._document_repository = document_repository
        self._allocation_timeout_seconds = allocation_timeout_seconds
        self._max_download_bytes = max_download_bytes
        self._download_warning_bytes = download_warning_bytes

    async def create_production_set(
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
        """Create an empty production set for a case.

        Raises:
            InvalidArgumentError: If the prefix is malformed.
            NotFoundError: If the case does not exist.
        """
        if bates_prefix is not None:
            validate_prefix(bates_prefix)

        case = await self._case_repository.get_by_id(case_id, tenant)
        if case is None:
            raise NotFoundError(f"Case {case_id} not found")

        production_set = await self._production_set_repository.create(
            case_id=case_id,
            name=name,
            tenant=tenant,
            bates_prefix=bates_prefix,
            description=description,
            produced_date=produced_date,
            produced_to=produced_to,
            notes=notes,
        )
        logger.info(
            "Production set created",
            production_set_id=str(production_set.id),
            case_id=str(case_id),
            bates_prefix=bates_prefix,
            tenant_id=str(tenant.tenant_id),
        )
        return production_set

    async def get_production_set(self, production_set_id: uuid.UUID, tenant: TenantContext) -> ProductionSet:
        """Retrieve a production set.

        Raises:
            NotFoundError: If no production set exists with the given ID.
        """
        production_set = await self._production_set_repository.get_by_id(production_set_id, tenant)
        if production_set is None:
            raise NotFoundError(f"Production set {production_set_id} not found")
        return production_set

    async def list_production_documents(
        self, production_set_id: uuid.UUID, tenant: TenantContext
    ) -> list[tuple[ProductionDocument, Document]]:
        """List a production's entries with their documents in Bates order."""
        await self.get_production_set(production_set_id, tenant)
        return await self._production_document_repository.list_with_documents(production_set_id, tenant)

    async def add_documents(
        self,
        production_set_id: uuid.UUID,
        document_ids: list[uuid.UUID],
        tenant: TenantContext,
        bates_prefix: str | None = None,
    ) -> list[ProductionDocument]:
        """Add documents to a production set, numbering them in input order.

        All-or-nothing: if any document id does not resolve to a document of
        the set's case, nothing is inserted and the counter does not move.

        Args:
            production_set_id: Target production set.
            document_ids: Documents to add, in production order.
            tenant: Tenant context.
            bates_prefix: Prefix for production numbers; None leaves the new
                entries unnumbered.

        Returns:
            The created ProductionDocument entries, in input order.

        Raises:
            InvalidArgumentError: Empty or duplicated ids, malformed prefix, or
                a prefix different from the one the set already uses.
            NotFoundError: Unknown production set or document.
            ConflictError: If the production counter moved during allocation.
            AllocationTimeoutError: If the batch exceeded its time bound.
        """
        return await run_with_timeout(
            self._add_documents(production_set_id, document_ids, tenant, bates_prefix),
            self._allocation_timeout_seconds,
            "production_add_documents",
        )

    async def _add_documents(
        self,
        production_set_id: uuid.UUID,
        document_ids: list[uuid.UUID],
        tenant: TenantContext,
        bates_prefix: str | None,
    ) -> list[ProductionDocument]:
        if not document_ids:
            raise InvalidArgumentError("At least one document id is required")
        if len(set(document_ids)) != len(document_ids):
            raise InvalidArgumentError("Document ids must not repeat within one batch")

        production_set = await self._production_set_repository.get_for_update(production_set_id, tenant)
        if production_set is None:
            raise NotFoundError(f"Production set {production_set_id} not found")

        documents = await self._document_repository.get_many(document_ids, tenant)
        resolved = {document.id for document in documents if document.case_id == production_set.case_id}
        missing = [str(document_id) for document_id in document_ids if document_id not in resolved]
        if missing:
            raise NotFoundError(f"Documents not found: {', '.join(missing)}")

        if bates_prefix is None:
            entries: list[tuple[uuid.UUID, str | None, int | None]] = [
                (document_id, None, None) for document_id in document_ids
            ]
        else:
            if production_set.bates_prefix:
                if production_set.bates_prefix != bates_prefix:
                    raise InvalidArgumentError(
                        f"Production set {production_set_id} is numbered with prefix "
                        f"{production_set.bates_prefix!r}, not {bates_prefix!r}"
                    )
            else:
                validate_prefix(bates_prefix)

            stored = production_set.current_bates_number or 0
            current = await self._current_high_water_mark(production_set, tenant)
            allocation = allocate(current, bates_prefix, len(document_ids))

            advanced = await self._production_set_repository.advance_bates_counter(
                production_set_id,
                expected=stored,
                new_value=allocation.high_water_mark,
                bates_prefix=bates_prefix,
                bates_start=production_set.bates_start or allocation.start_label,
                bates_end=allocation.end_label,
                tenant=tenant,
            )
            if not advanced:
                raise ConflictError(
                    f"Bates counter for production set {production_set_id} changed during allocation; retry"
                )

            entries = [
                (document_id, format_bates_label(bates_prefix, number), number)
                for document_id, number in zip(
                    document_ids, range(allocation.start_number, allocation.end_number + 1)
                )
            ]

        created = await self._production_document_repository.create_many(production_set_id, entries, tenant)
        logger.info(
            "Added documents to production set",
            production_set_id=str(production_set_id),
            count=len(created),
            bates_start=entries[0][1],
            bates_end=entries[-1][1],
            tenant_id=str(tenant.tenant_id),
        )
        return created

    async def _current_high_water_mark(self, production_set: ProductionSet, tenant: TenantContext) -> int:
        """Return the set's counter, seeding it from labels for legacy sets."""
        if production_set.current_bates_number:
            return production_set.current_bates_number

        highest = 0
        for label in await self._production_document_repository.list_bates_labels(production_set.id, tenant):
            try:
                _, number = parse_bates_label(label)
            except InvalidArgumentError:
                logger.warning(
                    "Skipping unparseable production Bates label",
                    production_set_id=str(production_set.id),
                    label=label,
                )
                continue
            highest = max(highest, number)
        return highest

    async def mark_privileged(
        self,
        production_set_id: uuid.UUID,
        entry_id: uuid.UUID,
        tenant: TenantContext,
        privilege_reason: str | None = None,
    ) -> ProductionDocument:
        """Flag a production entry as privileged.

        Raises:
            NotFoundError: If the entry is not in the production set.
        """
        entry = await self._production_document_repository.update_privilege(
            entry_id, production_set_id, True, privilege_reason, tenant
        )
        if entry is None:
            raise NotFoundError(f"Production entry {entry_id} not found in production set {production_set_id}")
        logger.info(
            "Production entry marked privileged",
            production_set_id=str(production_set_id),
            entry_id=str(entry_id),
            tenant_id=str(tenant.tenant_id),
        )
        return entry

    async def clear_privilege(
        self, production_set_id: uuid.UUID, entry_id: uuid.UUID, tenant: TenantContext
    ) -> ProductionDocument:
        """Remove the privilege flag and reason from a production entry.

        Raises:
            NotFoundError: If the entry is not in the production set.
        """
        entry = await self._production_document_repository.update_privilege(
            entry_id, production_set_id, False, None, tenant
        )
        if entry is None:
            raise NotFoundError(f"Production entry {entry_id} not found in production set {production_set_id}")
        return entry

    async def get_download_info(self, production_set_id: uuid.UUID, tenant: TenantContext) -> DownloadInfo:
        """Size the production's download archive."""
        entries = await self.list_production_documents(production_set_id, tenant)
        return compute_download_info(entries, self._max_download_bytes, self._download_warning_bytes)

    async def build_manifest(self, production_set_id: uuid.UUID, tenant: TenantContext) -> str:
        """Render the index.csv manifest of produced documents."""
        entries = await self.list_production_documents(production_set_id, tenant)
        return build_manifest_csv(entries)


class PrivilegeLogFormat(str, enum.Enum):
    """Privilege log export formats."""

    JSON = "json"
    CSV = "csv"
    PDF = "pdf"

    @classmethod
    def parse(cls, value: str | None) -> "PrivilegeLogFormat":
        """Parse a format string, defaulting to JSON.

        Raises:
            InvalidArgumentError: If the format is not supported.
        """
        if not value:
            return cls.JSON
        try:
            return cls(value.lower())
        except ValueError as exc:
            supported = ", ".join(member.value for member in cls)
            raise InvalidArgumentError(f"Unsupported privilege log format {value!r}; use one of {supported}") from exc


@dataclass
class PrivilegeLogReport:
    """A generated privilege log.

    Attributes:
        production_set: The production set the log covers.
        rows: Log rows in Bates order.
        format: The rendered format.
        content: Rendered body for file formats, None for JSON.
        filename: Download filename for file formats.
        media_type: Content type of the rendered body.
    """

    production_set: ProductionSet
    rows: list[PrivilegeLogRow]
    format: PrivilegeLogFormat
    content: str | None = None
    filename: str | None = None
    media_type: str = "application/json"


class PrivilegeLogService:
    """Generates privilege logs for production sets.

    Read-only: generation never writes to the store.

    Args:
        production_set_repository: Repository implementing IProductionSetRepository.
        production_document_repository: Repository implementing IProductionDocumentRepository.
        privilege_log_entry_repository: Repository implementing IPrivilegeLogEntryRepository.
        document_repository: Repository implementing IDocumentRepository.
    """

    def __init__(
        self,
        production_set_repository: IProductionSetRepository,
        production_document_repository: IProductionDocumentRepository,
        privilege_log_entry_repository: IPrivilegeLogEntryRepository,
        document_repository: IDocumentRepository,
    ) -> None:
        self._production_set_repository = production_set_repository
        self._production_document_repository = production_document_repository
        self._privilege_log_entry_repository = privilege_log_entry_repository
        self._document_repository = document_repository

    async def generate(
        self,
        production_set_id: uuid.UUID,
        tenant: TenantContext,
        format: str | None = "json",
    ) -> PrivilegeLogReport:
        """Build the privilege log of a production set.

        Args:
            production_set_id: Production set to report on.
            tenant: Tenant context.
            format: "json" (default), "csv" or "pdf".

        Returns:
            PrivilegeLogReport; content is set for CSV.

        Raises:
            InvalidArgumentError: If the format is unsupported.
            NotFoundError: If the production set does not exist.
            ExportNotImplementedError: If PDF output is requested.
        """
        log_format = PrivilegeLogFormat.parse(format)

        production_set = await self._production_set_repository.get_by_id(production_set_id, tenant)
        if production_set is None:
            raise NotFoundError(f"Production set {production_set_id} not found")

        if log_format is PrivilegeLogFormat.PDF:
            raise ExportNotImplementedError("PDF privilege logs are not available yet; use csv or json")

        privileged = await self._production_document_repository.list_with_documents(
            production_set_id, tenant, privileged_only=True
        )
        log_entries = await self._privilege_log_entry_repository.list_by_document_ids(
            [entry.document_id for entry, _ in privileged], tenant
        )
        log_by_document = {log_entry.document_id: log_entry for log_entry in log_entries}

        rows = [build_row(entry, document, log_by_document.get(entry.document_id)) for entry, document in privileged]

        logger.info(
            "Generated privilege log",
            production_set_id=str(production_set_id),
            format=log_format.value,
            row_count=len(rows),
            tenant_id=str(tenant.tenant_id),
        )

        if log_format is PrivilegeLogFormat.CSV:
            return PrivilegeLogReport(
                production_set=production_set,
                rows=rows,
                format=log_format,
                content=render_csv(rows),
                filename=f"privilege-log-{production_set_id}.csv",
                media_type="text/csv",
            )
        return PrivilegeLogReport(production_set=production_set, rows=rows, format=log_format)

    async def upsert_entry(
        self,
        document_id: uuid.UUID,
        tenant: TenantContext,
        document_date: datetime | None = None,
        author: str | None = None,
        recipients: list[str] | None = None,
        privilege_type: str | None = None,
        basis: str | None = None,
        description: str | None = None,
    ) -> PrivilegeLogEntry:
        """Record the supplemental privilege log metadata for a document.

        Raises:
            NotFoundError: If the document does not exist.
        """
        document = await self._document_repository.get_by_id(document_id, tenant)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found")

        entry = await self._privilege_log_entry_repository.upsert(
            document_id=document_id,
            case_id=document.case_id,
            tenant=tenant,
            document_date=document_date,
            author=author,
            recipients=recipients,
            privilege_type=privilege_type,
            basis=basis,
            description=description,
        )
        logger.info(
            "Privilege log entry recorded",
            document_id=str(document_id),
            privilege_type=privilege_type,
            tenant_id=str(tenant.tenant_id),
        )
        return entry
