"""Integration tests for Bates allocation against a real database.

Each test drives services through the SQLAlchemy repositories with one
transaction per operation, the way a request does.
"""

import asyncio
import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from discoverease_bates.adapters.page_estimator import FileSizePageEstimator
from discoverease_bates.adapters.repositories import (
    CaseRepository,
    DocumentRepository,
    ProductionDocumentRepository,
    ProductionSetRepository,
)
from discoverease_bates.auth import TenantContext
from discoverease_bates.core.models import Case, Document, ProductionDocument, ProductionSet
from discoverease_bates.core.services import DocumentIntakeService, ProductionSetService
from discoverease_bates.errors import AllocationTimeoutError, NotFoundError


def intake_service(session: AsyncSession, timeout: float = 10.0) -> DocumentIntakeService:
    return DocumentIntakeService(
        case_repository=CaseRepository(session),
        document_repository=DocumentRepository(session),
        page_estimator=FileSizePageEstimator(),
        allocation_timeout_seconds=timeout,
    )


def production_service(session: AsyncSession) -> ProductionSetService:
    return ProductionSetService(
        case_repository=CaseRepository(session),
        production_set_repository=ProductionSetRepository(session),
        production_document_repository=ProductionDocumentRepository(session),
        document_repository=DocumentRepository(session),
    )


async def intake(
    session_factory: async_sessionmaker[AsyncSession],
    tenant: TenantContext,
    case_id: uuid.UUID,
    file_size: int,
    name: str = "upload.pdf",
) -> Document:
    async with session_factory() as session, session.begin():
        return await intake_service(session).intake(
            case_id, name, f"blobs/{name}", tenant, file_size=file_size, auto_bates=True
        )


async def load(session_factory: async_sessionmaker[AsyncSession], model: type, row_id: uuid.UUID):
    async with session_factory() as session:
        return await session.get(model, row_id)


class TestIntakeAllocation:
    """Upload-time numbering from the case counter."""

    @pytest.mark.asyncio
    async def test_sequential_uploads_get_contiguous_ranges(
        self, session_factory: async_sessionmaker[AsyncSession], tenant: TenantContext, seed_case
    ) -> None:
        case = await seed_case(bates_prefix="ABC")

        first = await intake(session_factory, tenant, case.id, 150_000, "first.pdf")
        second = await intake(session_factory, tenant, case.id, 40_000, "second.pdf")

        assert (first.bates_start, first.bates_end) == ("ABC-000001", "ABC-000003")
        assert (second.bates_start, second.bates_end) == ("ABC-000004", "ABC-000004")
        stored = await load(session_factory, Case, case.id)
        assert stored.current_bates_number == 4

    @pytest.mark.asyncio
    async def test_ranges_never_overlap(
        self, session_factory: async_sessionmaker[AsyncSession], tenant: TenantContext, seed_case
    ) -> None:
        case = await seed_case(bates_prefix="ABC")
        sizes = [10, 250_000, 99_999, 100_000, 1_000_000, 50_000]

        documents = [await intake(session_factory, tenant, case.id, size, f"d{i}.pdf") for i, size in enumerate(sizes)]

        ranges = [(int(doc.bates_start[-6:]), int(doc.bates_end[-6:])) for doc in documents]
        for (_, previous_end), (next_start, _) in zip(ranges, ranges[1:]):
            assert next_start == previous_end + 1
        stored = await load(session_factory, Case, case.id)
        assert stored.current_bates_number == ranges[-1][1]

    @pytest.mark.asyncio
    async def test_case_prefix_is_used_verbatim(
        self, session_factory: async_sessionmaker[AsyncSession], tenant: TenantContext, seed_case
    ) -> None:
        case = await seed_case(bates_prefix="SMITH CO")

        document = await intake(session_factory, tenant, case.id, 150_000)

        assert (document.bates_start, document.bates_end) == ("SMITH CO-000001", "SMITH CO-000003")
        stored = await load(session_factory, Case, case.id)
        assert stored.current_bates_number == 3

    @pytest.mark.asyncio
    async def test_stale_counter_is_not_overwritten(
        self, session_factory: async_sessionmaker[AsyncSession], tenant: TenantContext, seed_case
    ) -> None:
        case = await seed_case(bates_prefix="ABC", current_bates_number=5)

        async with session_factory() as session, session.begin():
            advanced = await CaseRepository(session).advance_bates_counter(
                case.id, expected=0, new_value=3, tenant=tenant
            )

        assert advanced is False
        stored = await load(session_factory, Case, case.id)
        assert stored.current_bates_number == 5

    @pytest.mark.asyncio
    async def test_timed_out_intake_rolls_back_counter(
        self, session_factory: async_sessionmaker[AsyncSession], tenant: TenantContext, seed_case
    ) -> None:
        case = await seed_case(bates_prefix="ABC")

        class SlowDocumentRepository(DocumentRepository):
            async def create(self, *args: object, **kwargs: object) -> Document:
                await asyncio.sleep(1)
                return await super().create(*args, **kwargs)

        with pytest.raises(AllocationTimeoutError):
            async with session_factory() as session, session.begin():
                service = DocumentIntakeService(
                    case_repository=CaseRepository(session),
                    document_repository=SlowDocumentRepository(session),
                    page_estimator=FileSizePageEstimator(),
                    allocation_timeout_seconds=0.05,
                )
                await service.intake(case.id, "slow.pdf", "blobs/slow.pdf", tenant, file_size=150_000, auto_bates=True)

        stored = await load(session_factory, Case, case.id)
        assert stored.current_bates_number == 0

    @pytest.mark.asyncio
    async def test_other_tenant_cannot_allocate(
        self, session_factory: async_sessionmaker[AsyncSession], tenant: TenantContext, seed_case
    ) -> None:
        case = await seed_case(bates_prefix="ABC")
        intruder = TenantContext(tenant_id=uuid.uuid4())

        with pytest.raises(NotFoundError):
            await intake(session_factory, intruder, case.id, 50_000)


class TestProductionAllocation:
    """Production-scoped numbering from the set counter."""

    @pytest.mark.asyncio
    async def test_batches_continue_the_set_sequence(
        self, session_factory: async_sessionmaker[AsyncSession], tenant: TenantContext, seed_case, seed_document
    ) -> None:
        case = await seed_case(bates_prefix="ABC")
        documents = [await seed_document(case.id, f"d{i}.pdf") for i in range(5)]
        async with session_factory() as session, session.begin():
            production_set = await production_service(session).create_production_set(
                case.id, "First Production", tenant
            )

        async with session_factory() as session, session.begin():
            first = await production_service(session).add_documents(
                production_set.id, [doc.id for doc in documents[:3]], tenant, bates_prefix="PROD"
            )
        async with session_factory() as session, session.begin():
            second = await production_service(session).add_documents(
                production_set.id, [doc.id for doc in documents[3:]], tenant, bates_prefix="PROD"
            )

        assert [entry.bates_number for entry in first] == ["PROD-000001", "PROD-000002", "PROD-000003"]
        assert [entry.bates_number for entry in second] == ["PROD-000004", "PROD-000005"]
        stored = await load(session_factory, ProductionSet, production_set.id)
        assert stored.bates_prefix == "PROD"
        assert stored.bates_start == "PROD-000001"
        assert stored.bates_end == "PROD-000005"
        assert stored.current_bates_number == 5

    @pytest.mark.asyncio
    async def test_production_numbers_ignore_intake_ranges(
        self, session_factory: async_sessionmaker[AsyncSession], tenant: TenantContext, seed_case, seed_document
    ) -> None:
        case = await seed_case(bates_prefix="ABC", current_bates_number=40)
        document = await seed_document(case.id, bates_start="ABC-000038", bates_end="ABC-000040")
        async with session_factory() as session, session.begin():
            service = production_service(session)
            production_set = await service.create_production_set(case.id, "Second Production", tenant)
            created = await service.add_documents(production_set.id, [document.id], tenant, bates_prefix="ABC")

        assert created[0].bates_number == "ABC-000001"
        stored_case = await load(session_factory, Case, case.id)
        assert stored_case.current_bates_number == 40

    @pytest.mark.asyncio
    async def test_missing_document_fails_whole_batch(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        tenant: TenantContext,
        seed_case,
        seed_document,
        count_production_entries,
    ) -> None:
        case = await seed_case()
        d1 = await seed_document(case.id, "d1.pdf")
        d3 = await seed_document(case.id, "d3.pdf")
        async with session_factory() as session, session.begin():
            production_set = await production_service(session).create_production_set(case.id, "P", tenant)

        with pytest.raises(NotFoundError):
            async with session_factory() as session, session.begin():
                await production_service(session).add_documents(
                    production_set.id, [d1.id, uuid.uuid4(), d3.id], tenant, bates_prefix="PROD"
                )

        assert await count_production_entries(production_set.id) == 0
        stored = await load(session_factory, ProductionSet, production_set.id)
        assert stored.current_bates_number == 0
        assert stored.bates_start is None

    @pytest.mark.asyncio
    async def test_unnumbered_entries_keep_request_order(
        self, session_factory: async_sessionmaker[AsyncSession], tenant: TenantContext, seed_case, seed_document
    ) -> None:
        case = await seed_case()
        documents = [await seed_document(case.id, f"d{i}.pdf") for i in range(4)]
        requested = [documents[2], documents[0], documents[3], documents[1]]
        async with session_factory() as session, session.begin():
            production_set = await production_service(session).create_production_set(case.id, "Unnumbered", tenant)

        async with session_factory() as session, session.begin():
            await production_service(session).add_documents(production_set.id, [doc.id for doc in requested], tenant)
        async with session_factory() as session:
            listed = await production_service(session).list_production_documents(production_set.id, tenant)

        assert [entry.bates_number for entry, _ in listed] == [None] * 4
        assert [document.name for _, document in listed] == ["d2.pdf", "d0.pdf", "d3.pdf", "d1.pdf"]
        assert [entry.batch_position for entry, _ in listed] == [0, 1, 2, 3]
        assert len({entry.created_at for entry, _ in listed}) == 1

    @pytest.mark.asyncio
    async def test_legacy_set_continues_after_highest_label(
        self, session_factory: async_sessionmaker[AsyncSession], tenant: TenantContext, seed_case, seed_document
    ) -> None:
        case = await seed_case()
        old_docs = [await seed_document(case.id, f"old{i}.pdf") for i in range(2)]
        new_doc = await seed_document(case.id, "new.pdf")
        async with session_factory() as session, session.begin():
            production_set = ProductionSet(
                tenant_id=tenant.tenant_id, case_id=case.id, name="Legacy", bates_prefix="LEG", current_bates_number=0
            )
            session.add(production_set)
            await session.flush()
            session.add_all(
                [
                    ProductionDocument(
                        tenant_id=tenant.tenant_id,
                        production_set_id=production_set.id,
                        document_id=old_docs[0].id,
                        bates_number="LEG-000007",
                    ),
                    ProductionDocument(
                        tenant_id=tenant.tenant_id,
                        production_set_id=production_set.id,
                        document_id=old_docs[1].id,
                        bates_number="LEG-000012",
                    ),
                ]
            )

        async with session_factory() as session, session.begin():
            created = await production_service(session).add_documents(
                production_set.id, [new_doc.id], tenant, bates_prefix="LEG"
            )

        assert created[0].bates_number == "LEG-000013"
        stored = await load(session_factory, ProductionSet, production_set.id)
        assert stored.current_bates_number == 13
