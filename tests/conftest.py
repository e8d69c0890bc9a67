"""Shared test fixtures for discoverease-bates."""

import uuid
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from discoverease_bates.auth import TenantContext, get_current_user
from discoverease_bates.core.models import Case, Document, ProductionDocument
from discoverease_bates.database import Base, get_db_session
from discoverease_bates.main import app


@pytest.fixture
def tenant() -> TenantContext:
    """Provide a test tenant context.

    Returns:
        TenantContext with fresh tenant and user UUIDs.
    """
    return TenantContext(tenant_id=uuid.uuid4(), user_id=uuid.uuid4())


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with the full schema created."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def _seed_case(
    session_factory: async_sessionmaker[AsyncSession],
    tenant: TenantContext,
    bates_prefix: str | None = "ABC",
    current_bates_number: int = 0,
) -> Case:
    """Insert and commit a case."""
    async with session_factory() as session, session.begin():
        case = Case(
            tenant_id=tenant.tenant_id,
            case_number="2026-CV-0001",
            name="Acme v. Globex",
            bates_prefix=bates_prefix,
            current_bates_number=current_bates_number,
        )
        session.add(case)
    return case


async def _seed_document(
    session_factory: async_sessionmaker[AsyncSession],
    tenant: TenantContext,
    case_id: uuid.UUID,
    name: str = "memo.pdf",
    file_size: int = 50_000,
    bates_start: str | None = None,
    bates_end: str | None = None,
    category: str | None = None,
) -> Document:
    """Insert and commit a document."""
    async with session_factory() as session, session.begin():
        document = Document(
            tenant_id=tenant.tenant_id,
            case_id=case_id,
            name=name,
            original_name=name,
            storage_path=f"{tenant.tenant_id}/{case_id}/{name}",
            file_size=file_size,
            mime_type="application/pdf",
            bates_start=bates_start,
            bates_end=bates_end,
            category=category,
            status="draft",
        )
        session.add(document)
    return document


async def _count_production_entries(
    session_factory: async_sessionmaker[AsyncSession], production_set_id: uuid.UUID
) -> int:
    """Count ProductionDocument rows of a production set."""
    async with session_factory() as session:
        result = await session.execute(
            select(func.count())
            .select_from(ProductionDocument)
            .where(ProductionDocument.production_set_id == production_set_id)
        )
        return result.scalar_one()


@pytest.fixture
def seed_case(session_factory: async_sessionmaker[AsyncSession], tenant: TenantContext):
    """Factory inserting a case for the test tenant."""

    async def factory(bates_prefix: str | None = "ABC", current_bates_number: int = 0) -> Case:
        return await _seed_case(session_factory, tenant, bates_prefix, current_bates_number)

    return factory


@pytest.fixture
def seed_document(session_factory: async_sessionmaker[AsyncSession], tenant: TenantContext):
    """Factory inserting a document for the test tenant."""

    async def factory(case_id: uuid.UUID, name: str = "memo.pdf", **fields: object) -> Document:
        return await _seed_document(session_factory, tenant, case_id, name, **fields)

    return factory


@pytest.fixture
def count_production_entries(session_factory: async_sessionmaker[AsyncSession]):
    """Callable counting the entries of a production set."""

    async def count(production_set_id: uuid.UUID) -> int:
        return await _count_production_entries(session_factory, production_set_id)

    return count


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession], tenant: TenantContext
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client with database and auth overrides applied."""

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            async with session.begin():
                yield session

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_current_user] = lambda: tenant
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as async_client:
        yield async_client
    app.dependency_overrides.clear()
