"""Database base classes and session management for discoverease-bates.

All tenant-scoped tables extend TenantModel which provides:
  - id: UUID primary key
  - tenant_id: UUID of the owning firm
  - created_at: datetime
  - updated_at: datetime

Each request gets one AsyncSession wrapped in a single transaction: commit on
success, rollback on any exception. Bates allocation relies on this to keep the
counter update and the record receiving the range in the same unit of work.
"""

import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

from sqlalchemy import DateTime, Uuid
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from discoverease_bates.observability import get_logger
from discoverease_bates.settings import Settings

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class TenantModel(Base):
    """Abstract base for tenant-scoped tables."""

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


def init_database(settings: Settings) -> async_sessionmaker[AsyncSession]:
    """Create the process-wide engine and session factory.

    Args:
        settings: Service settings carrying the database URL.

    Returns:
        The configured session factory.
    """
    global _engine, _session_factory
    _engine = create_async_engine(settings.database_url, echo=settings.database_echo, pool_pre_ping=True)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    logger.info("Database initialized", service=settings.service_name)
    return _session_factory


def is_initialized() -> bool:
    """Return True once init_database() has run."""
    return _session_factory is not None


async def dispose_database() -> None:
    """Dispose the engine on shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a request-scoped transactional session.

    Yields:
        AsyncSession inside an open transaction.

    Raises:
        RuntimeError: If init_database() has not been called.
    """
    if _session_factory is None:
        raise RuntimeError("Database not initialized; call init_database() at startup")
    async with _session_factory() as session:
        async with session.begin():
            yield session
