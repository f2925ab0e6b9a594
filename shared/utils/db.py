"""Database session management with async SQLAlchemy."""

from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator, Generic, TypeVar

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

T = TypeVar("T")

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_db(
    database_url: str,
    pool_size: int = 5,
    max_overflow: int = 10,
    echo: bool = False,
) -> async_sessionmaker[AsyncSession]:
    """Initialize the database engine and session factory.

    Args:
        database_url: Database URL (postgresql+asyncpg://... or sqlite+aiosqlite://...)
        pool_size: Number of connections to keep in pool
        max_overflow: Maximum overflow connections beyond pool_size
        echo: Whether to log SQL statements

    Returns:
        The configured session factory
    """
    global _engine, _session_factory

    engine_kwargs: dict = {"echo": echo, "pool_pre_ping": True}
    if not database_url.startswith("sqlite"):
        engine_kwargs.update(pool_size=pool_size, max_overflow=max_overflow)

    _engine = create_async_engine(database_url, **engine_kwargs)

    _session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return _session_factory


def get_engine() -> AsyncEngine:
    """Get the database engine."""
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory."""
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session as an async context manager.

    Usage:
        async with get_db_session() as session:
            result = await session.execute(query)
    """
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@dataclass
class TransactionResult(Generic[T]):
    """Outcome of a transactional scope: a value or the error that aborted it."""

    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, re-raising the captured error if there is one."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


async def run_in_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    operation: Callable[[AsyncSession], Awaitable[T]],
) -> TransactionResult[T]:
    """Run an operation in one all-or-nothing transaction.

    Commits when the operation (and the commit itself) succeeds. Any
    exception rolls the transaction back and is returned in the result
    rather than raised, so the caller decides what to surface.

    Args:
        session_factory: Factory producing the session for this transaction
        operation: Async callable receiving the session

    Returns:
        TransactionResult holding either the operation's value or its error
    """
    async with session_factory() as session:
        try:
            value = await operation(session)
            await session.commit()
        except Exception as exc:
            await session.rollback()
            return TransactionResult(error=exc)
        return TransactionResult(value=value)


async def close_db() -> None:
    """Close the database engine and all connections."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
