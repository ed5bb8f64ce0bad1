"""
Engine and session factory.

WHAT: One async engine per process and a session per request.

HOW: Sessions keep loaded attributes after commit and never autoflush;
the DAOs flush explicitly and the services decide when to commit. The
timer registry and the invoice assembler commit inside the service so
they can retry once after losing a race.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from timebill.core.config import settings


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for a database URL.

    SQLite serialises writers, so it gets a busy timeout in place of pool
    sizing. Tests call this directly to open file-backed databases that
    behave like the deployed one.

    Args:
        url: SQLAlchemy async database URL
        echo: Log emitted SQL

    Returns:
        AsyncEngine
    """
    options: Dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
    if url.startswith("sqlite"):
        options["connect_args"] = {"timeout": settings.SQLITE_BUSY_TIMEOUT_SECONDS}
    else:
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )
    return create_async_engine(url, **options)


engine = build_engine(settings.async_database_url, echo=settings.DEBUG)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding a request-scoped session.

    Whatever the route leaves pending is committed after it returns; an
    exception rolls the transaction back and propagates to the handlers.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
