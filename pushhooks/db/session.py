"""Database session dependency for FastAPI routes."""

from collections.abc import AsyncGenerator

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from pushhooks.db import engine as _engine

logger = structlog.get_logger()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield one transaction for a request.

    A push task runs its whole pipeline inside this session, so the event
    row, notes, issue state changes and protected branch are committed
    together or not at all. A failed pipeline is rolled back and the error
    re-raised for the route to map.

    Raises:
        RuntimeError: If ``init_engine()`` has not run.
    """
    factory = _engine.async_session_factory
    if factory is None:
        msg = "Database session factory not initialized. Call init_engine() first."
        raise RuntimeError(msg)

    async with factory() as session:
        try:
            yield session
        except Exception as exc:
            await session.rollback()
            logger.warning("db_transaction_rolled_back", error_type=type(exc).__name__)
            raise
        await session.commit()
