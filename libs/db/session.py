from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from libs.common.logging import get_logger
from libs.db.config import AsyncSessionLocal

logger = get_logger(__name__)


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields an async database session.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Unit of work scoped to one operation.

    Everything executed inside the block is committed together when it exits
    cleanly and rolled back as a whole when it raises.
    """
    try:
        yield db
        await db.commit()
    except BaseException:
        await db.rollback()
        logger.debug("Transaction rolled back")
        raise
