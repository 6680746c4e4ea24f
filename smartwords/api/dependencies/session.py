import logging
import typing

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession as SQLAlchemyAsyncSession

from smartwords.repository.database import async_db

logger = logging.getLogger(__name__)


async def get_async_session() -> typing.AsyncGenerator[SQLAlchemyAsyncSession, None]:
    """
    Dependency that provides a database session for each request.
    Each request gets its own session instance for better concurrency.
    """
    session = async_db.get_session()
    try:
        yield session
    except SQLAlchemyError:
        logger.exception("Database session error, rolling back")
        await session.rollback()
        raise
    except Exception:
        # Domain errors end up here too; they are rendered by the app's exception handlers
        await session.rollback()
        raise
    finally:
        await session.close()
