import asyncio
import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shared.database.postgres import get_async_session_factory, get_session

# Import all models so SQLAlchemy's Base.metadata is populated.
# Required for Alembic autogenerate and create_all().
import app.models  # noqa: F401
from app.exceptions import InternalError, ServiceUnavailableError

logger = logging.getLogger(__name__)

_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_db(
    database_url: str,
    *,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_recycle: int = 3600,
) -> None:
    global _session_factory
    _session_factory = get_async_session_factory(
        database_url,
        expire_on_commit=False,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_recycle=pool_recycle,
    )


async def close_db() -> None:
    global _session_factory
    if _session_factory is not None:
        await _session_factory.kw["bind"].dispose()
        _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        raise RuntimeError("Database not initialized")
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session(get_session_factory()):
        yield session


@asynccontextmanager
async def storage_guard(timeout_secs: float) -> AsyncIterator[None]:
    """Bound a block of storage work in time and translate driver failures.

    Timeouts and lost connections become ``ServiceUnavailableError``; any
    other SQLAlchemy error becomes ``InternalError``. Domain errors raised
    inside the block pass through untouched.
    """
    try:
        async with asyncio.timeout(timeout_secs):
            yield
    except TimeoutError as exc:
        logger.warning("Storage work exceeded %.1fs budget", timeout_secs)
        raise ServiceUnavailableError("Storage did not respond in time") from exc
    except (OperationalError, InterfaceError) as exc:
        logger.warning("Storage unavailable: %s", type(exc).__name__)
        raise ServiceUnavailableError() from exc
    except SQLAlchemyError as exc:
        logger.exception("Unexpected storage error")
        raise InternalError(exc) from exc
