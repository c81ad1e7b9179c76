"""
Database Configuration

Async SQLAlchemy engine, session factory and the declarative Base shared by
every model module.
"""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from visa_api.core.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_pre_ping=True,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding a request-scoped session.

    Services commit explicitly; anything left uncommitted when the request
    fails is rolled back here.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def _import_models() -> None:
    """Import model modules so their tables register on Base.metadata."""
    from visa_api.modules.applications import models as _applications  # noqa: F401
    from visa_api.modules.audit import models as _audit  # noqa: F401
    from visa_api.modules.documents import models as _documents  # noqa: F401
    from visa_api.modules.interviews import models as _interviews  # noqa: F401
    from visa_api.modules.messages import models as _messages  # noqa: F401
    from visa_api.modules.notifications import models as _notifications  # noqa: F401
    from visa_api.modules.payments import models as _payments  # noqa: F401
    from visa_api.modules.users import models as _users  # noqa: F401
    from visa_api.modules.visa_types import models as _visa_types  # noqa: F401


async def init_db() -> None:
    """
    Verify connectivity on application startup.

    The schema is owned by Alembic (`alembic upgrade head` from apps/api).
    DATABASE_CREATE_TABLES=true additionally creates missing tables from
    the models, for throwaway databases only.
    """
    _import_models()
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        if settings.database_create_tables:
            await conn.run_sync(Base.metadata.create_all)
            logger.warning("Database tables created from models, bypassing migrations")


async def close_db() -> None:
    """Dispose of the engine's connection pool."""
    await engine.dispose()
