"""Async engine, session factory and the request-scoped session dependency."""
from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import get_settings
from models.base import Base


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    Make SAVEPOINT (``session.begin_nested()``) work on a SQLite engine.

    The sqlite driver opens transactions on its own and breaks nested ones, so it
    is switched to autocommit and SQLAlchemy emits BEGIN itself. Foreign keys are
    enforced so association rows cascade like they do on PostgreSQL.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _connection_record) -> None:  # noqa: ANN001
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:  # noqa: ANN001
        conn.exec_driver_sql("BEGIN")


def build_engine(database_url: str, **kwargs: object) -> AsyncEngine:
    """Create an async engine, applying SQLite fixes when needed."""
    new_engine = create_async_engine(database_url, echo=False, pool_pre_ping=True, **kwargs)
    if make_url(database_url).get_backend_name() == "sqlite":
        enable_sqlite_savepoints(new_engine)
    return new_engine


engine = build_engine(get_settings().database_url)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db() -> None:
    """Create any missing tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db() -> None:
    """Close pooled connections on shutdown."""
    await engine.dispose()


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """
    Yield a session that spans one request.

    Services only flush; the commit happens here once the handler returns, and
    any exception rolls back everything the request wrote, including tags that
    were created before a failed bookmark insert.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
