import logging

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from spire_online.config import settings

logger = logging.getLogger(__name__)


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    SQLite connections get foreign keys switched on so that the cascading
    deletes declared on the models behave the same as on PostgreSQL.
    """
    masked_url = make_url(url).render_as_string(hide_password=True)
    logger.info(f"SQLAlchemy DB URL: {masked_url}")

    async_engine = create_async_engine(url, **kwargs)

    if async_engine.dialect.name == "sqlite":
        @event.listens_for(async_engine.sync_engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return async_engine


def build_sessionmaker(async_engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(autoflush=False, bind=async_engine, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.sqlalchemy_database_url)

AsyncSessionLocal = build_sessionmaker(engine)

Base = declarative_base()


async def create_all(async_engine: AsyncEngine) -> None:
    """Create every table on the given engine. Production schema goes through alembic."""
    # Model modules register themselves on Base.metadata when imported
    from spire_online import models  # noqa: F401

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
