"""
Database engine and session management for the Kilo Thrift backend.

Every request gets its own AsyncSession through the get_db() dependency and
hands it explicitly to the services; nothing builds its own client. SQLite
(via aiosqlite) is used in development and tests. Tables are auto-created on
server startup via init_db().
"""
import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


def async_database_url(url: str) -> str:
    """sqlite:///... → sqlite+aiosqlite:///...; other URLs must name an async driver."""
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return url


# ── Engine ──────────────────────────────────────────────────────────

_url = async_database_url(settings.database_url)
_is_sqlite = _url.startswith("sqlite")

engine = create_async_engine(
    _url,
    echo=False,
    pool_pre_ping=not _is_sqlite,
)

if _is_sqlite:
    @event.listens_for(engine.sync_engine, "connect")
    def _sqlite_foreign_keys(dbapi_connection, connection_record):
        # order_items.order_id → orders.id is only enforced with this pragma
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# ── Helpers ─────────────────────────────────────────────────────────

async def init_db() -> None:
    """Create all tables. Called once on server startup."""
    import db_models  # noqa: F401  (registers tables on Base.metadata)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info(f"Database tables ready ({engine.url.get_backend_name()})")


async def dispose_db() -> None:
    """Close pooled connections on shutdown."""
    await engine.dispose()


async def get_db() -> AsyncSession:
    """
    FastAPI dependency — yields the request's session.

    Uncommitted work is rolled back if the handler raises.
    """
    async with async_session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
