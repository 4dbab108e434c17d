"""
Cacophony API - Database Configuration
Async SQLAlchemy setup for PostgreSQL (production) with SQLite fallback (dev)
"""
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator

from sqlalchemy import DateTime
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from cacophony_api.config import get_settings

settings = get_settings()

is_sqlite = "sqlite" in settings.database_url

if is_sqlite:
    # SQLite: local development and tests only
    sqlite_path = make_url(settings.database_url).database
    if sqlite_path and sqlite_path != ":memory:":
        Path(sqlite_path).parent.mkdir(parents=True, exist_ok=True)
    engine = create_async_engine(
        settings.database_url,
        echo=settings.debug,
        connect_args={"check_same_thread": False}
    )
else:
    engine = create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        pool_recycle=300,
    )

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


async def get_db() -> AsyncIterator[AsyncSession]:
    """Dependency to get database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db():
    """Create any missing tables from the model metadata."""
    # Make sure every model is registered on Base.metadata
    import cacophony_api.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def utcnow() -> datetime:
    """Timezone-aware current time for Python-side column defaults."""
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Convert to an aware UTC datetime; naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timestamp column holding an instant in UTC.

    SQLite keeps only the wall-clock text of a datetime, so values are
    converted to UTC before they are stored or compared, and read back
    as aware UTC datetimes on every backend.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = to_utc(value)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return to_utc(value)
