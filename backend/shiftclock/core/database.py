from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from shiftclock.core.config import Settings
from shiftclock.core.exceptions import StoreUnavailableError


class Base(DeclarativeBase):
    pass


class UTCDateTime(TypeDecorator):
    """Aware UTC datetimes in and out, whatever the backend keeps on disk.

    SQLite drops tzinfo, so values are normalised to naive UTC on the way in
    and tagged as UTC again on the way out.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("naive datetime passed to a UTC column")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Database:
    """Owns one async engine and its session factory.

    Built once at startup and handed to the store; ``connect`` and
    ``dispose`` bracket its lifetime.
    """

    def __init__(self, url: str, *, echo: bool = False, **engine_kwargs):
        self.url = url
        self._echo = echo
        self._engine_kwargs = engine_kwargs
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        connect_args = {}
        # SQLite needs check_same_thread=False
        if "sqlite" in settings.DATABASE_URL:
            connect_args = {"check_same_thread": False}
        return cls(settings.DATABASE_URL, echo=False, connect_args=connect_args)

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise StoreUnavailableError("database is not connected")
        return self._engine

    async def connect(self) -> None:
        if self._engine is not None:
            return
        self._engine = create_async_engine(self.url, echo=self._echo, **self._engine_kwargs)
        self._sessionmaker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def dispose(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None

    def session(self) -> AsyncSession:
        if self._sessionmaker is None:
            raise StoreUnavailableError("database is not connected")
        return self._sessionmaker()

    async def create_tables(self) -> None:
        """Creates all tables (local development without Alembic)."""
        import shiftclock.models  # noqa – registers all models
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
