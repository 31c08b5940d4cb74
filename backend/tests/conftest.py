"""
Shared pytest fixtures for shiftclock backend tests.

Uses SQLite in-memory with StaticPool so all sessions share one connection,
meaning data written by the store is visible to every later session.
"""
import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.pool import StaticPool

import shiftclock.models  # noqa – registers all SQLAlchemy models with Base.metadata
from shiftclock.core.config import Settings
from shiftclock.core.database import Database
from shiftclock.core.exceptions import NotifierError
from shiftclock.core.security import create_access_token
from shiftclock.main import create_app
from shiftclock.models.user import User
from shiftclock.services.reminder_service import ReminderSweeper
from shiftclock.services.shift_service import ShiftService
from shiftclock.services.shift_store import SqlShiftStore

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Monday
MONDAY_9AM = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


# ── Test doubles ──────────────────────────────────────────────────────────────

class FrozenClock:
    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


class RecordingNotifier:
    """Collects sent messages; addresses in ``fail_for`` raise NotifierError."""

    def __init__(self):
        self.sent: list[tuple[str, str, dict]] = []
        self.fail_for: set[str] = set()
        self.on_send = None

    async def send(self, contact_address: str, template_id: str, context: dict) -> None:
        if self.on_send is not None:
            await self.on_send(contact_address, template_id, context)
        if contact_address in self.fail_for:
            raise NotifierError(f"mailbox {contact_address} unavailable")
        self.sent.append((contact_address, template_id, context))


# ── Database (function-scoped: fresh DB per test) ─────────────────────────────

def make_database() -> Database:
    return Database(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # single shared connection → all sessions see same data
    )


@pytest_asyncio.fixture
async def database() -> Database:
    db = make_database()
    await db.connect()
    await db.create_tables()

    yield db

    if db.is_connected:
        await db.drop_tables()
        await db.dispose()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(MONDAY_9AM)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def store(database) -> SqlShiftStore:
    return SqlShiftStore(database, timeout=5.0)


@pytest.fixture
def shift_service(store, clock) -> ShiftService:
    return ShiftService(store, clock=clock)


@pytest.fixture
def sweeper(store, notifier, clock) -> ReminderSweeper:
    return ReminderSweeper(store, notifier, clock=clock, interval_seconds=3600)


# ── Users ─────────────────────────────────────────────────────────────────────

async def make_user(database: Database, username: str, email: str | None = None) -> User:
    async with database.session() as db:
        u = User(
            id=uuid.uuid4(),
            username=username,
            email=email,
            is_active=True,
            created_at=datetime.now(timezone.utc),
        )
        db.add(u)
        await db.commit()
        await db.refresh(u)
        return u


@pytest_asyncio.fixture
async def user(database) -> User:
    return await make_user(database, "priya", "priya@example.com")


@pytest_asyncio.fixture
async def other_user(database) -> User:
    return await make_user(database, "arjun", "arjun@example.com")


@pytest.fixture
def user_token(user) -> str:
    return create_access_token(user.id)


@pytest.fixture
def other_token(other_user) -> str:
    return create_access_token(other_user.id)


# ── HTTP client fixture ───────────────────────────────────────────────────────

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        APP_ENV="test",
        DEBUG=False,
        DATABASE_URL=TEST_DATABASE_URL,
        AUTO_CREATE_TABLES=False,
        SWEEP_ENABLED=False,
    )


@pytest_asyncio.fixture
async def client(database, notifier, clock, test_settings) -> AsyncClient:
    """API client wired to the test database, frozen clock and recording notifier."""
    app = create_app(test_settings, database=database, notifier=notifier, clock=clock)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c


# ── Helper ────────────────────────────────────────────────────────────────────

def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
