import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shiftclock.core.clock import Clock, SystemClock
from shiftclock.core.config import Settings, settings as default_settings
from shiftclock.core.database import Database
from shiftclock.core.exceptions import (
    AlreadyClosedError,
    AlreadyOpenError,
    ConcurrentModificationError,
    InvalidPunchOutError,
    NoOpenShiftError,
    RecordOwnershipError,
    ShiftClockError,
    StoreUnavailableError,
)
from shiftclock.core.logging import configure_logging
from shiftclock.api.v1.attendance import router as attendance_router
from shiftclock.services.notification_service import EmailNotifier, Notifier
from shiftclock.services.reminder_service import ReminderSweeper
from shiftclock.services.shift_service import ShiftService
from shiftclock.services.shift_store import SqlShiftStore
from shiftclock.services.status_classifier import ShiftPolicy

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

ERROR_STATUS = {
    AlreadyOpenError: 409,
    AlreadyClosedError: 409,
    ConcurrentModificationError: 409,
    NoOpenShiftError: 404,
    RecordOwnershipError: 403,
    InvalidPunchOutError: 422,
    StoreUnavailableError: 503,
}


async def shiftclock_error_handler(request: Request, exc: ShiftClockError) -> JSONResponse:
    status_code = next(
        (code for err, code in ERROR_STATUS.items() if isinstance(exc, err)),
        500,
    )
    if status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    database: Database = app.state.database

    await database.connect()
    if settings.AUTO_CREATE_TABLES:
        # Tables on startup (SQLite / local development)
        await database.create_tables()

    sweeper: ReminderSweeper = app.state.sweeper
    if settings.SWEEP_ENABLED and not settings.USE_CELERY:
        sweeper.start()
    try:
        yield
    finally:
        if sweeper.running:
            await sweeper.stop()
        await database.dispose()


def create_app(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    notifier: Notifier | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings)

    database = database or Database.from_settings(settings)
    clock = clock or SystemClock()
    notifier = notifier or EmailNotifier.from_settings(settings)
    policy = ShiftPolicy.from_settings(settings)

    store = SqlShiftStore(database, timeout=settings.STORE_TIMEOUT_SECONDS)

    app = FastAPI(
        title="shiftclock API",
        description="Punch-in/punch-out tracking with overdue shift reminders",
        version="1.0.0",
        lifespan=lifespan,
        # Swagger UI only in development
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )
    app.state.settings = settings
    app.state.database = database
    app.state.policy = policy
    app.state.shift_service = ShiftService(
        store, clock=clock, policy=policy, max_retries=settings.MAX_WRITE_RETRIES
    )
    app.state.sweeper = ReminderSweeper.from_settings(settings, store, notifier, clock=clock)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ShiftClockError, shiftclock_error_handler)

    app.include_router(attendance_router, prefix=API_PREFIX)

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "service": "shiftclock API", "version": "1.0.0"}

    return app


app = create_app()
