"""
Celery tasks for overdue shift reminders.
"""
from shiftclock.tasks.celery_app import celery_app


@celery_app.task(name="shiftclock.tasks.reminder_tasks.sweep_overdue_shifts")
def sweep_overdue_shifts() -> dict:
    """Runs one reminder sweep tick and returns its counters."""
    import asyncio
    return asyncio.run(_sweep())


async def _sweep(settings=None, database=None, notifier=None) -> dict:
    from dataclasses import asdict
    from shiftclock.core.config import settings as default_settings
    from shiftclock.core.database import Database
    from shiftclock.services.notification_service import EmailNotifier
    from shiftclock.services.reminder_service import ReminderSweeper
    from shiftclock.services.shift_store import SqlShiftStore

    settings = settings or default_settings
    database = database or Database.from_settings(settings)
    await database.connect()
    try:
        store = SqlShiftStore(database, timeout=settings.STORE_TIMEOUT_SECONDS)
        sweeper = ReminderSweeper.from_settings(
            settings,
            store,
            notifier or EmailNotifier.from_settings(settings),
        )
        result = await sweeper.run_once()
    finally:
        await database.dispose()
    return asdict(result)
