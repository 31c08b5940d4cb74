from celery import Celery

from shiftclock.core.config import settings

celery_app = Celery(
    "shiftclock",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["shiftclock.tasks.reminder_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.LOCAL_TIMEZONE,
    enable_utc=True,
    beat_schedule={
        # Every sweep interval: remind owners of overdue open shifts
        "overdue-shift-reminders": {
            "task": "shiftclock.tasks.reminder_tasks.sweep_overdue_shifts",
            "schedule": settings.SWEEP_INTERVAL_SECONDS,
            # a tick older than one interval is superseded by the next one
            "options": {"expires": settings.SWEEP_INTERVAL_SECONDS},
        },
    },
)
