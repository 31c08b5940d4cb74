"""
Reminder sweep – e-mails owners whose open shift has run past its required
duration.

One tick lists the open shifts, filters the overdue ones that are out of
their cooldown, re-reads each one right before sending and records the
reminder with a conditional write. A failing notifier only costs that one
reminder; the next tick retries it.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from shiftclock.core.clock import Clock, SystemClock
from shiftclock.core.exceptions import NotifierError, StoreUnavailableError
from shiftclock.models.attendance import AttendanceRecord
from shiftclock.services.notification_service import TEMPLATE_SHIFT_OVERDUE, Notifier
from shiftclock.services.shift_store import ShiftStore
from shiftclock.services.status_classifier import DEFAULT_POLICY, ShiftPolicy, is_overdue, required_hours

if TYPE_CHECKING:
    from shiftclock.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    checked: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0


class ReminderSweeper:

    def __init__(
        self,
        store: ShiftStore,
        notifier: Notifier,
        *,
        clock: Clock | None = None,
        policy: ShiftPolicy = DEFAULT_POLICY,
        interval_seconds: float = 60.0,
        reminder_interval: timedelta = timedelta(minutes=30),
        notifier_timeout: float = 10.0,
    ):
        self.store = store
        self.notifier = notifier
        self.clock = clock or SystemClock()
        self.policy = policy
        self.interval_seconds = interval_seconds
        self.reminder_interval = reminder_interval
        self.notifier_timeout = notifier_timeout
        self._stop = asyncio.Event()
        self._task: asyncio.Task | None = None

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        store: ShiftStore,
        notifier: Notifier,
        *,
        clock: Clock | None = None,
    ) -> "ReminderSweeper":
        return cls(
            store,
            notifier,
            clock=clock,
            policy=ShiftPolicy.from_settings(settings),
            interval_seconds=settings.SWEEP_INTERVAL_SECONDS,
            reminder_interval=timedelta(minutes=settings.REMINDER_INTERVAL_MINUTES),
            notifier_timeout=settings.NOTIFIER_TIMEOUT_SECONDS,
        )

    def is_due(self, record: AttendanceRecord, now: datetime) -> bool:
        """Overdue and out of the cooldown window."""
        if record.punch_out_at is not None:
            return False
        if not is_overdue(record.punch_in_at, record.is_half_day, now, self.policy):
            return False
        last_sent = record.last_reminder_sent_at
        return last_sent is None or now - last_sent >= self.reminder_interval

    async def run_once(self, now: datetime | None = None) -> SweepResult:
        """One sweep tick."""
        now = now or self.clock.now()
        result = SweepResult()

        candidates = await self.store.list_open_across_owners()
        for candidate in candidates:
            if self._stop.is_set():
                logger.info("Sweep stopped after %d of %d records", result.checked, len(candidates))
                break
            result.checked += 1
            if not self.is_due(candidate, now):
                continue
            await self._remind(candidate, now, result)

        if result.sent or result.failed:
            logger.info(
                "Sweep done: checked=%d sent=%d skipped=%d failed=%d",
                result.checked, result.sent, result.skipped, result.failed,
            )
        return result

    async def _remind(self, candidate: AttendanceRecord, now: datetime, result: SweepResult) -> None:
        email = candidate.owner.email
        try:
            # may have been closed since the listing
            record = await self.store.find_by_id(candidate.id)
        except StoreUnavailableError as e:
            logger.warning("Skipping reminder for record %s: %s", candidate.id, e)
            result.failed += 1
            return
        if record is None or not self.is_due(record, now):
            result.skipped += 1
            return

        elapsed = now - record.punch_in_at
        context = {
            "username": candidate.owner.username,
            "record_id": record.id,
            "is_half_day": record.is_half_day,
            "required_hours": required_hours(record.is_half_day, self.policy),
            "elapsed_hours": elapsed.total_seconds() / 3600,
            "punch_in": self.policy.local(record.punch_in_at).strftime("%H:%M:%S"),
        }

        logger.info("Sending reminder to %s for record %s", email, record.id)
        try:
            await asyncio.wait_for(
                self.notifier.send(email, TEMPLATE_SHIFT_OVERDUE, context),
                timeout=self.notifier_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Reminder for record %s to %s timed out after %.1fs", record.id, email, self.notifier_timeout
            )
            result.failed += 1
            return
        except NotifierError as e:
            logger.error("Failed to send reminder for record %s to %s: %s", record.id, email, e)
            result.failed += 1
            return

        expected_version = record.version
        record.last_reminder_sent_at = now
        try:
            written = await self.store.update(record, expected_version)
        except StoreUnavailableError as e:
            logger.error("Reminder for record %s sent but not recorded: %s", record.id, e)
            result.failed += 1
            return
        if not written:
            # closed or changed between send and write
            logger.info("Record %s changed during sweep, reminder timestamp not written", record.id)
            result.skipped += 1
            return
        result.sent += 1

    async def run_forever(self) -> None:
        logger.info(
            "Reminder sweep started (interval=%.0fs, cooldown=%s)",
            self.interval_seconds, self.reminder_interval,
        )
        while not self._stop.is_set():
            try:
                await self.run_once()
            except StoreUnavailableError as e:
                logger.warning("Sweep tick skipped, store unavailable: %s", e)
            except Exception:
                logger.exception("Sweep tick failed")
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("Reminder sweep stopped")

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._stop.clear()
            self._task = asyncio.create_task(self.run_forever(), name="reminder-sweep")
        return self._task

    async def stop(self) -> None:
        self._stop.set()
        if self._task is not None:
            await self._task
            self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
