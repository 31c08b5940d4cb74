"""
Shift lifecycle – punch-in and punch-out per owner.

Every state change goes through a conditional store write; a lost race is
re-read and retried a bounded number of times.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta

from shiftclock.core.clock import Clock, SystemClock
from shiftclock.core.exceptions import (
    AlreadyClosedError,
    AlreadyOpenError,
    ConcurrentModificationError,
    DuplicateRecordError,
    InvalidPunchOutError,
    NoOpenShiftError,
    RecordOwnershipError,
)
from shiftclock.models.attendance import AttendanceRecord
from shiftclock.services.shift_store import ShiftStore
from shiftclock.services.status_classifier import (
    DEFAULT_POLICY,
    ShiftPolicy,
    ShiftStatus,
    classify,
    duration_hours,
    remaining_time,
    weekday_name,
)

logger = logging.getLogger(__name__)


def record_id_for(instant: datetime) -> int:
    return int(instant.timestamp() * 1000)


class ShiftService:

    def __init__(
        self,
        store: ShiftStore,
        *,
        clock: Clock | None = None,
        policy: ShiftPolicy = DEFAULT_POLICY,
        max_retries: int = 3,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.policy = policy
        self.max_retries = max(1, int(max_retries))

    async def punch_in(
        self,
        owner_id: uuid.UUID,
        is_half_day: bool = False,
        *,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        """Open a new shift; fails with AlreadyOpenError if one is running."""
        now = now or self.clock.now()

        if await self.store.find_open(owner_id) is not None:
            raise AlreadyOpenError(f"owner {owner_id} already has an open shift")

        record_id = record_id_for(now)
        for _ in range(self.max_retries):
            record = AttendanceRecord(
                id=record_id,
                owner_id=owner_id,
                punch_in_at=now,
                punch_out_at=None,
                is_half_day=bool(is_half_day),
                status=ShiftStatus.WORKING.value,
                duration_hours=None,
                last_reminder_sent_at=None,
                version=1,
            )
            try:
                created = await self.store.insert(record)
            except DuplicateRecordError:
                # either a racing punch-in won or the id is taken
                if await self.store.find_open(owner_id) is not None:
                    raise AlreadyOpenError(f"owner {owner_id} already has an open shift")
                logger.info("Record id %s taken, trying %s", record_id, record_id + 1)
                record_id += 1
                continue
            logger.info(
                "Punch-in owner=%s record=%s half_day=%s", owner_id, created.id, created.is_half_day
            )
            return created

        raise ConcurrentModificationError(f"could not allocate a record id for owner {owner_id}")

    async def punch_out(
        self,
        owner_id: uuid.UUID,
        *,
        record_id: int | None = None,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        """Close the owner's open shift and classify it."""
        now = now or self.clock.now()

        for attempt in range(1, self.max_retries + 1):
            record = await self._load_for_punch_out(owner_id, record_id)
            if now <= record.punch_in_at:
                raise InvalidPunchOutError(
                    f"punch-out {now.isoformat()} is not after punch-in {record.punch_in_at.isoformat()}"
                )

            expected_version = record.version
            record.punch_out_at = now
            record.duration_hours = duration_hours(record.punch_in_at, now)
            record.status = classify(
                record.punch_in_at,
                now,
                record.is_half_day,
                weekday_name(record.punch_in_at, self.policy),
                self.policy,
            ).value
            record.last_reminder_sent_at = None

            if await self.store.update(record, expected_version):
                logger.info(
                    "Punch-out owner=%s record=%s duration=%.2fh status=%s",
                    owner_id, record.id, record.duration_hours, record.status,
                )
                return record

            logger.info("Punch-out conflict on record %s (attempt %d)", record.id, attempt)
            record_id = record.id

        raise ConcurrentModificationError(f"punch-out for owner {owner_id} kept conflicting")

    async def _load_for_punch_out(self, owner_id: uuid.UUID, record_id: int | None) -> AttendanceRecord:
        if record_id is None:
            record = await self.store.find_open(owner_id)
            if record is None:
                raise NoOpenShiftError(f"owner {owner_id} has no open shift")
            return record

        record = await self.store.find_by_id(record_id)
        if record is None:
            raise NoOpenShiftError(f"record {record_id} does not exist")
        if record.owner_id != owner_id:
            raise RecordOwnershipError(f"record {record_id} belongs to another owner")
        if record.punch_out_at is not None:
            raise AlreadyClosedError(f"record {record_id} is already closed")
        return record

    async def remaining_time(self, owner_id: uuid.UUID, *, now: datetime | None = None) -> timedelta:
        now = now or self.clock.now()
        record = await self.store.find_open(owner_id)
        if record is None:
            raise NoOpenShiftError(f"owner {owner_id} has no open shift")
        return remaining_time(record, now, self.policy)

    async def current_shift(self, owner_id: uuid.UUID) -> AttendanceRecord | None:
        return await self.store.find_open(owner_id)

    async def list_history(self, owner_id: uuid.UUID) -> list[AttendanceRecord]:
        """All of the owner's records, newest first."""
        return list(await self.store.list_by_owner(owner_id))
