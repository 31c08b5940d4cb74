"""
Shift Store – persistence for attendance records.

``SqlShiftStore`` opens a short-lived session per call, bounds every call with
``asyncio.wait_for`` and turns connectivity problems into
``StoreUnavailableError``. Updates are conditional on the record's version and
on the record still being open, so a stale writer never overwrites a newer
state.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Awaitable, Callable, Protocol, Sequence, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import selectinload

from shiftclock.core.database import Database
from shiftclock.core.exceptions import DuplicateRecordError, StoreUnavailableError
from shiftclock.models.attendance import AttendanceRecord
from shiftclock.models.user import User

logger = logging.getLogger(__name__)

T = TypeVar("T")

# columns a conditional update may change; id, owner and punch-in are immutable
MUTABLE_FIELDS = ("punch_out_at", "status", "duration_hours", "last_reminder_sent_at")


class ShiftStore(Protocol):
    async def find_open(self, owner_id: uuid.UUID) -> AttendanceRecord | None:
        raise NotImplementedError

    async def find_by_id(self, record_id: int) -> AttendanceRecord | None:
        raise NotImplementedError

    async def insert(self, record: AttendanceRecord) -> AttendanceRecord:
        raise NotImplementedError

    async def update(self, record: AttendanceRecord, expected_version: int) -> bool:
        """Write ``record`` if it is still open at ``expected_version``."""
        raise NotImplementedError

    async def list_open_across_owners(self) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    async def list_by_owner(self, owner_id: uuid.UUID) -> Sequence[AttendanceRecord]:
        raise NotImplementedError


class SqlShiftStore(ShiftStore):
    def __init__(self, database: Database, *, timeout: float = 5.0):
        self._database = database
        self._timeout = timeout

    async def _run(self, op: Callable[[], Awaitable[T]], what: str) -> T:
        try:
            return await asyncio.wait_for(op(), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            logger.warning("Store call %s timed out after %.1fs", what, self._timeout)
            raise StoreUnavailableError(f"{what} timed out") from e
        except IntegrityError:
            raise
        except (OperationalError, DBAPIError, OSError) as e:
            logger.warning("Store call %s failed: %s", what, e)
            raise StoreUnavailableError(f"{what} failed: {e}") from e

    async def find_open(self, owner_id: uuid.UUID) -> AttendanceRecord | None:
        async def op():
            async with self._database.session() as db:
                result = await db.execute(
                    select(AttendanceRecord).where(
                        AttendanceRecord.owner_id == owner_id,
                        AttendanceRecord.punch_out_at.is_(None),
                    )
                )
                return result.scalar_one_or_none()

        return await self._run(op, "find_open")

    async def find_by_id(self, record_id: int) -> AttendanceRecord | None:
        async def op():
            async with self._database.session() as db:
                return await db.get(AttendanceRecord, record_id)

        return await self._run(op, "find_by_id")

    async def insert(self, record: AttendanceRecord) -> AttendanceRecord:
        async def op():
            async with self._database.session() as db:
                db.add(record)
                try:
                    await db.commit()
                except IntegrityError as e:
                    await db.rollback()
                    raise DuplicateRecordError(f"record {record.id} rejected: {e.orig}") from e
                await db.refresh(record)
                db.expunge(record)
                return record

        return await self._run(op, "insert")

    async def update(self, record: AttendanceRecord, expected_version: int) -> bool:
        values = {field: getattr(record, field) for field in MUTABLE_FIELDS}

        async def op():
            async with self._database.session() as db:
                result = await db.execute(
                    update(AttendanceRecord)
                    .where(
                        AttendanceRecord.id == record.id,
                        AttendanceRecord.owner_id == record.owner_id,
                        AttendanceRecord.version == expected_version,
                        AttendanceRecord.punch_out_at.is_(None),
                    )
                    .values(**values, version=expected_version + 1)
                    .execution_options(synchronize_session=False)
                )
                await db.commit()
                return result.rowcount == 1

        applied = await self._run(op, "update")
        if applied:
            record.version = expected_version + 1
        return applied

    async def list_open_across_owners(self) -> Sequence[AttendanceRecord]:
        async def op():
            async with self._database.session() as db:
                result = await db.execute(
                    select(AttendanceRecord)
                    .join(User, User.id == AttendanceRecord.owner_id)
                    .options(selectinload(AttendanceRecord.owner))
                    .where(
                        AttendanceRecord.punch_out_at.is_(None),
                        User.email.isnot(None),
                        User.email != "",
                    )
                    .order_by(AttendanceRecord.id)
                )
                return result.scalars().all()

        return await self._run(op, "list_open_across_owners")

    async def list_by_owner(self, owner_id: uuid.UUID) -> Sequence[AttendanceRecord]:
        async def op():
            async with self._database.session() as db:
                result = await db.execute(
                    select(AttendanceRecord)
                    .where(AttendanceRecord.owner_id == owner_id)
                    .order_by(AttendanceRecord.id.desc())
                )
                return result.scalars().all()

        return await self._run(op, "list_by_owner")
