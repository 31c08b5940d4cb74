"""
Attendance status rules.

Pure functions over instants: no store, no clock. ``classify`` maps a closed
shift to its status code; the time predicates are shared with the reminder
sweep and the early punch-out check.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from enum import Enum
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

if TYPE_CHECKING:
    from shiftclock.core.config import Settings
    from shiftclock.models.attendance import AttendanceRecord

WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
SUNDAY = "Sun"


class ShiftStatus(str, Enum):
    WORKING = "working"
    ON_TIME_PRESENT = "OP"
    LATE_PRESENT = "LP"
    LATE_ABSENT = "LA"
    ON_TIME_PARTIAL = "OA"
    OFF = "OFF"
    ABSENT = "A"


@dataclass(frozen=True)
class ShiftPolicy:
    full_day_hours: float = 9.5
    half_day_hours: float = 4.75
    late_after: time = time(10, 0)
    partial_min_hours: float = 4.0
    timezone: str = "UTC"

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ShiftPolicy":
        return cls(
            full_day_hours=settings.FULL_DAY_HOURS,
            half_day_hours=settings.HALF_DAY_HOURS,
            late_after=settings.LATE_AFTER,
            partial_min_hours=settings.PARTIAL_DAY_MIN_HOURS,
            timezone=settings.LOCAL_TIMEZONE,
        )

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def local(self, instant: datetime) -> datetime:
        return instant.astimezone(self.tz)


DEFAULT_POLICY = ShiftPolicy()


def required_hours(is_half_day: bool, policy: ShiftPolicy = DEFAULT_POLICY) -> float:
    return policy.half_day_hours if is_half_day else policy.full_day_hours


def required_duration(is_half_day: bool, policy: ShiftPolicy = DEFAULT_POLICY) -> timedelta:
    return timedelta(hours=required_hours(is_half_day, policy))


def weekday_name(instant: datetime, policy: ShiftPolicy = DEFAULT_POLICY) -> str:
    return WEEKDAYS[policy.local(instant).weekday()]


def is_late(punch_in_at: datetime, policy: ShiftPolicy = DEFAULT_POLICY) -> bool:
    """True when the local punch-in time is strictly after the late threshold."""
    local_time = policy.local(punch_in_at).time().replace(tzinfo=None)
    return local_time > policy.late_after


def duration_hours(punch_in_at: datetime, punch_out_at: datetime) -> float:
    return round((punch_out_at - punch_in_at).total_seconds() / 3600, 2)


def classify(
    punch_in_at: datetime,
    punch_out_at: datetime,
    is_half_day: bool,
    weekday: str | None = None,
    policy: ShiftPolicy = DEFAULT_POLICY,
) -> ShiftStatus:
    """Status code of a closed shift; the first matching rule wins."""
    hours = (punch_out_at - punch_in_at).total_seconds() / 3600
    required = required_hours(is_half_day, policy)
    late = is_late(punch_in_at, policy)
    weekday = weekday or weekday_name(punch_in_at, policy)

    if late and hours >= required:
        return ShiftStatus.LATE_PRESENT
    if late:
        return ShiftStatus.LATE_ABSENT
    if hours >= required:
        return ShiftStatus.ON_TIME_PRESENT
    if weekday == SUNDAY:
        return ShiftStatus.OFF
    if hours > policy.partial_min_hours:
        return ShiftStatus.ON_TIME_PARTIAL
    return ShiftStatus.ABSENT


def is_overdue(
    punch_in_at: datetime,
    is_half_day: bool,
    now: datetime,
    policy: ShiftPolicy = DEFAULT_POLICY,
) -> bool:
    return now - punch_in_at > required_duration(is_half_day, policy)


def remaining_time(
    record: "AttendanceRecord",
    now: datetime,
    policy: ShiftPolicy = DEFAULT_POLICY,
) -> timedelta:
    """Shortfall of an open shift against its required duration, never negative."""
    shortfall = required_duration(record.is_half_day, policy) - (now - record.punch_in_at)
    return max(shortfall, timedelta(0))


def format_remaining(remaining: timedelta) -> str:
    total_minutes = int(remaining.total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours}h {minutes}m"
