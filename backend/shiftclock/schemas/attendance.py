import uuid
from datetime import datetime as DateTime
from typing import Optional

from pydantic import BaseModel, Field

from shiftclock.models.attendance import AttendanceRecord
from shiftclock.services.status_classifier import DEFAULT_POLICY, ShiftPolicy, weekday_name


class PunchInRequest(BaseModel):
    is_half_day: bool = Field(default=False, alias="isHalfDay")

    model_config = {"populate_by_name": True}


class PunchOutRequest(BaseModel):
    """``confirmEarly`` acknowledges a punch-out before the required duration."""
    id: Optional[int] = None
    confirm_early: bool = Field(default=False, alias="confirmEarly")

    model_config = {"populate_by_name": True}


class RemainingTimeOut(BaseModel):
    remaining_seconds: int = Field(alias="remainingSeconds")
    remaining: str

    model_config = {"populate_by_name": True}


class AttendanceRecordOut(BaseModel):
    """Record shape shared with export and sync collaborators."""
    id: int
    owner_id: uuid.UUID = Field(alias="ownerId")
    date: str
    day: str
    punch_in: str = Field(alias="punchIn")
    punch_out: Optional[str] = Field(default=None, alias="punchOut")
    duration: Optional[str] = None
    status: str
    timestamp: DateTime
    last_reminder_sent_at: Optional[DateTime] = Field(default=None, alias="lastReminderSentAt")
    is_half_day: bool = Field(default=False, alias="isHalfDay")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_record(cls, record: AttendanceRecord, policy: ShiftPolicy = DEFAULT_POLICY) -> "AttendanceRecordOut":
        local_in = policy.local(record.punch_in_at)
        local_out = policy.local(record.punch_out_at) if record.punch_out_at else None
        return cls(
            id=record.id,
            owner_id=record.owner_id,
            date=local_in.strftime("%Y-%m-%d"),
            day=weekday_name(record.punch_in_at, policy),
            punch_in=local_in.strftime("%H:%M:%S"),
            punch_out=local_out.strftime("%H:%M:%S") if local_out else None,
            duration=f"{record.duration_hours:.2f}" if record.duration_hours is not None else None,
            status=record.status,
            timestamp=record.punch_in_at,
            last_reminder_sent_at=record.last_reminder_sent_at,
            is_half_day=record.is_half_day,
        )
