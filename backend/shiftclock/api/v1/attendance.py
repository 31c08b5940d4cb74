"""
Attendance API – punch-in/punch-out for the current user, remaining time and
history.
"""
from datetime import timedelta

from fastapi import APIRouter, HTTPException, status

from shiftclock.api.deps import CurrentUser, Policy, Shifts
from shiftclock.core.exceptions import NoOpenShiftError
from shiftclock.schemas.attendance import (
    AttendanceRecordOut, PunchInRequest, PunchOutRequest, RemainingTimeOut,
)
from shiftclock.services.status_classifier import format_remaining

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.get("", response_model=list[AttendanceRecordOut])
async def list_history(current_user: CurrentUser, shifts: Shifts, policy: Policy):
    records = await shifts.list_history(current_user.id)
    return [AttendanceRecordOut.from_record(r, policy) for r in records]


@router.get("/current", response_model=AttendanceRecordOut | None)
async def current_shift(current_user: CurrentUser, shifts: Shifts, policy: Policy):
    record = await shifts.current_shift(current_user.id)
    return AttendanceRecordOut.from_record(record, policy) if record else None


@router.get("/remaining", response_model=RemainingTimeOut)
async def remaining(current_user: CurrentUser, shifts: Shifts):
    left = await shifts.remaining_time(current_user.id)
    return RemainingTimeOut(remaining_seconds=int(left.total_seconds()), remaining=format_remaining(left))


@router.post("/punch-in", response_model=AttendanceRecordOut, status_code=status.HTTP_201_CREATED)
async def punch_in(payload: PunchInRequest, current_user: CurrentUser, shifts: Shifts, policy: Policy):
    record = await shifts.punch_in(current_user.id, payload.is_half_day)
    return AttendanceRecordOut.from_record(record, policy)


@router.post("/punch-out", response_model=AttendanceRecordOut)
async def punch_out(
    current_user: CurrentUser, shifts: Shifts, policy: Policy, payload: PunchOutRequest | None = None
):
    payload = payload or PunchOutRequest()
    now = shifts.clock.now()

    if not payload.confirm_early:
        open_record = await shifts.current_shift(current_user.id)
        if open_record is None and payload.id is None:
            raise NoOpenShiftError(f"owner {current_user.id} has no open shift")
        if open_record is not None and (payload.id is None or payload.id == open_record.id):
            left = await shifts.remaining_time(current_user.id, now=now)
            if left > timedelta(0):
                raise HTTPException(
                    status_code=status.HTTP_428_PRECONDITION_REQUIRED,
                    detail={
                        "message": "Shift not complete yet – confirm early punch-out",
                        "remainingSeconds": int(left.total_seconds()),
                        "remaining": format_remaining(left),
                    },
                )

    record = await shifts.punch_out(current_user.id, record_id=payload.id, now=now)
    return AttendanceRecordOut.from_record(record, policy)
