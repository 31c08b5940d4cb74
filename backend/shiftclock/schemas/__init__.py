from shiftclock.schemas.attendance import (
    PunchInRequest, PunchOutRequest, RemainingTimeOut, AttendanceRecordOut,
)

__all__ = [
    "PunchInRequest", "PunchOutRequest", "RemainingTimeOut", "AttendanceRecordOut",
]
