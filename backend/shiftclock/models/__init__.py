from shiftclock.models.user import User
from shiftclock.models.attendance import AttendanceRecord

__all__ = [
    "User",
    "AttendanceRecord",
]
