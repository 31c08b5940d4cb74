import uuid
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, Float, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shiftclock.core.database import Base, UTCDateTime

STATUS_WORKING = "working"


class AttendanceRecord(Base):
    """One shift, from punch-in to punch-out."""

    __tablename__ = "attendance_records"
    __table_args__ = (
        # at most one open shift per owner
        Index(
            "uq_attendance_records_open_owner",
            "owner_id",
            unique=True,
            sqlite_where=text("punch_out_at IS NULL"),
            postgresql_where=text("punch_out_at IS NULL"),
        ),
        Index("ix_attendance_records_owner_id", "owner_id", "id"),
    )

    # epoch milliseconds of the punch-in instant
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    owner_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    punch_in_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    punch_out_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    is_half_day: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    status: Mapped[str] = mapped_column(String(20), default=STATUS_WORKING, nullable=False)  # working | OP | LP | LA | OA | OFF | A
    duration_hours: Mapped[float | None] = mapped_column(Float, nullable=True)

    last_reminder_sent_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Relationships
    owner: Mapped["User"] = relationship(back_populates="attendance_records")
