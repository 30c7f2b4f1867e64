"""Attendance ORM models: AttendanceRecord."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from attendly.common.constants import AttendanceType
from attendly.database import Base


class AttendanceRecord(Base):
    __tablename__ = "attendance"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "date", name="uq_attendance_user_date"),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    has_consent: Mapped[bool] = mapped_column(sa.Boolean, nullable=False)
    type: Mapped[AttendanceType] = mapped_column(
        sa.Enum(AttendanceType, name="attendance_type"),
        default=AttendanceType.manual,
        nullable=False,
    )
    leave_request_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, sa.ForeignKey("leave_requests.id")
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
