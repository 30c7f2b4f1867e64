"""Attendance Pydantic v2 schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from attendly.common.constants import AttendanceType
from attendly.common.pagination import PaginationMeta


# ── Requests ────────────────────────────────────────────────────────

class AttendanceMarkRequest(BaseModel):
    # Kept as a raw string so the strict YYYY-MM-DD rule is applied by the service.
    date: str
    has_consent: bool


# ── Responses ───────────────────────────────────────────────────────

class AttendanceRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    date: date
    has_consent: bool
    type: AttendanceType
    leave_request_id: Optional[int] = None
    created_at: datetime


class AttendanceDetailOut(AttendanceRecordOut):
    """Record enriched with its originating leave request, if any."""

    leave_type_name: Optional[str] = None
    leave_reason: Optional[str] = None


class AttendanceListResponse(BaseModel):
    records: list[AttendanceDetailOut]
    pagination: PaginationMeta
