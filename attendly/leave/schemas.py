"""Leave Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Update → request bodies (write)
  - *Out              → response bodies (read)
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from attendly.common.constants import LeaveStatus


# ═════════════════════════════════════════════════════════════════════
# Leave Type
# ═════════════════════════════════════════════════════════════════════


class LeaveTypeCreate(BaseModel):
    name: str = Field(max_length=100)
    default_days: int = Field(gt=0, strict=True)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Leave type name is required.")
        return v


class LeaveTypeUpdate(LeaveTypeCreate):
    pass


class LeaveTypeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    default_days: int
    created_at: datetime


# ═════════════════════════════════════════════════════════════════════
# Leave Balance
# ═════════════════════════════════════════════════════════════════════


class LeaveBalanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    leave_type_id: int
    year: int
    total_days: int
    used_days: int
    remaining_days: int

    # Filled by the ledger, not from ORM
    leave_type_name: Optional[str] = None


# ═════════════════════════════════════════════════════════════════════
# Leave Request
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Body of a new leave request.

    Fields are optional at the schema level so the service reports missing
    values in its own validation order.
    """

    leave_type_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = None


class LeaveRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    leave_type_id: int
    start_date: date
    end_date: date
    reason: Optional[str] = None
    status: LeaveStatus
    approved_by: Optional[int] = None
    created_at: datetime
    approved_at: Optional[datetime] = None

    # Computed / enriched by the service
    days: int = 0
    leave_type_name: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    approver_name: Optional[str] = None
    remaining_days: Optional[int] = None


class LeaveApprovalOut(BaseModel):
    """Result of an approval: the updated request plus what it produced."""

    request: LeaveRequestOut
    days: int
    attendance_dates: list[date]
    remaining_days: int
