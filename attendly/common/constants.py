"""Enums and constants for Attendly."""

from __future__ import annotations

import enum


# ── Leave ───────────────────────────────────────────────────────────

class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


# Statuses that still block the dates they cover.
BLOCKING_LEAVE_STATUSES = (LeaveStatus.pending, LeaveStatus.approved)


# ── Attendance ──────────────────────────────────────────────────────

class AttendanceType(str, enum.Enum):
    manual = "manual"
    leave = "leave"


# ── Misc constants ──────────────────────────────────────────────────

ISO_DATE_FORMAT = "%Y-%m-%d"
BACKDATE_LIMIT_DAYS = 7
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
MIN_PASSWORD_LENGTH = 6
TOP_REQUESTERS_LIMIT = 10
