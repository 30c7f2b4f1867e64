"""Common module — shared utilities for Attendly."""

from attendly.common.constants import (
    BACKDATE_LIMIT_DAYS,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    AttendanceType,
    LeaveStatus,
)
from attendly.common.exceptions import (
    AppException,
    AuthenticationException,
    ConflictError,
    ForbiddenException,
    InsufficientBalanceException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
    register_exception_handlers,
)
from attendly.common.pagination import PaginationMeta, PaginationParams

__all__ = [
    # Constants / Enums
    "AttendanceType",
    "LeaveStatus",
    "BACKDATE_LIMIT_DAYS",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "AuthenticationException",
    "ConflictError",
    "ForbiddenException",
    "InsufficientBalanceException",
    "InvalidStateException",
    "NotFoundException",
    "ValidationException",
    "register_exception_handlers",
    # Pagination
    "PaginationMeta",
    "PaginationParams",
]
