"""Custom exceptions and RFC 7807 Problem Detail error handlers."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

BASE_ERROR_URI = "https://attendly.dev/errors"


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions → RFC 7807 JSON."""

    def __init__(
        self,
        status_code: int,
        error_type: str,
        title: str,
        detail: str,
        errors: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.title = title
        self.detail = detail
        self.errors = errors
        super().__init__(detail)


class NotFoundException(AppException):
    """404 — entity not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            status_code=404,
            error_type="not-found",
            title=f"{entity_type} Not Found",
            detail=f"{entity_type} with id '{entity_id}' does not exist.",
        )


class ConflictError(AppException):
    """409 — duplicate entry or a clash with existing data."""

    def __init__(self, field: str, value: Any, detail: Optional[str] = None) -> None:
        super().__init__(
            status_code=409,
            error_type="conflict",
            title="Conflict",
            detail=detail or f"An entry with {field}='{value}' already exists.",
            errors={field: [detail or f"'{value}' is already in use."]},
        )


class InvalidStateException(AppException):
    """409 — operation not allowed from the entity's current status."""

    def __init__(self, entity_type: str, current_status: str) -> None:
        self.current_status = current_status
        super().__init__(
            status_code=409,
            error_type="invalid-state",
            title="Invalid State",
            detail=f"{entity_type} is already {current_status}.",
            errors={"status": [current_status]},
        )


class InsufficientBalanceException(AppException):
    """422 — not enough leave days left for the requested range."""

    def __init__(self, requested: int, remaining: Optional[int] = None) -> None:
        if remaining is None:
            detail = f"No leave balance available to cover {requested} day(s)."
        else:
            detail = (
                f"Insufficient leave balance. Remaining: {remaining}, "
                f"Requested: {requested}."
            )
        super().__init__(
            status_code=422,
            error_type="insufficient-balance",
            title="Insufficient Balance",
            detail=detail,
            errors={"balance": [detail]},
        )


class ForbiddenException(AppException):
    """403 — insufficient permissions."""

    def __init__(
        self,
        detail: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(
            status_code=403,
            error_type="forbidden",
            title="Forbidden",
            detail=detail,
        )


class AuthenticationException(AppException):
    """401 — missing, invalid or expired credentials."""

    def __init__(self, detail: str = "Invalid credentials.") -> None:
        super().__init__(
            status_code=401,
            error_type="unauthorized",
            title="Unauthorized",
            detail=detail,
        )


class ValidationException(AppException):
    """422 — business-logic validation failures."""

    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__(
            status_code=422,
            error_type="validation-error",
            title="Validation Error",
            detail="One or more fields failed validation.",
            errors=errors,
        )


# ── RFC 7807 responses ──────────────────────────────────────────────

def problem_response(
    request: Request,
    *,
    status_code: int,
    error_type: str,
    title: str,
    detail: str,
    errors: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    """Render an ``application/problem+json`` body for *request*."""
    body: dict[str, Any] = {
        "type": f"{BASE_ERROR_URI}/{error_type}",
        "title": title,
        "status": status_code,
        "detail": detail,
        "instance": request.url.path,
    }
    if errors:
        body["errors"] = errors
    return JSONResponse(
        status_code=status_code,
        content=body,
        media_type="application/problem+json",
        headers=headers,
    )


def _field_name(loc: tuple) -> str:
    # ("body", "start_date") -> "start_date"; ("query", "page") -> "page"
    if len(loc) > 1:
        return ".".join(str(part) for part in loc[1:])
    return str(loc[0]) if loc else "unknown"


# ── FastAPI handlers ────────────────────────────────────────────────

async def _on_app_exception(request: Request, exc: AppException) -> JSONResponse:
    return problem_response(
        request,
        status_code=exc.status_code,
        error_type=exc.error_type,
        title=exc.title,
        detail=exc.detail,
        errors=exc.errors,
        headers={"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None,
    )


async def _on_request_validation(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    grouped: dict[str, list[str]] = {}
    for err in exc.errors():
        grouped.setdefault(_field_name(tuple(err.get("loc", ()))), []).append(
            err.get("msg", "Invalid value")
        )
    return problem_response(
        request,
        status_code=422,
        error_type="validation-error",
        title="Validation Error",
        detail="Request validation failed.",
        errors=grouped,
    )


async def _on_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return problem_response(
        request,
        status_code=500,
        error_type="internal-error",
        title="Internal Server Error",
        detail="An unexpected error occurred.",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Wire the problem-details handlers into *app*."""
    app.add_exception_handler(AppException, _on_app_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _on_request_validation)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _on_unexpected)
