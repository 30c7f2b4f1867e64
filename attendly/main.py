"""Attendly — FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from attendly.attendance.router import router as attendance_router
from attendly.auth.router import router as auth_router
from attendly.auth.router import users_router
from attendly.common.exceptions import register_exception_handlers
from attendly.common.rate_limit import limiter
from attendly.config import settings
from attendly.database import Base, engine
from attendly.leave.router import balances_router, leave_types_router
from attendly.leave.router import router as leave_router
from attendly.reports.router import router as reports_router

# Register every model on Base.metadata before create_all.
import attendly.attendance.models  # noqa: F401
import attendly.auth.models  # noqa: F401
import attendly.leave.models  # noqa: F401

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def configure_logging() -> None:
    """Apply LOG_LEVEL to the root logger."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    configure_logging()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Attendly %s started (%s)", API_VERSION, settings.ENVIRONMENT)
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Attendly",
        description="Attendance marking, leave requests and approvals",
        version=API_VERSION,
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": API_VERSION,
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(users_router, prefix="/api/v1/users", tags=["users"])
    app.include_router(attendance_router, prefix="/api/v1/attendance", tags=["attendance"])
    app.include_router(leave_types_router, prefix="/api/v1/leave-types", tags=["leave-types"])
    app.include_router(balances_router, prefix="/api/v1/leave-balances", tags=["leave-balances"])
    app.include_router(leave_router, prefix="/api/v1/leaves", tags=["leave"])
    app.include_router(reports_router, prefix="/api/v1/reports", tags=["reports"])

    return app


app = create_app()
