#!/usr/bin/env python3
"""Create an admin account, or promote an existing user to admin.

Usage:
    python -m scripts.create_admin --email admin@example.com --name "Admin" --password secret1
    python -m scripts.create_admin --email existing@example.com          # promote only
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from attendly.auth.schemas import RegisterRequest
from attendly.auth.service import get_user_by_email, register_user
from attendly.database import Base, async_session_factory, engine
import attendly.attendance.models  # noqa: F401
import attendly.leave.models  # noqa: F401

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("create_admin")


async def ensure_admin(
    db: AsyncSession,
    email: str,
    name: Optional[str] = None,
    password: Optional[str] = None,
) -> str:
    """Promote *email* to admin, creating the account when name and password are given.

    Returns "promoted", "created" or "unchanged".
    """
    user = await get_user_by_email(db, email.strip().lower())
    if user is not None:
        if user.is_admin:
            return "unchanged"
        user.is_admin = True
        await db.flush()
        return "promoted"

    if not name or not password:
        raise ValueError(f"No user with email {email!r}; --name and --password are required to create one.")

    await register_user(
        db, RegisterRequest(name=name, email=email, password=password), is_admin=True,
    )
    return "created"


async def run(email: str, name: Optional[str], password: Optional[str]) -> str:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as session:
        async with session.begin():
            outcome = await ensure_admin(session, email, name, password)
    await engine.dispose()
    return outcome


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or promote an admin account")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name")
    parser.add_argument("--password")
    args = parser.parse_args()

    try:
        outcome = asyncio.run(run(args.email, args.name, args.password))
    except ValueError as exc:
        logger.error("%s", exc)
        sys.exit(1)
    logger.info("Admin %s: %s", outcome, args.email)


if __name__ == "__main__":
    main()
