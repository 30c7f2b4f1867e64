"""Calendar helpers shared by the leave and attendance modules.

All ranges are inclusive on both ends: a request from 2024-01-10 to
2024-01-12 covers three days.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Iterator

from attendly.common.constants import BACKDATE_LIMIT_DAYS, ISO_DATE_FORMAT

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def inclusive_days(start: date, end: date) -> int:
    """Number of calendar days in [start, end]."""
    return (end - start).days + 1


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every calendar date from *start* to *end* inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def parse_strict_date(value: str) -> date:
    """Parse ``YYYY-MM-DD``; anything else (or an impossible date) raises ValueError."""
    if not isinstance(value, str) or not _ISO_DATE_RE.match(value):
        raise ValueError(f"Invalid date format: {value!r}. Use YYYY-MM-DD.")
    return datetime.strptime(value, ISO_DATE_FORMAT).date()


def earliest_allowed_start(today: date) -> date:
    """Oldest start date a new leave request may use."""
    return today - timedelta(days=BACKDATE_LIMIT_DAYS)
