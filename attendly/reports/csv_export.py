"""CSV rendering for report downloads.

Values are quoted only when needed: anything containing a comma, a quote
or a line break is wrapped in double quotes with embedded quotes doubled.
"""

from __future__ import annotations

import csv
import io
from datetime import date, datetime
from typing import Any, Iterable, Sequence

MISSING = "-"


def format_value(value: Any) -> str:
    """Render one cell: booleans as Yes/No, missing values as '-'."""
    if value is None or value == "":
        return MISSING
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, datetime):
        return value.isoformat(sep=" ", timespec="seconds")
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, "value"):  # enum members
        return str(value.value)
    return str(value)


def build_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([format_value(v) for v in row])
    return buffer.getvalue()
