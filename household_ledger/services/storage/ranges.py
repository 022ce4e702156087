"""A1 range helpers for the five-column ledger table."""

import re
from typing import Optional

from household_ledger.services.storage.interface import InvalidRangeError

FIRST_COLUMN = "A"
LAST_COLUMN = "E"

_A1_RANGE = re.compile(
    r"^(?:(?:'[^']+'|[^!]+)!)?([A-Z]+)(\d+)?(?::([A-Z]+)(\d+)?)?$"
)


def row_range(row_number: int) -> str:
    """A1 range covering one full ledger row, e.g. row_range(7) -> "A7:E7"."""
    if row_number < 1:
        raise InvalidRangeError(f"Row numbers are 1-based, got {row_number}")
    return f"{FIRST_COLUMN}{row_number}:{LAST_COLUMN}{row_number}"


def range_start_row(range_spec: str) -> Optional[int]:
    """
    First 1-based row number named by an A1 range.

    "A7:E7" -> 7, "'시트1'!A3:E4" -> 3, "A:E" -> None.
    """
    match = _A1_RANGE.match((range_spec or "").strip())
    if not match:
        raise InvalidRangeError(f"Not an A1 range: {range_spec!r}")
    start = match.group(2)
    return int(start) if start else None
