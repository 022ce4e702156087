"""
Period Keys

Every ledger row is partitioned by a coarse "YYYY.MM" period key.
Older rows were sometimes written as "YYYY-MM"; both spellings refer
to the same period and are normalized before comparison.
"""

import re
from typing import Optional

DEFAULT_LEGACY_CUTOFF = "2025.09"

_PERIOD_RE = re.compile(r"^(\d{4})\.(\d{2})$")


def normalize_period(period: Optional[str]) -> str:
    """Normalize a period key ("2025-12" -> "2025.12"). None becomes ""."""
    if not period:
        return ""
    return str(period).strip().replace("-", ".", 1)


def is_valid_period(period: Optional[str]) -> bool:
    """Check that a period is a well-formed YYYY.MM key with a real month."""
    match = _PERIOD_RE.match(normalize_period(period))
    if not match:
        return False
    return 1 <= int(match.group(2)) <= 12


def _split(period: str) -> Optional[tuple[int, int]]:
    parts = normalize_period(period).split(".")
    if len(parts) != 2:
        return None
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        return None


def is_legacy_period(period: Optional[str], cutoff: str = DEFAULT_LEGACY_CUTOFF) -> bool:
    """
    Check whether a period belongs to the read-only legacy data.

    Compares (year, month) numerically so "2025.10" is not treated as
    earlier than "2025.9". Unparseable periods are never legacy.
    """
    if not period:
        return False
    current = _split(period)
    limit = _split(cutoff)
    if current is None or limit is None:
        return False
    return current <= limit
