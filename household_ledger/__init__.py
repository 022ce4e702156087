"""
Household Ledger - Source Package

Core of a personal financial ledger whose durable storage is a flat,
append-only sheet of (period, category, name, amount, detail) rows.

DESIGN PRINCIPLES:
1. One row log is the single source of truth
2. Every view is recomputed from a full reload
3. Repeated writes to the same logical entry never duplicate
4. Lenient parsing, but every skipped or defaulted row is reported
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Household Ledger Team"
