"""
Ledger accessors used by the rules engine.
"""

from .base import LedgerAccessor
from .sql_ledger import SqlLedger

__all__ = [
    "LedgerAccessor",
    "SqlLedger",
]
