"""
Date arithmetic used by the tenure and payment rules.
"""

from datetime import datetime

from dateutil.relativedelta import relativedelta


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days from ``earlier`` to ``later`` (floored, may be negative)."""
    return (later - earlier).days


def add_months(start: datetime, months: int) -> datetime:
    """Calendar months later, clamped to month end (Jan 31 + 1 month => Feb 28/29)."""
    return start + relativedelta(months=months)


def calendar_months_between(earlier: datetime, later: datetime) -> int:
    """Whole calendar months from ``earlier`` to ``later``, never negative."""
    delta = relativedelta(later, earlier)
    return max(0, delta.years * 12 + delta.months)
