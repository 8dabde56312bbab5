"""
Tenure start calculation.

A member's tenure starts at their first completed signup-fee payment. A
member who lapsed (went longer than the grace period without paying) and
later pays a new signup fee starts a brand-new tenure; the earlier history
earns no credit.
"""

from datetime import datetime
from typing import Iterable, Optional

import structlog

from membership_queue.services.ledger.base import LedgerAccessor
from membership_queue.utils.dates import days_between, calendar_months_between
from .classification import completed_in_order, is_monthly_fee, is_signup_fee
from .types import BusinessRules, PaymentRecord, TenureRecord


logger = structlog.get_logger(__name__)


def tenure_start_from(payments: Iterable[PaymentRecord], rules: BusinessRules) -> Optional[datetime]:
    """Return the tenure start for one member's payments, or None (no tenure)."""
    tenure_start: Optional[datetime] = None
    last_payment: Optional[datetime] = None

    for payment in completed_in_order(payments):
        if is_signup_fee(payment, rules):
            if tenure_start is None:
                tenure_start = payment.date
            elif last_payment is not None and days_between(last_payment, payment.date) > rules.grace_period_days:
                # Re-entry after a lapse
                tenure_start = payment.date
        elif not is_monthly_fee(payment, rules):
            continue
        last_payment = payment.date

    return tenure_start


def build_tenure_record(
    member_id: int,
    payments: Iterable[PaymentRecord],
    rules: BusinessRules,
    now: datetime
) -> Optional[TenureRecord]:
    """Derive the tenure record for one member, or None if tenure never started."""
    ordered = completed_in_order(payments)
    tenure_start = tenure_start_from(ordered, rules)
    if tenure_start is None:
        return None

    return TenureRecord(
        member_id=member_id,
        tenure_start=tenure_start,
        continuous_tenure_months=calendar_months_between(tenure_start, now),
        total_paid=sum(p.amount for p in ordered),
        last_payment_date=ordered[-1].date if ordered else None,
    )


class TenureCalculator:
    """Looks up a single member's tenure start through the ledger."""

    def __init__(self, ledger: LedgerAccessor, rules: BusinessRules):
        self.ledger = ledger
        self.rules = rules
        self.logger = logger.bind(service="tenure_calculator")

    async def get_tenure_start(self, member_id: int) -> Optional[datetime]:
        payments = await self.ledger.list_completed_payments(member_id=member_id)
        tenure_start = tenure_start_from(payments, self.rules)

        if tenure_start is None:
            self.logger.debug("No signup fee on record, tenure not started", member_id=member_id)

        return tenure_start
