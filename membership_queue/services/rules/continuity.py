"""
Continuous tenure checks.

Continuity is decided in two separate steps: a walk over the payment
history looking for a monthly payment that came too late, and a check that
the member has not fallen behind since their last payment.
"""

from datetime import datetime
from typing import Iterable, NamedTuple, Optional

import structlog

from membership_queue.services.ledger.base import LedgerAccessor
from membership_queue.utils.dates import days_between
from .classification import completed_in_order, fee_payments_since, is_monthly_fee
from .tenure import tenure_start_from
from .types import BusinessRules, Clock, PaymentRecord, utc_now


logger = structlog.get_logger(__name__)


class GapScan(NamedTuple):
    """Result of walking a payment history."""
    breaking_payment: Optional[PaymentRecord]
    last_payment_date: datetime


def find_historical_gap(
    payments: Iterable[PaymentRecord],
    tenure_start: datetime,
    rules: BusinessRules
) -> GapScan:
    """
    Walk payments made since ``tenure_start``.

    Only monthly-fee payments are tested; a gap equal to the grace period is
    allowed. The running last-payment date advances on every signup or
    monthly payment; other amounts are ignored.
    """
    last_payment_date = tenure_start

    for payment in fee_payments_since(payments, tenure_start, rules):
        if is_monthly_fee(payment, rules):
            gap_days = days_between(last_payment_date, payment.date)
            if gap_days > rules.grace_period_days:
                return GapScan(payment, last_payment_date)
        last_payment_date = payment.date

    return GapScan(None, last_payment_date)


def is_currently_lapsed(last_payment_date: datetime, now: datetime, rules: BusinessRules) -> bool:
    return days_between(last_payment_date, now) > rules.grace_period_days


def is_continuous(
    payments: Iterable[PaymentRecord],
    tenure_start: datetime,
    rules: BusinessRules,
    now: datetime
) -> bool:
    ordered = completed_in_order(payments)
    if not ordered:
        return False

    scan = find_historical_gap(ordered, tenure_start, rules)
    if scan.breaking_payment is not None:
        return False

    return not is_currently_lapsed(scan.last_payment_date, now, rules)


class ContinuityChecker:
    """Checks a single member's continuity through the ledger."""

    def __init__(self, ledger: LedgerAccessor, rules: BusinessRules, clock: Clock = utc_now):
        self.ledger = ledger
        self.rules = rules
        self.clock = clock
        self.logger = logger.bind(service="continuity_checker")

    async def is_continuous(self, member_id: int, tenure_start: datetime) -> bool:
        payments = await self.ledger.list_completed_payments(member_id=member_id)
        continuous = is_continuous(payments, tenure_start, self.rules, self.clock())

        self.logger.debug(
            "Continuity checked",
            member_id=member_id,
            tenure_start=tenure_start.isoformat(),
            continuous=continuous
        )
        return continuous

    async def check_member(self, member_id: int) -> bool:
        """Continuity from the member's own tenure start; no tenure means False."""
        payments = await self.ledger.list_completed_payments(member_id=member_id)
        tenure_start = tenure_start_from(payments, self.rules)
        if tenure_start is None:
            return False
        return is_continuous(payments, tenure_start, self.rules, self.clock())
