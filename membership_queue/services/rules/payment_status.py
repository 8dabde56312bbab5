"""
Member payment status.

Used by admin detail views and by default enforcement. A member with no
payment history is reported as never paid rather than as an error.
"""

from datetime import datetime
from typing import Iterable, Optional

import structlog

from membership_queue.core.exceptions import DataAccessError
from membership_queue.services.ledger.base import LedgerAccessor
from membership_queue.utils.dates import add_months, days_between
from .classification import completed_in_order, fee_payments_since, is_monthly_fee
from .tenure import tenure_start_from
from .types import (
    NEVER_PAID_DAYS, BusinessRules, Clock, MemberPaymentStatus, PaymentHealth, PaymentRecord, utc_now
)


logger = structlog.get_logger(__name__)


def resolve_payment_status(
    member_id: int,
    payments: Iterable[PaymentRecord],
    rules: BusinessRules,
    now: datetime
) -> MemberPaymentStatus:
    """Pure payment status over one member's payments."""
    ordered = completed_in_order(payments)

    # After a re-entry the joining fee is the one that started the current tenure
    joining_fee_date = tenure_start_from(ordered, rules)
    last_monthly_payment: Optional[datetime] = None
    monthly_payment_count = 0

    for payment in ordered:
        if is_monthly_fee(payment, rules):
            monthly_payment_count += 1
            last_monthly_payment = payment.date

    # Latest fee of the current tenure, the same date the continuity walk ends on
    if joining_fee_date is not None:
        reference_date = list(fee_payments_since(ordered, joining_fee_date, rules))[-1].date
    else:
        reference_date = last_monthly_payment

    if reference_date is not None:
        days_since_last_payment = days_between(reference_date, now)
        next_payment_due = add_months(reference_date, 1)
    else:
        days_since_last_payment = NEVER_PAID_DAYS
        next_payment_due = None

    is_in_default = days_since_last_payment > rules.grace_period_days
    has_joining_fee = joining_fee_date is not None

    if not has_joining_fee:
        status = PaymentHealth.SUSPENDED
    elif is_in_default:
        status = PaymentHealth.OVERDUE
    else:
        status = PaymentHealth.CURRENT

    return MemberPaymentStatus(
        member_id=member_id,
        status=status,
        has_joining_fee=has_joining_fee,
        joining_fee_date=joining_fee_date,
        last_monthly_payment=last_monthly_payment,
        is_in_default=is_in_default,
        days_since_last_payment=days_since_last_payment,
        next_payment_due=next_payment_due,
        total_paid=sum(p.amount for p in ordered),
        monthly_payment_count=monthly_payment_count,
        grace_period_days=rules.grace_period_days,
        days_until_default=0 if is_in_default else max(0, rules.grace_period_days - days_since_last_payment),
    )


def never_paid_status(member_id: int, rules: BusinessRules) -> MemberPaymentStatus:
    """The fully suspended record used when nothing can be read."""
    return MemberPaymentStatus(
        member_id=member_id,
        status=PaymentHealth.SUSPENDED,
        has_joining_fee=False,
        joining_fee_date=None,
        last_monthly_payment=None,
        is_in_default=True,
        days_since_last_payment=NEVER_PAID_DAYS,
        next_payment_due=None,
        total_paid=0,
        monthly_payment_count=0,
        grace_period_days=rules.grace_period_days,
        days_until_default=0,
    )


class MemberPaymentStatusResolver:
    """Resolves one member's payment status; never raises on missing data."""

    def __init__(self, ledger: LedgerAccessor, rules: BusinessRules, clock: Clock = utc_now):
        self.ledger = ledger
        self.rules = rules
        self.clock = clock
        self.logger = logger.bind(service="payment_status_resolver")

    async def get_member_payment_status(self, member_id: int) -> MemberPaymentStatus:
        try:
            payments = await self.ledger.list_completed_payments(member_id=member_id)
        except DataAccessError as e:
            self.logger.warning(
                "Payment status degraded, ledger unavailable",
                member_id=member_id,
                error=e.message
            )
            return never_paid_status(member_id, self.rules)

        return resolve_payment_status(member_id, payments, self.rules, self.clock())
