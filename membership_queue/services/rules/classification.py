"""
Payment kind classification.

Payments carry no explicit kind. A payment is a signup fee or a monthly fee
when its amount equals the configured fee, so re-pricing changes how
historical payments classify. Every rule goes through this module.
"""

from datetime import datetime
from typing import Iterable, Iterator, List

from .types import BusinessRules, PaymentKind, PaymentRecord


def classify_payment(amount: int, rules: BusinessRules) -> PaymentKind:
    if amount == rules.signup_fee:
        return PaymentKind.SIGNUP_FEE
    if amount == rules.monthly_fee:
        return PaymentKind.MONTHLY_FEE
    return PaymentKind.OTHER


def is_signup_fee(payment: PaymentRecord, rules: BusinessRules) -> bool:
    return classify_payment(payment.amount, rules) is PaymentKind.SIGNUP_FEE


def is_monthly_fee(payment: PaymentRecord, rules: BusinessRules) -> bool:
    return classify_payment(payment.amount, rules) is PaymentKind.MONTHLY_FEE


def completed_in_order(payments: Iterable[PaymentRecord]) -> List[PaymentRecord]:
    """Completed payments sorted ascending by date (stable on ties)."""
    return sorted(
        (p for p in payments if p.is_completed),
        key=lambda p: (p.date, p.id if p.id is not None else 0)
    )


def fee_payments_since(
    payments: Iterable[PaymentRecord],
    since: datetime,
    rules: BusinessRules
) -> Iterator[PaymentRecord]:
    """Completed signup and monthly fees dated on or after ``since``, oldest first.

    Continuity and payment status both take the last payment from this
    sequence.
    """
    for payment in completed_in_order(payments):
        if payment.date < since:
            continue
        if is_signup_fee(payment, rules) or is_monthly_fee(payment, rules):
            yield payment
