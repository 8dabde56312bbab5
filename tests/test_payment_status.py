"""
Tests for member payment status.
"""

import pytest

from membership_queue.services.rules.payment_status import (
    MemberPaymentStatusResolver, NEVER_PAID_DAYS, resolve_payment_status
)
from membership_queue.services.rules.types import PaymentHealth


def test_signup_only_45_days_ago_is_overdue(ledger, rules, at):
    ledger.signup(1, 0)

    status = resolve_payment_status(1, ledger.payments, rules, at(45))

    assert status.is_in_default
    assert status.status is PaymentHealth.OVERDUE
    assert status.days_since_last_payment == 45
    assert status.has_joining_fee
    assert status.joining_fee_date == at(0)
    assert status.last_monthly_payment is None


def test_recent_monthly_payment_is_current(ledger, rules, at):
    ledger.signup(1, 0)
    ledger.monthly(1, 30, 60)

    status = resolve_payment_status(1, ledger.payments, rules, at(70))

    assert status.status is PaymentHealth.CURRENT
    assert not status.is_in_default
    assert status.days_since_last_payment == 10
    assert status.last_monthly_payment == at(60)
    assert status.monthly_payment_count == 2
    assert status.total_paid == rules.signup_fee + 2 * rules.monthly_fee
    assert status.days_until_default == 20
    assert status.next_payment_due.month == at(60).month + 1


def test_grace_period_boundary(ledger, rules, at):
    ledger.signup(1, 0)

    assert not resolve_payment_status(1, ledger.payments, rules, at(30)).is_in_default
    assert resolve_payment_status(1, ledger.payments, rules, at(31)).is_in_default


def test_missing_joining_fee_is_suspended(ledger, rules, at):
    ledger.monthly(1, 30)

    status = resolve_payment_status(1, ledger.payments, rules, at(35))

    assert status.status is PaymentHealth.SUSPENDED
    assert not status.has_joining_fee
    assert not status.is_in_default


def test_never_paid_member(rules, at):
    status = resolve_payment_status(1, [], rules, at(0))

    assert status.status is PaymentHealth.SUSPENDED
    assert status.is_in_default
    assert status.days_since_last_payment == NEVER_PAID_DAYS
    assert status.next_payment_due is None


def test_re_entry_signup_resets_the_reference_date(ledger, rules, at):
    ledger.signup(1, 0)
    ledger.monthly(1, 30)
    ledger.signup(1, 90)

    status = resolve_payment_status(1, ledger.payments, rules, at(100))

    assert status.joining_fee_date == at(90)
    assert status.days_since_last_payment == 10
    assert not status.is_in_default


@pytest.mark.asyncio
async def test_resolver_degrades_when_ledger_unavailable(ledger, rules, clock):
    ledger.signup(1, 0)
    ledger.fail_reads = True

    status = await MemberPaymentStatusResolver(ledger, rules, clock).get_member_payment_status(1)

    assert status.status is PaymentHealth.SUSPENDED
    assert status.days_since_last_payment == NEVER_PAID_DAYS
    assert status.total_paid == 0
