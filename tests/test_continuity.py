"""
Tests for continuous tenure checks.
"""

import pytest

from membership_queue.services.rules.continuity import (
    ContinuityChecker, find_historical_gap, is_continuous, is_currently_lapsed
)


def test_gap_equal_to_grace_period_is_allowed(ledger, rules, at):
    ledger.signup(1, 0)
    ledger.monthly(1, 30)

    assert is_continuous(ledger.payments, at(0), rules, at(40))


def test_gap_one_day_over_grace_period_breaks(ledger, rules, at):
    ledger.signup(1, 0)
    ledger.monthly(1, 31)

    assert not is_continuous(ledger.payments, at(0), rules, at(40))


def test_late_monthly_payment_breaks_history(ledger, rules, at):
    ledger.signup(1, 0)
    ledger.monthly(1, 30, 61, 92)

    scan = find_historical_gap(ledger.payments, at(0), rules)

    assert scan.breaking_payment.date == at(61)
    assert scan.last_payment_date == at(30)
    assert not is_continuous(ledger.payments, at(0), rules, at(100))


def test_member_behind_since_last_payment_is_not_continuous(ledger, rules, at):
    ledger.signup(1, 0)
    ledger.monthly(1, 30)

    assert is_continuous(ledger.payments, at(0), rules, at(60))
    assert not is_continuous(ledger.payments, at(0), rules, at(61))


def test_currently_lapsed_is_strict(rules, at):
    assert not is_currently_lapsed(at(0), at(30), rules)
    assert is_currently_lapsed(at(0), at(31), rules)


def test_no_payments_is_not_continuous(rules, at):
    assert not is_continuous([], at(0), rules, at(1))


def test_history_before_tenure_start_is_ignored(ledger, rules, at):
    ledger.signup(1, 0)
    ledger.monthly(1, 90)
    ledger.signup(1, 200)
    ledger.monthly(1, 230)

    assert is_continuous(ledger.payments, at(200), rules, at(250))
    assert not is_continuous(ledger.payments, at(0), rules, at(250))


def test_other_amounts_do_not_extend_continuity(ledger, rules, at):
    ledger.signup(1, 0)
    ledger.pay(1, 999, 25)

    scan = find_historical_gap(ledger.payments, at(0), rules)

    assert scan.last_payment_date == at(0)
    assert not is_continuous(ledger.payments, at(0), rules, at(40))


@pytest.mark.asyncio
async def test_checker_uses_member_payments(ledger, rules, clock, at):
    ledger.enroll(1, 0, 100)
    ledger.monthly(2, 90)
    clock.set_day(100)

    checker = ContinuityChecker(ledger, rules, clock)

    assert await checker.is_continuous(1, at(0))
    assert await checker.check_member(1)
    # No signup fee, so no tenure to be continuous in
    assert not await checker.check_member(2)
