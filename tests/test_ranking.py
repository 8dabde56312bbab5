"""
Tests for queue ranking.
"""

import pytest

from membership_queue.services.rules.payment_status import resolve_payment_status
from membership_queue.services.rules.ranking import QueueRanker, group_payments_by_member, rank_members


async def _rank(ledger, rules, clock):
    return await QueueRanker(ledger, rules, clock).rank()


@pytest.mark.asyncio
async def test_positions_are_dense_and_follow_tenure(ledger, rules, clock, at):
    ledger.enroll(1, 20, 100)
    ledger.enroll(2, 5, 100)
    ledger.enroll(3, 12, 100)
    ledger.enroll(4, 0, 100)
    clock.set_day(100)

    ranked = await _rank(ledger, rules, clock)

    assert [m.queue_position for m in ranked] == [1, 2, 3, 4]
    assert [m.member_id for m in ranked] == [4, 2, 3, 1]
    assert [m.tenure_start for m in ranked] == [at(0), at(5), at(12), at(20)]


@pytest.mark.asyncio
async def test_equal_tenure_start_ranks_lower_id_first(ledger, rules, clock):
    ledger.enroll(5, 0, 100)
    ledger.enroll(3, 0, 100)
    clock.set_day(100)

    ranked = await _rank(ledger, rules, clock)

    assert [(m.member_id, m.queue_position) for m in ranked] == [(3, 1), (5, 2)]


@pytest.mark.asyncio
async def test_ranking_is_idempotent(ledger, rules, clock):
    for member_id, start in [(1, 3), (2, 3), (3, 0), (4, 9)]:
        ledger.enroll(member_id, start, 100)
    clock.set_day(100)

    first = await _rank(ledger, rules, clock)
    second = await _rank(ledger, rules, clock)

    assert first == second


@pytest.mark.asyncio
async def test_ineligible_members_are_excluded(ledger, rules, clock):
    ledger.enroll(1, 0, 100)
    # Inactive despite paying
    ledger.enroll(2, 0, 100)
    ledger.add_member(2, status="Inactive")
    # Monthly fees only, never paid the signup fee
    ledger.add_member(3)
    ledger.monthly(3, 30, 60, 90)
    # Broke continuity at day 61
    ledger.add_member(4)
    ledger.signup(4, 0)
    ledger.monthly(4, 30, 61, 90)
    # Stopped paying
    ledger.add_member(5)
    ledger.signup(5, 0)
    ledger.monthly(5, 30)
    clock.set_day(100)

    ranked = await _rank(ledger, rules, clock)

    assert [m.member_id for m in ranked] == [1]


@pytest.mark.asyncio
async def test_members_in_default_are_never_ranked(ledger, rules, clock):
    ledger.enroll(1, 0, 100)
    ledger.add_member(2)
    ledger.signup(2, 0)
    ledger.pay(2, 999, 95)
    ledger.add_member(3)
    ledger.signup(3, 0)
    ledger.monthly(3, 30)
    ledger.signup(3, 90)
    clock.set_day(100)

    ranked = await _rank(ledger, rules, clock)
    payments = group_payments_by_member(ledger.payments)
    in_default = {
        member_id for member_id in ledger.members
        if resolve_payment_status(member_id, payments.get(member_id, []), rules, clock()).is_in_default
    }

    assert in_default == {2}
    assert {m.member_id for m in ranked} == {1, 3}


def test_ranked_member_details(ledger, rules, at):
    ledger.enroll(1, 0, 90, name="Alice")

    ranked = rank_members(
        ledger.members.values(),
        group_payments_by_member(ledger.payments),
        rules,
        at(100)
    )

    assert len(ranked) == 1
    assert ranked[0].member_name == "Alice"
    assert ranked[0].total_paid == rules.signup_fee + 3 * rules.monthly_fee
    assert ranked[0].last_payment_date == at(90)
    assert ranked[0].continuous_tenure_months == 3


@pytest.mark.asyncio
async def test_second_signup_within_grace_keeps_member_current(ledger, rules, clock, at):
    ledger.add_member(1)
    ledger.signup(1, 0)
    ledger.signup(1, 25)
    clock.set_day(50)

    ranked = await _rank(ledger, rules, clock)
    status = resolve_payment_status(1, ledger.payments, rules, clock())

    assert [(m.member_id, m.queue_position) for m in ranked] == [(1, 1)]
    assert ranked[0].tenure_start == at(0)
    assert not status.is_in_default
    assert status.days_since_last_payment == 25
