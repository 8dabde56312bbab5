"""
Tests for queue sync and queue audit.
"""

import pytest

from membership_queue.services.rules.queue_audit import check_queue_consistency, queue_statistics
from membership_queue.services.rules.queue_sync import QueueSyncer
from membership_queue.services.rules.ranking import QueueRanker
from membership_queue.services.rules.types import QueueEntryRecord


@pytest.fixture
def ranked_ledger(ledger, clock):
    ledger.enroll(1, 10, 100)
    ledger.enroll(2, 0, 100)
    ledger.enroll(3, 5, 100)
    clock.set_day(100)
    return ledger


async def _sync(ledger, rules, clock):
    ranked = await QueueRanker(ledger, rules, clock).rank()
    return ranked, await QueueSyncer(ledger, clock, max_concurrency=2).sync(ranked)


@pytest.mark.asyncio
async def test_sync_writes_dense_positions(ranked_ledger, rules, clock):
    _, report = await _sync(ranked_ledger, rules, clock)

    assert report.success
    assert report.upserted == 3
    assert {m: e.queue_position for m, e in ranked_ledger.queue.items()} == {2: 1, 3: 2, 1: 3}
    assert all(e.subscription_active for e in ranked_ledger.queue.values())
    assert all(e.updated_at == clock() for e in ranked_ledger.queue.values())


@pytest.mark.asyncio
async def test_sync_removes_stale_entries(ranked_ledger, rules, clock):
    ranked_ledger.add_member(8, status="Inactive")
    ranked_ledger.queue_at(8, 1)
    ranked_ledger.queue_at(2, 7)

    _, report = await _sync(ranked_ledger, rules, clock)

    assert report.removed == 1
    assert set(ranked_ledger.queue) == {1, 2, 3}
    assert ranked_ledger.queue[2].queue_position == 1


@pytest.mark.asyncio
async def test_sync_continues_past_failed_upserts(ranked_ledger, rules, clock):
    ranked_ledger.fail_upserts.add(3)

    _, report = await _sync(ranked_ledger, rules, clock)

    assert not report.success
    assert report.failed_member_ids == [3]
    assert report.upserted == 2
    assert set(ranked_ledger.queue) == {1, 2}


@pytest.mark.asyncio
async def test_next_sync_heals_the_queue(ranked_ledger, rules, clock):
    ranked_ledger.fail_upserts.add(3)
    await _sync(ranked_ledger, rules, clock)

    ranked_ledger.fail_upserts.clear()
    _, report = await _sync(ranked_ledger, rules, clock)

    assert report.success
    assert sorted(e.queue_position for e in ranked_ledger.queue.values()) == [1, 2, 3]


@pytest.mark.asyncio
async def test_consistency_audit_flags_missing_stale_and_gaps(ranked_ledger, rules, clock):
    ranked = await QueueRanker(ranked_ledger, rules, clock).rank()
    entries = [
        QueueEntryRecord(member_id=2, queue_position=1),
        QueueEntryRecord(member_id=9, queue_position=3),
        QueueEntryRecord(member_id=1, queue_position=3),
    ]

    report = check_queue_consistency(ranked, entries)

    kinds = sorted(w.kind for w in report.warnings)
    assert report.needs_resync
    assert kinds == ["duplicate_position", "missing_entry", "position_gap", "stale_entry"]
    assert {w.member_id for w in report.warnings if w.kind == "missing_entry"} == {3}
    assert {w.member_id for w in report.warnings if w.kind == "stale_entry"} == {9}


@pytest.mark.asyncio
async def test_synced_queue_is_consistent(ranked_ledger, rules, clock):
    ranked, _ = await _sync(ranked_ledger, rules, clock)

    report = check_queue_consistency(ranked, await ranked_ledger.list_queue_entries())

    assert not report.needs_resync
    assert report.queue_entries == 3


def test_queue_statistics(rules):
    entries = [
        QueueEntryRecord(member_id=1, queue_position=1),
        QueueEntryRecord(member_id=2, queue_position=2, subscription_active=False),
    ]

    stats = queue_statistics(entries, [], 25_000_000, rules)

    assert stats.total_members == 2
    assert stats.active_members == 1
    assert stats.eligible_members == 0
    assert stats.potential_winners == 2
    assert stats.payout_threshold == rules.payout_threshold


@pytest.mark.asyncio
async def test_queue_statistics_tenure_aggregates(ranked_ledger, rules, clock):
    ranked = await QueueRanker(ranked_ledger, rules, clock).rank()

    stats = queue_statistics([], ranked, 0, rules)

    assert sorted(m.continuous_tenure_months for m in ranked) == [2, 3, 3]
    assert stats.average_tenure_months == 3
    assert stats.longest_tenure_months == 3
    assert stats.eligible_total_paid == 3 * rules.signup_fee + 9 * rules.monthly_fee


def test_queue_statistics_without_eligible_members(rules):
    stats = queue_statistics([], [], 0, rules)

    assert stats.average_tenure_months == 0
    assert stats.longest_tenure_months == 0
    assert stats.eligible_total_paid == 0


@pytest.mark.asyncio
async def test_consistency_audit_flags_swapped_positions(ranked_ledger, rules, clock):
    ranked = await QueueRanker(ranked_ledger, rules, clock).rank()
    entries = [
        QueueEntryRecord(member_id=3, queue_position=1),
        QueueEntryRecord(member_id=2, queue_position=2),
        QueueEntryRecord(member_id=1, queue_position=3),
    ]

    report = check_queue_consistency(ranked, entries)

    assert report.needs_resync
    assert {w.kind for w in report.warnings} == {"position_mismatch"}
    assert {w.member_id for w in report.warnings} == {2, 3}
