"""
Tests for the membership queue service facade.
"""

import asyncio
import dataclasses

import pytest

from membership_queue.core.exceptions import BatchAlreadyRunningError, MemberNotFoundError
from membership_queue.services.membership_queue_service import BatchRunStatus, MembershipQueueService
from membership_queue.services.rules.types import PaymentHealth


def _hold_reads(ledger):
    """Make member listing wait until the returned event is set."""
    gate = asyncio.Event()
    original = ledger.list_members

    async def list_members(status=None):
        await gate.wait()
        return await original(status=status)

    ledger.list_members = list_members
    return gate


@pytest.mark.asyncio
async def test_overlapping_enforcement_is_rejected(service, ledger):
    ledger.add_member(1)
    gate = _hold_reads(ledger)

    first = asyncio.create_task(service.enforce_payment_defaults())
    await asyncio.sleep(0)

    with pytest.raises(BatchAlreadyRunningError):
        await service.enforce_payment_defaults()

    gate.set()
    report = await first
    assert report.updated == 1


@pytest.mark.asyncio
async def test_overlapping_sync_is_rejected(service, ledger):
    gate = _hold_reads(ledger)

    first = asyncio.create_task(service.sync_queue_positions())
    await asyncio.sleep(0)

    with pytest.raises(BatchAlreadyRunningError):
        await service.sync_queue_positions()

    gate.set()
    assert await first is True


@pytest.mark.asyncio
async def test_enforcement_and_sync_may_overlap(service, ledger):
    gate = _hold_reads(ledger)

    enforcement = asyncio.create_task(service.enforce_payment_defaults())
    sync = asyncio.create_task(service.sync_queue_positions())
    await asyncio.sleep(0)
    gate.set()

    await enforcement
    assert await sync is True


@pytest.mark.asyncio
async def test_enforcement_read_failure_is_reported(service, ledger):
    ledger.fail_reads = True

    report = await service.enforce_payment_defaults()

    assert report.error is not None
    assert not report.success
    assert service.enforcement_stats.status is BatchRunStatus.FAILED
    assert service.enforcement_stats.failed_runs == 1


@pytest.mark.asyncio
async def test_sync_reports_partial_failure(service, ledger, clock):
    ledger.enroll(1, 0, 100)
    ledger.enroll(2, 5, 100)
    ledger.fail_upserts.add(2)
    clock.set_day(100)

    assert await service.sync_queue_positions() is False
    assert service.last_sync.failed_member_ids == [2]
    assert service.sync_stats.last_error == "1 member operation(s) failed"

    ledger.fail_upserts.clear()
    assert await service.sync_queue_positions() is True
    assert service.sync_stats.status is BatchRunStatus.COMPLETED


@pytest.mark.asyncio
async def test_sync_returns_false_when_ledger_unavailable(service, ledger):
    ledger.fail_reads = True

    assert await service.sync_queue_positions() is False
    assert service.last_sync.error is not None


@pytest.mark.asyncio
async def test_unknown_member_lookups_raise(service):
    with pytest.raises(MemberNotFoundError):
        await service.get_member_payment_status(42)
    with pytest.raises(MemberNotFoundError):
        await service.get_tenure_start(42)
    with pytest.raises(MemberNotFoundError):
        await service.check_continuous_tenure(42)


@pytest.mark.asyncio
async def test_member_lookups(service, ledger, clock, at):
    ledger.enroll(1, 0, 100)
    clock.set_day(100)

    status = await service.get_member_payment_status(1)

    assert status.status is PaymentHealth.CURRENT
    assert await service.get_tenure_start(1) == at(0)
    assert await service.check_continuous_tenure(1)


@pytest.mark.asyncio
async def test_payment_status_degrades_when_ledger_unavailable(service, ledger):
    ledger.add_member(1)
    ledger.fail_reads = True

    status = await service.get_member_payment_status(1)

    assert status.status is PaymentHealth.SUSPENDED
    assert status.is_in_default


@pytest.mark.asyncio
async def test_payout_winners_take_the_head_of_the_queue(ledger, rules, clock):
    rules = dataclasses.replace(rules, payout_threshold=50_000, reward_per_winner=50_000, payout_months_required=1)
    service = MembershipQueueService(ledger, rules=rules, clock=clock)
    for member_id, start in [(1, 10), (2, 0), (3, 5)]:
        ledger.enroll(member_id, start, 100)
    clock.set_day(100)

    winners = await service.select_payout_winners()

    # 3 * (30,000 + 3 * 2,500) = 112,500 cents funds two rewards
    assert [w.member_id for w in winners] == [2, 3]


@pytest.mark.asyncio
async def test_no_winners_before_payout_is_ready(service, ledger, clock):
    ledger.enroll(1, 0, 100)
    clock.set_day(100)

    assert await service.select_payout_winners() == []


@pytest.mark.asyncio
async def test_run_business_rules(service, ledger, clock):
    ledger.enroll(1, 0, 100)
    ledger.add_member(2)
    ledger.signup(2, 0)
    ledger.queue_at(2, 1)
    clock.set_day(100)

    summary = await service.run_business_rules()

    assert summary["enforcement"].as_counts() == {"updated": 1, "removed": 1}
    assert summary["queue_synced"] is True
    assert [m.member_id for m in summary["winner_order"]] == [1]
    assert not summary["payout_status"].payout_ready
    assert set(ledger.queue) == {1}


@pytest.mark.asyncio
async def test_queue_statistics_and_consistency(service, ledger, clock):
    ledger.enroll(1, 0, 100)
    ledger.enroll(2, 0, 100)
    clock.set_day(100)

    before = await service.check_queue_consistency()
    await service.sync_queue_positions()
    after = await service.check_queue_consistency()
    stats = await service.get_queue_statistics()

    assert before.needs_resync
    assert not after.needs_resync
    assert stats.total_members == 2
    assert stats.eligible_members == 2


def test_get_status(service):
    status = service.get_status()

    assert status["enforcement"]["status"] == "idle"
    assert status["sync"]["total_runs"] == 0
    assert status["max_concurrency"] == 4
