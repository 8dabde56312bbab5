"""
Persists the ranked queue.

Each run replaces the whole queue: entries for members missing from the
ranking are deleted and every ranked member is upserted at its position.
"""

import asyncio
from typing import List

import structlog

from membership_queue.services.ledger.base import LedgerAccessor
from .types import Clock, RankedMember, SyncReport, utc_now


logger = structlog.get_logger(__name__)


class QueueSyncer:
    """Continue-on-error writer of queue positions."""

    def __init__(self, ledger: LedgerAccessor, clock: Clock = utc_now, max_concurrency: int = 10):
        self.ledger = ledger
        self.clock = clock
        self.max_concurrency = max(1, max_concurrency)
        self.logger = logger.bind(service="queue_syncer")

    async def sync(self, ranked: List[RankedMember]) -> SyncReport:
        report = SyncReport(ranked=len(ranked))
        updated_at = self.clock()

        existing = await self.ledger.list_queue_entries()
        ranked_ids = {member.member_id for member in ranked}
        stale_ids = [entry.member_id for entry in existing if entry.member_id not in ranked_ids]

        semaphore = asyncio.Semaphore(self.max_concurrency)

        await asyncio.gather(*(self._remove(member_id, report, semaphore) for member_id in stale_ids))
        await asyncio.gather(*(self._upsert(member, updated_at, report, semaphore) for member in ranked))

        if report.failed_member_ids:
            self.logger.error(
                "Queue sync completed with failures",
                ranked=report.ranked,
                upserted=report.upserted,
                removed=report.removed,
                failed_member_ids=report.failed_member_ids
            )
        else:
            self.logger.info(
                "Queue sync completed",
                ranked=report.ranked,
                upserted=report.upserted,
                removed=report.removed
            )

        return report

    async def _remove(self, member_id: int, report: SyncReport, semaphore: asyncio.Semaphore) -> None:
        async with semaphore:
            try:
                if await self.ledger.delete_queue_entry(member_id):
                    report.removed += 1
            except Exception as e:
                report.record_failure(member_id, f"stale entry removal failed: {e}")
                self.logger.error("Failed to remove stale queue entry", member_id=member_id, error=str(e))

    async def _upsert(self, member: RankedMember, updated_at, report: SyncReport, semaphore: asyncio.Semaphore) -> None:
        async with semaphore:
            try:
                await self.ledger.upsert_queue_entry(
                    member.member_id,
                    member.queue_position,
                    True,
                    updated_at
                )
                report.upserted += 1
            except Exception as e:
                report.record_failure(member.member_id, f"upsert failed: {e}")
                self.logger.error(
                    "Failed to write queue position",
                    member_id=member.member_id,
                    queue_position=member.queue_position,
                    error=str(e)
                )
