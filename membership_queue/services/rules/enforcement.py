"""
Payment default enforcement.

Every Active member in default is removed from the queue and set to
Inactive. The queue entry goes first so a crash between the two writes
leaves the member un-queued rather than queued while inactive. The
automated path never re-activates anyone.
"""

import asyncio
from datetime import datetime, timezone
from typing import Dict, List

import structlog

from membership_queue.models.member import MemberStatus
from membership_queue.services.ledger.base import LedgerAccessor
from .payment_status import resolve_payment_status
from .ranking import group_payments_by_member
from .types import BusinessRules, Clock, EnforcementReport, MemberRecord, PaymentRecord, utc_now


logger = structlog.get_logger(__name__)


class DefaultEnforcer:
    """Continue-on-error batch that demotes defaulted members."""

    def __init__(
        self,
        ledger: LedgerAccessor,
        rules: BusinessRules,
        clock: Clock = utc_now,
        max_concurrency: int = 10
    ):
        self.ledger = ledger
        self.rules = rules
        self.clock = clock
        self.max_concurrency = max(1, max_concurrency)
        self.logger = logger.bind(service="default_enforcer")

    def select_defaulted(
        self,
        members: List[MemberRecord],
        payments_by_member: Dict[int, List[PaymentRecord]]
    ) -> List[MemberRecord]:
        """Active members whose payment status is in default."""
        now = self.clock()
        return [
            member for member in members
            if member.is_active
            and resolve_payment_status(member.id, payments_by_member.get(member.id, []), self.rules, now).is_in_default
        ]

    async def run(self) -> EnforcementReport:
        start_time = datetime.now(timezone.utc)
        report = EnforcementReport()

        members = await self.ledger.list_members(status=MemberStatus.ACTIVE.value)
        payments_by_member = group_payments_by_member(await self.ledger.list_completed_payments())
        defaulted = self.select_defaulted(members, payments_by_member)
        report.scanned = len(members)
        report.defaulted = len(defaulted)

        self.logger.info(
            "Starting default enforcement",
            active_members=report.scanned,
            defaulted_members=report.defaulted
        )

        semaphore = asyncio.Semaphore(self.max_concurrency)
        await asyncio.gather(*(self._demote(member, report, semaphore) for member in defaulted))

        duration = (datetime.now(timezone.utc) - start_time).total_seconds()

        if report.failed_member_ids:
            self.logger.error(
                "Default enforcement completed with failures",
                updated=report.updated,
                removed=report.removed,
                failed_member_ids=report.failed_member_ids,
                duration=f"{duration:.2f}s"
            )
        else:
            self.logger.info(
                "Default enforcement completed",
                updated=report.updated,
                removed=report.removed,
                duration=f"{duration:.2f}s"
            )

        return report

    async def _demote(self, member: MemberRecord, report: EnforcementReport, semaphore: asyncio.Semaphore) -> None:
        async with semaphore:
            try:
                if await self.ledger.delete_queue_entry(member.id):
                    report.removed += 1
            except Exception as e:
                # Status stays Active so the member is not left queued while inactive
                report.record_failure(member.id, f"queue removal failed: {e}")
                self.logger.error("Failed to remove defaulted member from queue", member_id=member.id, error=str(e))
                return

            try:
                await self.ledger.update_member_status(member.id, MemberStatus.INACTIVE.value)
                report.updated += 1
            except Exception as e:
                report.record_failure(member.id, f"status update failed: {e}")
                self.logger.error("Failed to deactivate defaulted member", member_id=member.id, error=str(e))
                return

            self.logger.info("Member defaulted", member_id=member.id, member_name=member.name)
