"""
Membership queue service.

Single entry point for the tenure, ranking, payout and default-enforcement
rules. Read-only operations may run at any frequency; the two batch
operations are single-flight per service instance.
"""

import asyncio
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import structlog

from membership_queue.core.config import settings
from membership_queue.core.exceptions import (
    BatchAlreadyRunningError, DataAccessError, MemberNotFoundError
)
from membership_queue.services.ledger import LedgerAccessor, SqlLedger
from membership_queue.services.rules.continuity import ContinuityChecker
from membership_queue.services.rules.enforcement import DefaultEnforcer
from membership_queue.services.rules.payment_status import MemberPaymentStatusResolver, never_paid_status
from membership_queue.services.rules.payout import PayoutEligibilityEvaluator
from membership_queue.services.rules.queue_audit import check_queue_consistency, queue_statistics
from membership_queue.services.rules.queue_sync import QueueSyncer
from membership_queue.services.rules.ranking import QueueRanker
from membership_queue.services.rules.tenure import TenureCalculator
from membership_queue.services.rules.types import (
    BusinessRules, Clock, ConsistencyReport, EnforcementReport, MemberPaymentStatus,
    PayoutStatus, QueueStatistics, RankedMember, SyncReport, utc_now
)


logger = structlog.get_logger(__name__)


class BatchRunStatus(Enum):
    """Status of a batch operation."""
    IDLE = "idle"
    RUNNING = "running"
    FAILED = "failed"
    COMPLETED = "completed"


@dataclass
class BatchRunStats:
    """Run counters for one batch operation."""
    status: BatchRunStatus = BatchRunStatus.IDLE
    total_runs: int = 0
    failed_runs: int = 0
    last_started_at: Optional[datetime] = None
    last_finished_at: Optional[datetime] = None
    last_duration: float = 0.0
    last_error: Optional[str] = None

    def start(self) -> None:
        self.status = BatchRunStatus.RUNNING
        self.total_runs += 1
        self.last_started_at = datetime.now(timezone.utc)
        self.last_error = None

    def finish(self, success: bool, error: Optional[str] = None) -> None:
        self.status = BatchRunStatus.COMPLETED if success else BatchRunStatus.FAILED
        if not success:
            self.failed_runs += 1
            self.last_error = error
        self.last_finished_at = datetime.now(timezone.utc)
        if self.last_started_at:
            self.last_duration = (self.last_finished_at - self.last_started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


class MembershipQueueService:
    """Facade over the membership rules, bound to one ledger."""

    def __init__(
        self,
        ledger: LedgerAccessor,
        rules: Optional[BusinessRules] = None,
        clock: Optional[Clock] = None,
        max_concurrency: Optional[int] = None
    ):
        self.ledger = ledger
        self.rules = rules or BusinessRules.from_settings()
        self.clock = clock or utc_now
        self.max_concurrency = max_concurrency or settings.max_concurrent_operations
        self.logger = logger.bind(service="membership_queue_service")

        self.tenure = TenureCalculator(ledger, self.rules)
        self.continuity = ContinuityChecker(ledger, self.rules, self.clock)
        self.ranker = QueueRanker(ledger, self.rules, self.clock)
        self.payout = PayoutEligibilityEvaluator(ledger, self.rules, self.clock)
        self.payment_status = MemberPaymentStatusResolver(ledger, self.rules, self.clock)
        self.enforcer = DefaultEnforcer(ledger, self.rules, self.clock, self.max_concurrency)
        self.syncer = QueueSyncer(ledger, self.clock, self.max_concurrency)

        self._enforce_lock = asyncio.Lock()
        self._sync_lock = asyncio.Lock()
        self.enforcement_stats = BatchRunStats()
        self.sync_stats = BatchRunStats()
        self.last_enforcement: Optional[EnforcementReport] = None
        self.last_sync: Optional[SyncReport] = None

    # Read-only operations

    async def compute_payout_status(self) -> PayoutStatus:
        return await self.payout.evaluate()

    async def compute_winner_order(self) -> List[RankedMember]:
        """Preview of the queue as it would be written by a sync."""
        return await self.ranker.rank()

    async def get_member_payment_status(self, member_id: int) -> MemberPaymentStatus:
        try:
            member = await self.ledger.get_member(member_id)
        except DataAccessError as e:
            self.logger.warning("Payment status degraded, ledger unavailable", member_id=member_id, error=e.message)
            return never_paid_status(member_id, self.rules)

        if member is None:
            raise MemberNotFoundError(member_id)

        return await self.payment_status.get_member_payment_status(member_id)

    async def get_tenure_start(self, member_id: int) -> Optional[datetime]:
        await self._require_member(member_id)
        return await self.tenure.get_tenure_start(member_id)

    async def check_continuous_tenure(self, member_id: int) -> bool:
        await self._require_member(member_id)
        return await self.continuity.check_member(member_id)

    async def select_payout_winners(self) -> List[RankedMember]:
        """Head of the queue that the current fund can pay; empty until payout is ready."""
        status = await self.compute_payout_status()
        if not status.payout_ready:
            return []

        ranked = await self.compute_winner_order()
        winners = ranked[:min(status.potential_winners, len(ranked))]

        self.logger.info(
            "Payout winners selected",
            potential_winners=status.potential_winners,
            queue_length=len(ranked),
            winners=len(winners)
        )
        return winners

    async def get_queue_statistics(self) -> QueueStatistics:
        entries = await self.ledger.list_queue_entries()
        ranked = await self.ranker.rank()
        total_revenue = await self.ledger.total_completed_revenue()
        return queue_statistics(entries, ranked, total_revenue, self.rules)

    async def check_queue_consistency(self) -> ConsistencyReport:
        ranked = await self.ranker.rank()
        entries = await self.ledger.list_queue_entries()
        return check_queue_consistency(ranked, entries)

    # Batch operations

    async def enforce_payment_defaults(self) -> EnforcementReport:
        """Demote every Active member in default.

        Per-member failures are listed on the report; a failed batch read
        leaves everyone untouched and sets ``report.error``.

        Raises:
            BatchAlreadyRunningError: if enforcement is already in progress
        """
        if self._enforce_lock.locked():
            raise BatchAlreadyRunningError("enforce_payment_defaults")

        async with self._enforce_lock:
            self.enforcement_stats.start()
            try:
                report = await self.enforcer.run()
            except DataAccessError as e:
                self.logger.error("Default enforcement aborted, ledger unavailable", error=e.message)
                report = EnforcementReport(error=e.message)

            self.enforcement_stats.finish(report.success, report.error or self._failure_summary(report.errors))
            self.last_enforcement = report
            return report

    async def sync_queue_positions(self) -> bool:
        """Rank and persist the queue. True only when every write succeeded.

        Raises:
            BatchAlreadyRunningError: if a sync is already in progress
        """
        if self._sync_lock.locked():
            raise BatchAlreadyRunningError("sync_queue_positions")

        async with self._sync_lock:
            self.sync_stats.start()
            try:
                ranked = await self.ranker.rank()
                report = await self.syncer.sync(ranked)
            except DataAccessError as e:
                self.logger.error("Queue sync aborted, ledger unavailable", error=e.message)
                report = SyncReport(error=e.message)

            self.sync_stats.finish(report.success, report.error or self._failure_summary(report.errors))
            self.last_sync = report
            return report.success

    async def run_business_rules(self) -> Dict[str, Any]:
        """Enforce defaults, resync the queue and report payout readiness in one pass."""
        self.logger.info("Running business rules")

        enforcement = await self.enforce_payment_defaults()
        queue_synced = await self.sync_queue_positions()
        payout_status = await self.compute_payout_status()

        try:
            winner_order = await self.compute_winner_order()
        except DataAccessError as e:
            self.logger.warning("Winner order unavailable", error=e.message)
            winner_order = []

        summary = {
            "enforcement": enforcement,
            "queue_synced": queue_synced,
            "payout_status": payout_status,
            "winner_order": winner_order,
        }

        self.logger.info(
            "Business rules completed",
            members_defaulted=enforcement.updated,
            queue_synced=queue_synced,
            payout_ready=payout_status.payout_ready,
            queue_length=len(winner_order)
        )
        return summary

    def get_status(self) -> Dict[str, Any]:
        """Current batch status and statistics."""
        return {
            "enforcement": self.enforcement_stats.to_dict(),
            "sync": self.sync_stats.to_dict(),
            "max_concurrency": self.max_concurrency,
            "grace_period_days": self.rules.grace_period_days,
        }

    async def _require_member(self, member_id: int) -> None:
        if await self.ledger.get_member(member_id) is None:
            raise MemberNotFoundError(member_id)

    @staticmethod
    def _failure_summary(errors: Dict[int, str]) -> Optional[str]:
        if not errors:
            return None
        return f"{len(errors)} member operation(s) failed"


# Global service instance shared by the API and the scheduler
_membership_queue_service: Optional[MembershipQueueService] = None


def get_membership_queue_service(ledger: Optional[LedgerAccessor] = None) -> MembershipQueueService:
    """Get or create the global MembershipQueueService instance."""
    global _membership_queue_service
    if _membership_queue_service is None:
        _membership_queue_service = MembershipQueueService(ledger or SqlLedger())
    return _membership_queue_service


def reset_membership_queue_service() -> None:
    global _membership_queue_service
    _membership_queue_service = None
