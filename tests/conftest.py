"""
Shared fixtures: an in-memory ledger, a fixed clock and the default rules.
"""

import dataclasses
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set

import pytest

from membership_queue.core.exceptions import DataAccessError
from membership_queue.models.member import MemberStatus
from membership_queue.models.payment import PaymentStatus
from membership_queue.services.ledger.base import LedgerAccessor
from membership_queue.services.membership_queue_service import MembershipQueueService
from membership_queue.services.rules.types import (
    BusinessRules, MemberRecord, PaymentRecord, QueueEntryRecord
)


SIGNUP_FEE = 30_000
MONTHLY_FEE = 2_500
DAY0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set_day(self, day: int) -> None:
        self.now = DAY0 + timedelta(days=day)


class InMemoryLedger(LedgerAccessor):
    """Ledger fake with switchable failures."""

    def __init__(self):
        self.members: Dict[int, MemberRecord] = {}
        self.payments: List[PaymentRecord] = []
        self.queue: Dict[int, QueueEntryRecord] = {}

        self.fail_reads = False
        self.fail_status_updates: Set[int] = set()
        self.fail_queue_deletes: Set[int] = set()
        self.fail_upserts: Set[int] = set()
        self.writes: List[tuple] = []

    # Seeding helpers

    def add_member(self, member_id: int, name: Optional[str] = None, status: str = MemberStatus.ACTIVE.value):
        self.members[member_id] = MemberRecord(id=member_id, name=name or f"Member {member_id}", status=status)
        return self.members[member_id]

    def pay(self, member_id: int, amount: int, day: int, status: str = PaymentStatus.COMPLETED.value):
        payment = PaymentRecord(
            member_id=member_id,
            amount=amount,
            date=DAY0 + timedelta(days=day),
            status=status,
            id=len(self.payments) + 1,
        )
        self.payments.append(payment)
        return payment

    def signup(self, member_id: int, day: int):
        return self.pay(member_id, SIGNUP_FEE, day)

    def monthly(self, member_id: int, *days: int):
        for day in days:
            self.pay(member_id, MONTHLY_FEE, day)

    def enroll(self, member_id: int, start_day: int, until_day: int, name: Optional[str] = None):
        """Active member paying every 30 days from ``start_day`` up to ``until_day``."""
        self.add_member(member_id, name=name)
        self.signup(member_id, start_day)
        self.monthly(member_id, *range(start_day + 30, until_day + 1, 30))

    def queue_at(self, member_id: int, position: int):
        self.queue[member_id] = QueueEntryRecord(member_id=member_id, queue_position=position)

    def _check_reads(self):
        if self.fail_reads:
            raise DataAccessError("Ledger operation failed: read", {"error": "connection refused"})

    # LedgerAccessor

    async def get_member(self, member_id: int) -> Optional[MemberRecord]:
        self._check_reads()
        return self.members.get(member_id)

    async def list_members(self, status: Optional[str] = None) -> List[MemberRecord]:
        self._check_reads()
        return [
            m for _, m in sorted(self.members.items())
            if status is None or m.status == status
        ]

    async def list_completed_payments(self, member_id: Optional[int] = None) -> List[PaymentRecord]:
        self._check_reads()
        payments = [
            p for p in self.payments
            if p.is_completed and (member_id is None or p.member_id == member_id)
        ]
        return sorted(payments, key=lambda p: (p.date, p.id))

    async def list_queue_entries(self) -> List[QueueEntryRecord]:
        self._check_reads()
        return sorted(self.queue.values(), key=lambda e: (e.queue_position, e.member_id))

    async def upsert_queue_entry(self, member_id, queue_position, subscription_active, updated_at) -> None:
        if member_id in self.fail_upserts:
            raise DataAccessError("Ledger operation failed: upsert_queue_entry", {"member_id": member_id})
        self.queue[member_id] = QueueEntryRecord(member_id, queue_position, subscription_active, updated_at)
        self.writes.append(("upsert", member_id))

    async def delete_queue_entry(self, member_id: int) -> bool:
        if member_id in self.fail_queue_deletes:
            raise DataAccessError("Ledger operation failed: delete_queue_entry", {"member_id": member_id})
        self.writes.append(("delete", member_id))
        return self.queue.pop(member_id, None) is not None

    async def update_member_status(self, member_id: int, status: str) -> None:
        if member_id in self.fail_status_updates:
            raise DataAccessError("Ledger operation failed: update_member_status", {"member_id": member_id})
        self.members[member_id] = dataclasses.replace(self.members[member_id], status=status)
        self.writes.append(("status", member_id))


@pytest.fixture
def rules() -> BusinessRules:
    return BusinessRules(
        signup_fee=SIGNUP_FEE,
        monthly_fee=MONTHLY_FEE,
        payout_threshold=10_000_000,
        reward_per_winner=10_000_000,
        launch_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        payout_months_required=12,
        grace_period_days=30,
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(DAY0 + timedelta(days=100))


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def service(ledger, rules, clock) -> MembershipQueueService:
    return MembershipQueueService(ledger, rules=rules, clock=clock, max_concurrency=4)


@pytest.fixture
def at():
    """Datetime ``day`` days after DAY0."""
    return lambda day: DAY0 + timedelta(days=day)
