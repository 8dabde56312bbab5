"""
Queue ranking.

The queue is every Active member with a signup fee on record and unbroken
tenure, ordered by tenure start with member id as the tie-break. Positions
are 1-based and dense.
"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List

import structlog

from membership_queue.models.member import MemberStatus
from membership_queue.services.ledger.base import LedgerAccessor
from .continuity import is_continuous
from .tenure import build_tenure_record
from .types import BusinessRules, Clock, MemberRecord, PaymentRecord, RankedMember, utc_now


logger = structlog.get_logger(__name__)


def group_payments_by_member(payments: Iterable[PaymentRecord]) -> Dict[int, List[PaymentRecord]]:
    grouped: Dict[int, List[PaymentRecord]] = defaultdict(list)
    for payment in payments:
        grouped[payment.member_id].append(payment)
    return grouped


def rank_members(
    members: Iterable[MemberRecord],
    payments_by_member: Dict[int, List[PaymentRecord]],
    rules: BusinessRules,
    now: datetime
) -> List[RankedMember]:
    """Pure ranking over already-fetched records."""
    eligible = []

    for member in members:
        if not member.is_active:
            continue

        payments = payments_by_member.get(member.id, [])
        tenure = build_tenure_record(member.id, payments, rules, now)
        if tenure is None:
            continue

        if not is_continuous(payments, tenure.tenure_start, rules, now):
            continue

        eligible.append((member, tenure))

    eligible.sort(key=lambda item: (item[1].tenure_start, item[0].id))

    return [
        RankedMember(
            member_id=member.id,
            member_name=member.name,
            queue_position=index + 1,
            tenure_start=tenure.tenure_start,
            continuous_tenure_months=tenure.continuous_tenure_months,
            total_paid=tenure.total_paid,
            last_payment_date=tenure.last_payment_date,
        )
        for index, (member, tenure) in enumerate(eligible)
    ]


class QueueRanker:
    """Builds the winner order from one batch read of the ledger."""

    def __init__(self, ledger: LedgerAccessor, rules: BusinessRules, clock: Clock = utc_now):
        self.ledger = ledger
        self.rules = rules
        self.clock = clock
        self.logger = logger.bind(service="queue_ranker")

    async def rank(self) -> List[RankedMember]:
        members = await self.ledger.list_members(status=MemberStatus.ACTIVE.value)
        payments = await self.ledger.list_completed_payments()
        now = self.clock()

        ranked = rank_members(members, group_payments_by_member(payments), self.rules, now)

        self.logger.info(
            "Queue ranking computed",
            active_members=len(members),
            ranked_members=len(ranked),
            excluded_members=len(members) - len(ranked)
        )
        return ranked
