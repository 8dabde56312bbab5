"""
Read-only views over the persisted queue: summary statistics and a
consistency audit against a fresh ranking.
"""

from collections import Counter
from typing import List

import structlog

from membership_queue.core.exceptions import InconsistentStateWarning
from .types import BusinessRules, ConsistencyReport, QueueEntryRecord, QueueStatistics, RankedMember


logger = structlog.get_logger(__name__)


def queue_statistics(
    entries: List[QueueEntryRecord],
    ranked: List[RankedMember],
    total_revenue: int,
    rules: BusinessRules
) -> QueueStatistics:
    tenures = [member.continuous_tenure_months for member in ranked]

    return QueueStatistics(
        total_members=len(entries),
        active_members=sum(1 for entry in entries if entry.subscription_active),
        eligible_members=len(ranked),
        total_revenue=total_revenue,
        potential_winners=total_revenue // rules.reward_per_winner,
        payout_threshold=rules.payout_threshold,
        average_tenure_months=round(sum(tenures) / len(tenures)) if tenures else 0,
        longest_tenure_months=max(tenures, default=0),
        eligible_total_paid=sum(member.total_paid for member in ranked),
    )


def check_queue_consistency(
    ranked: List[RankedMember],
    entries: List[QueueEntryRecord]
) -> ConsistencyReport:
    """Compare the stored queue with the ranking it should mirror.

    Flags ranked members without an entry, entries for members that are no
    longer ranked, entries stored at a position other than their rank, and
    positions that are duplicated or leave gaps.
    """
    report = ConsistencyReport(ranked_members=len(ranked), queue_entries=len(entries))
    log = logger.bind(service="queue_audit")

    entry_ids = {entry.member_id for entry in entries}
    ranked_positions = {member.member_id: member.queue_position for member in ranked}

    for member in ranked:
        if member.member_id not in entry_ids:
            report.warnings.append(InconsistentStateWarning(
                f"Ranked member {member.member_id} has no queue entry",
                member_id=member.member_id,
                kind="missing_entry"
            ))

    for entry in entries:
        expected_position = ranked_positions.get(entry.member_id)
        if expected_position is None:
            report.warnings.append(InconsistentStateWarning(
                f"Queue entry for member {entry.member_id} is not backed by the ranking",
                member_id=entry.member_id,
                kind="stale_entry"
            ))
        elif entry.queue_position != expected_position:
            report.warnings.append(InconsistentStateWarning(
                f"Member {entry.member_id} is stored at position {entry.queue_position}, ranked {expected_position}",
                member_id=entry.member_id,
                kind="position_mismatch"
            ))

    counts = Counter(entry.queue_position for entry in entries)
    for position, count in sorted(counts.items()):
        if count > 1:
            report.warnings.append(InconsistentStateWarning(
                f"Queue position {position} is held by {count} members",
                kind="duplicate_position"
            ))

    expected = set(range(1, len(entries) + 1))
    for position in sorted(expected - set(counts)):
        report.warnings.append(InconsistentStateWarning(
            f"Queue position {position} is missing",
            kind="position_gap"
        ))

    for warning in report.warnings:
        log.warning(warning.message, member_id=warning.member_id, kind=warning.kind)

    if report.needs_resync:
        log.warning("Queue needs resync", inconsistencies=len(report.warnings))
    else:
        log.debug("Queue consistent", queue_entries=report.queue_entries)

    return report
