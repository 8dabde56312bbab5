"""
Payout eligibility.

A payout needs both a large enough fund and enough elapsed time since the
business launched. Months are counted as 30-day blocks.
"""

from datetime import datetime, timedelta

import structlog

from membership_queue.core.exceptions import DataAccessError
from membership_queue.services.ledger.base import LedgerAccessor
from membership_queue.utils.dates import days_between
from .types import BusinessRules, Clock, PayoutStatus, utc_now


logger = structlog.get_logger(__name__)

DAYS_PER_PAYOUT_MONTH = 30


def evaluate_payout(total_revenue: int, rules: BusinessRules, now: datetime) -> PayoutStatus:
    """Pure payout evaluation from the aggregate fund and the clock."""
    fund_ready = total_revenue >= rules.payout_threshold

    days_since_launch = days_between(rules.launch_date, now)
    months_since_launch = days_since_launch // DAYS_PER_PAYOUT_MONTH
    required_days = rules.payout_months_required * DAYS_PER_PAYOUT_MONTH
    time_ready = months_since_launch >= rules.payout_months_required

    if rules.payout_threshold > 0:
        fund_progress = min(total_revenue / rules.payout_threshold * 100, 100.0)
    else:
        fund_progress = 100.0

    return PayoutStatus(
        fund_ready=fund_ready,
        time_ready=time_ready,
        payout_ready=fund_ready and time_ready,
        total_revenue=total_revenue,
        potential_winners=total_revenue // rules.reward_per_winner,
        days_until_eligible=max(0, required_days - days_since_launch),
        payout_threshold=rules.payout_threshold,
        reward_per_winner=rules.reward_per_winner,
        fund_progress=round(fund_progress, 2),
        remaining_to_threshold=max(0, rules.payout_threshold - total_revenue),
        launch_date=rules.launch_date,
        required_date=rules.launch_date + timedelta(days=required_days),
    )


def degraded_payout_status(rules: BusinessRules) -> PayoutStatus:
    """Not-ready status reported when the ledger cannot be read."""
    return PayoutStatus(
        fund_ready=False,
        time_ready=False,
        payout_ready=False,
        total_revenue=0,
        potential_winners=0,
        days_until_eligible=None,
        payout_threshold=rules.payout_threshold,
        reward_per_winner=rules.reward_per_winner,
        remaining_to_threshold=rules.payout_threshold,
        launch_date=rules.launch_date,
        degraded=True,
    )


class PayoutEligibilityEvaluator:
    """Read-only payout readiness; safe to call at any frequency."""

    def __init__(self, ledger: LedgerAccessor, rules: BusinessRules, clock: Clock = utc_now):
        self.ledger = ledger
        self.rules = rules
        self.clock = clock
        self.logger = logger.bind(service="payout_evaluator")

    async def evaluate(self) -> PayoutStatus:
        try:
            total_revenue = await self.ledger.total_completed_revenue()
        except DataAccessError as e:
            self.logger.warning("Payout status degraded, ledger unavailable", error=e.message)
            return degraded_payout_status(self.rules)

        status = evaluate_payout(total_revenue, self.rules, self.clock())

        self.logger.debug(
            "Payout status evaluated",
            total_revenue=status.total_revenue,
            fund_ready=status.fund_ready,
            time_ready=status.time_ready,
            potential_winners=status.potential_winners
        )
        return status
