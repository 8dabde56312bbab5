"""
Business rules Pydantic schemas for API.
Defines data structures for queue, payout and payment-status endpoints.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from membership_queue.services.rules.types import (
    ConsistencyReport, EnforcementReport, PaymentHealth, SyncReport
)
from .common import CentsField


class PayoutStatusResponse(BaseModel):
    """Payout readiness."""
    model_config = ConfigDict(from_attributes=True)

    fund_ready: bool
    time_ready: bool
    payout_ready: bool
    total_revenue: int = CentsField
    potential_winners: int = Field(ge=0)
    days_until_eligible: Optional[int] = Field(default=None, description="None when the ledger could not be read")
    payout_threshold: int = CentsField
    reward_per_winner: int = CentsField
    fund_progress: float = Field(ge=0, le=100, description="Percent of the payout threshold reached")
    remaining_to_threshold: int = CentsField
    launch_date: Optional[datetime] = None
    required_date: Optional[datetime] = None
    degraded: bool = False


class RankedMemberResponse(BaseModel):
    """One position in the winner order."""
    model_config = ConfigDict(from_attributes=True)

    member_id: int
    member_name: str
    queue_position: int = Field(ge=1)
    tenure_start: datetime
    continuous_tenure_months: int = Field(ge=0)
    total_paid: int = CentsField
    last_payment_date: Optional[datetime] = None


class WinnerOrderResponse(BaseModel):
    members: List[RankedMemberResponse]
    total: int = Field(ge=0)


class MemberPaymentStatusResponse(BaseModel):
    """Payment standing of one member."""
    model_config = ConfigDict(from_attributes=True)

    member_id: int
    status: PaymentHealth
    has_joining_fee: bool
    joining_fee_date: Optional[datetime] = None
    last_monthly_payment: Optional[datetime] = None
    is_in_default: bool
    days_since_last_payment: int
    next_payment_due: Optional[datetime] = None
    total_paid: int = CentsField
    monthly_payment_count: int = Field(ge=0)
    grace_period_days: int = Field(ge=0)
    days_until_default: int = Field(ge=0)


class MemberTenureResponse(BaseModel):
    member_id: int
    has_tenure: bool
    tenure_start: Optional[datetime] = None
    continuous: bool


class EnforcementResultResponse(BaseModel):
    """Outcome of a default-enforcement run."""
    success: bool
    scanned: int = Field(ge=0, description="Active members examined")
    defaulted: int = Field(ge=0, description="Active members found in default")
    updated: int = Field(ge=0, description="Members set to Inactive")
    removed: int = Field(ge=0, description="Queue entries deleted")
    failed_member_ids: List[int] = Field(default_factory=list)
    errors: Dict[str, str] = Field(default_factory=dict)
    error: Optional[str] = None

    @classmethod
    def from_report(cls, report: EnforcementReport) -> "EnforcementResultResponse":
        return cls(
            success=report.success,
            scanned=report.scanned,
            defaulted=report.defaulted,
            updated=report.updated,
            removed=report.removed,
            failed_member_ids=report.failed_member_ids,
            errors={str(k): v for k, v in report.errors.items()},
            error=report.error,
        )


class QueueSyncResponse(BaseModel):
    """Outcome of a queue sync run."""
    success: bool
    ranked: int = Field(default=0, ge=0)
    upserted: int = Field(default=0, ge=0)
    removed: int = Field(default=0, ge=0)
    failed_member_ids: List[int] = Field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def from_report(cls, success: bool, report: Optional[SyncReport]) -> "QueueSyncResponse":
        if report is None:
            return cls(success=success)
        return cls(
            success=success,
            ranked=report.ranked,
            upserted=report.upserted,
            removed=report.removed,
            failed_member_ids=report.failed_member_ids,
            error=report.error,
        )


class QueueStatisticsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_members: int = Field(ge=0, description="Queue entries")
    active_members: int = Field(ge=0, description="Queue entries with an active subscription")
    eligible_members: int = Field(ge=0, description="Members the ranking would queue")
    total_revenue: int = CentsField
    potential_winners: int = Field(ge=0)
    payout_threshold: int = CentsField
    average_tenure_months: int = Field(ge=0, description="Mean continuous tenure of eligible members")
    longest_tenure_months: int = Field(ge=0)
    eligible_total_paid: int = CentsField


class ConsistencyIssue(BaseModel):
    kind: str
    member_id: Optional[int] = None
    message: str


class QueueConsistencyResponse(BaseModel):
    ranked_members: int = Field(ge=0)
    queue_entries: int = Field(ge=0)
    needs_resync: bool
    issues: List[ConsistencyIssue] = Field(default_factory=list)

    @classmethod
    def from_report(cls, report: ConsistencyReport) -> "QueueConsistencyResponse":
        return cls(
            ranked_members=report.ranked_members,
            queue_entries=report.queue_entries,
            needs_resync=report.needs_resync,
            issues=[
                ConsistencyIssue(kind=w.kind, member_id=w.member_id, message=w.message)
                for w in report.warnings
            ],
        )


class BusinessRulesRunResponse(BaseModel):
    """Summary of a full business rules pass."""
    enforcement: EnforcementResultResponse
    queue_synced: bool
    payout_status: PayoutStatusResponse
    winner_order: List[RankedMemberResponse]

    @classmethod
    def from_summary(cls, summary: Dict[str, Any]) -> "BusinessRulesRunResponse":
        return cls(
            enforcement=EnforcementResultResponse.from_report(summary["enforcement"]),
            queue_synced=summary["queue_synced"],
            payout_status=PayoutStatusResponse.model_validate(summary["payout_status"]),
            winner_order=[RankedMemberResponse.model_validate(m) for m in summary["winner_order"]],
        )
