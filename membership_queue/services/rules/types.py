"""
Types for the tenure, ranking and payout rules.

Money is always integer cents; timestamps are timezone-aware UTC.
"""

from datetime import datetime, timezone
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from membership_queue.core.config import Settings, settings as default_settings
from membership_queue.core.exceptions import ConfigurationError, InconsistentStateWarning, PartialBatchFailure
from membership_queue.models.member import MemberStatus
from membership_queue.models.payment import PaymentStatus


Clock = Callable[[], datetime]

# Reported when a member has never made a usable payment
NEVER_PAID_DAYS = 999


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BusinessRules:
    """Fixed business constants every rule is evaluated against."""
    signup_fee: int
    monthly_fee: int
    payout_threshold: int
    reward_per_winner: int
    launch_date: datetime
    payout_months_required: int
    grace_period_days: int

    def __post_init__(self):
        problems = []
        if self.signup_fee <= 0 or self.monthly_fee <= 0:
            problems.append("fees must be positive")
        if self.signup_fee == self.monthly_fee:
            problems.append("signup and monthly fees must differ")
        if self.reward_per_winner <= 0:
            problems.append("reward per winner must be positive")
        if self.payout_threshold < 0 or self.payout_months_required < 0:
            problems.append("payout threshold and months must not be negative")
        if self.grace_period_days < 0:
            problems.append("grace period must not be negative")
        if self.launch_date.tzinfo is None:
            problems.append("launch date must be timezone-aware")
        if problems:
            raise ConfigurationError("Invalid business rules", {"problems": problems})

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "BusinessRules":
        config = config or default_settings
        return cls(
            signup_fee=config.signup_fee_cents,
            monthly_fee=config.monthly_fee_cents,
            payout_threshold=config.payout_threshold_cents,
            reward_per_winner=config.reward_per_winner_cents,
            launch_date=config.business_launch_date,
            payout_months_required=config.payout_months_required,
            grace_period_days=config.payment_grace_days,
        )


class PaymentKind(Enum):
    """Payment kind inferred from the amount."""
    SIGNUP_FEE = "signup_fee"
    MONTHLY_FEE = "monthly_fee"
    OTHER = "other"


class PaymentHealth(str, Enum):
    """Payment status shown on member dashboards."""
    CURRENT = "current"
    OVERDUE = "overdue"
    SUSPENDED = "suspended"


@dataclass(frozen=True)
class MemberRecord:
    id: int
    name: str
    status: str
    join_date: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == MemberStatus.ACTIVE


@dataclass(frozen=True)
class PaymentRecord:
    member_id: int
    amount: int
    date: datetime
    status: str = PaymentStatus.COMPLETED.value
    id: Optional[int] = None

    @property
    def is_completed(self) -> bool:
        return self.status == PaymentStatus.COMPLETED


@dataclass(frozen=True)
class QueueEntryRecord:
    member_id: int
    queue_position: int
    subscription_active: bool = True
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class TenureRecord:
    """Derived fresh on every ranking run; never cached."""
    member_id: int
    tenure_start: datetime
    continuous_tenure_months: int
    total_paid: int
    last_payment_date: Optional[datetime]


@dataclass(frozen=True)
class RankedMember:
    member_id: int
    member_name: str
    queue_position: int
    tenure_start: datetime
    continuous_tenure_months: int
    total_paid: int
    last_payment_date: Optional[datetime]


@dataclass(frozen=True)
class PayoutStatus:
    fund_ready: bool
    time_ready: bool
    payout_ready: bool
    total_revenue: int
    potential_winners: int
    days_until_eligible: Optional[int]
    payout_threshold: int = 0
    reward_per_winner: int = 0
    fund_progress: float = 0.0
    remaining_to_threshold: int = 0
    launch_date: Optional[datetime] = None
    required_date: Optional[datetime] = None
    degraded: bool = False


@dataclass(frozen=True)
class MemberPaymentStatus:
    member_id: int
    status: PaymentHealth
    has_joining_fee: bool
    joining_fee_date: Optional[datetime]
    last_monthly_payment: Optional[datetime]
    is_in_default: bool
    days_since_last_payment: int
    next_payment_due: Optional[datetime]
    total_paid: int
    monthly_payment_count: int
    grace_period_days: int = 0
    days_until_default: int = 0


@dataclass
class EnforcementReport:
    """Outcome of a default-enforcement batch; counts only successful writes."""
    scanned: int = 0
    defaulted: int = 0
    updated: int = 0
    removed: int = 0
    failed_member_ids: List[int] = field(default_factory=list)
    errors: Dict[int, str] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and not self.failed_member_ids

    def record_failure(self, member_id: int, error: str) -> None:
        if member_id not in self.failed_member_ids:
            self.failed_member_ids.append(member_id)
        self.errors[member_id] = error

    def as_counts(self) -> Dict[str, int]:
        return {"updated": self.updated, "removed": self.removed}

    def raise_for_failures(self) -> None:
        if self.failed_member_ids:
            raise PartialBatchFailure("enforce_payment_defaults", self.failed_member_ids, self.errors)


@dataclass
class SyncReport:
    """Outcome of a queue sync run."""
    ranked: int = 0
    upserted: int = 0
    removed: int = 0
    failed_member_ids: List[int] = field(default_factory=list)
    errors: Dict[int, str] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and not self.failed_member_ids

    def record_failure(self, member_id: int, error: str) -> None:
        if member_id not in self.failed_member_ids:
            self.failed_member_ids.append(member_id)
        self.errors[member_id] = error

    def raise_for_failures(self) -> None:
        if self.failed_member_ids:
            raise PartialBatchFailure("sync_queue_positions", self.failed_member_ids, self.errors)


@dataclass(frozen=True)
class QueueStatistics:
    total_members: int
    active_members: int
    eligible_members: int
    total_revenue: int
    potential_winners: int
    payout_threshold: int
    average_tenure_months: int = 0
    longest_tenure_months: int = 0
    eligible_total_paid: int = 0


@dataclass
class ConsistencyReport:
    ranked_members: int = 0
    queue_entries: int = 0
    warnings: List[InconsistentStateWarning] = field(default_factory=list)

    @property
    def needs_resync(self) -> bool:
        return bool(self.warnings)
