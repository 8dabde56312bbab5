"""
Payment model - append-only record of member payments.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import String, Integer, BigInteger, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, TimestampMixin


class PaymentStatus(str, Enum):
    """Payment lifecycle status. Only this field changes after insert."""
    COMPLETED = "Completed"
    PENDING = "Pending"
    FAILED = "Failed"


class Payment(BaseModel, TimestampMixin):
    """A single member payment.

    There is no explicit payment kind; signup and monthly fees are told apart
    by amount (see ``services.rules.classification``).
    """

    __tablename__ = "payment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    member_id: Mapped[int] = mapped_column(
        "memberid",
        Integer,
        ForeignKey("member.id", ondelete="CASCADE"),
        comment="Paying member"
    )

    amount: Mapped[int] = mapped_column(
        BigInteger,
        comment="Amount in cents"
    )

    payment_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        comment="When the payment was made"
    )

    status: Mapped[str] = mapped_column(
        String(16),
        default=PaymentStatus.PENDING.value,
        comment="Completed, Pending or Failed"
    )

    __table_args__ = (
        Index("idx_payment_member_date", "memberid", "payment_date"),
        Index("idx_payment_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, member_id={self.member_id}, "
            f"amount={self.amount}, status={self.status})>"
        )
