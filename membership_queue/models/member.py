"""
Member model - a subscriber who may hold a place in the payout queue.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String, Integer, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, TimestampMixin


class MemberStatus(str, Enum):
    """Named statuses from the externally managed status catalog."""
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    SUSPENDED = "Suspended"
    WON = "Won"
    PAID = "Paid"


class Member(BaseModel, TimestampMixin):
    """Member account.

    ``status`` is written by administrators and by default enforcement; the
    automated path only ever moves a member from Active to Inactive.
    """

    __tablename__ = "member"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(
        String(255),
        comment="Display name"
    )

    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        comment="Primary contact email"
    )

    status: Mapped[str] = mapped_column(
        String(32),
        default=MemberStatus.ACTIVE.value,
        comment="Eligibility status (Active, Inactive, Suspended, Won, Paid)"
    )

    join_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        comment="When the member account was created"
    )

    __table_args__ = (
        Index("idx_member_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Member(id={self.id}, name={self.name!r}, status={self.status})>"
