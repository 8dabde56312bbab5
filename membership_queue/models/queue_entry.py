"""
QueueEntry model - persisted queue positions of currently ranked members.
"""

from datetime import datetime

from sqlalchemy import Integer, Boolean, DateTime, ForeignKey, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel


class QueueEntry(BaseModel):
    """One row per ranked member; positions are dense starting at 1."""

    __tablename__ = "queue"

    member_id: Mapped[int] = mapped_column(
        "memberid",
        Integer,
        ForeignKey("member.id", ondelete="CASCADE"),
        primary_key=True,
        comment="Queued member"
    )

    queue_position: Mapped[int] = mapped_column(
        Integer,
        comment="1-based dense rank"
    )

    subscription_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        comment="Whether the member's subscription is active"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        comment="Last time the position was written"
    )

    # Not unique: positions are rewritten one row at a time during a sync
    __table_args__ = (
        Index("idx_queue_position", "queue_position"),
    )

    def __repr__(self) -> str:
        return f"<QueueEntry(member_id={self.member_id}, position={self.queue_position})>"
