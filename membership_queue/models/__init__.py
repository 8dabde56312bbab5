"""
Database models for the membership queue engine.

Contains SQLAlchemy models for members, their payments and the
persisted payout queue.
"""

from .base import Base, BaseModel, TimestampMixin
from .member import Member, MemberStatus
from .payment import Payment, PaymentStatus
from .queue_entry import QueueEntry

__all__ = [
    "Base",
    "BaseModel",
    "TimestampMixin",
    "Member",
    "MemberStatus",
    "Payment",
    "PaymentStatus",
    "QueueEntry",
]
