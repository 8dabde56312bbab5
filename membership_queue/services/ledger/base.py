"""
Ledger accessor contract.

The rules engine reads members and payments and reads/writes queue entries
only through this interface. Implementations raise ``DataAccessError`` for
any storage failure.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from membership_queue.services.rules.types import MemberRecord, PaymentRecord, QueueEntryRecord


class LedgerAccessor(ABC):
    """Narrow query contract between the rules engine and storage."""

    @abstractmethod
    async def get_member(self, member_id: int) -> Optional[MemberRecord]:
        """Return a single member, or None."""

    @abstractmethod
    async def list_members(self, status: Optional[str] = None) -> List[MemberRecord]:
        """Return members, optionally filtered by status, ordered by id."""

    @abstractmethod
    async def list_completed_payments(self, member_id: Optional[int] = None) -> List[PaymentRecord]:
        """Return Completed payments ordered by date then id.

        With ``member_id`` only that member's payments are returned.
        """

    @abstractmethod
    async def list_queue_entries(self) -> List[QueueEntryRecord]:
        """Return all persisted queue entries ordered by position."""

    @abstractmethod
    async def upsert_queue_entry(
        self,
        member_id: int,
        queue_position: int,
        subscription_active: bool,
        updated_at: datetime
    ) -> None:
        """Insert or update a member's queue entry."""

    @abstractmethod
    async def delete_queue_entry(self, member_id: int) -> bool:
        """Delete a member's queue entry; return True if one existed."""

    @abstractmethod
    async def update_member_status(self, member_id: int, status: str) -> None:
        """Set a member's status."""

    async def total_completed_revenue(self) -> int:
        """Sum of all Completed payments in cents."""
        payments = await self.list_completed_payments()
        return sum(payment.amount for payment in payments)
