"""
SQLAlchemy implementation of the ledger accessor.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, List, Optional

import structlog
from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from membership_queue.core.database import get_async_session
from membership_queue.core.exceptions import DataAccessError
from membership_queue.models.member import Member
from membership_queue.models.payment import Payment, PaymentStatus
from membership_queue.models.queue_entry import QueueEntry
from membership_queue.services.rules.types import MemberRecord, PaymentRecord, QueueEntryRecord
from .base import LedgerAccessor


logger = structlog.get_logger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlLedger(LedgerAccessor):
    """
    Ledger backed by the ``member``, ``payment`` and ``queue`` tables.

    Every call runs in its own session so per-member writes issued
    concurrently by the batch services do not share a transaction.
    """

    def __init__(self):
        self.logger = logger.bind(service="sql_ledger")

    @asynccontextmanager
    async def _session(self, operation: str, **context) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with get_async_session() as db:
                yield db
        except (SQLAlchemyError, OSError, RuntimeError) as e:
            self.logger.error("Ledger operation failed", operation=operation, error=str(e), **context)
            raise DataAccessError(
                f"Ledger operation failed: {operation}",
                {"operation": operation, "error": str(e), **context}
            ) from e

    @staticmethod
    def _member_record(member: Member) -> MemberRecord:
        return MemberRecord(
            id=member.id,
            name=member.name,
            status=member.status,
            join_date=_as_utc(member.join_date),
        )

    async def get_member(self, member_id: int) -> Optional[MemberRecord]:
        async with self._session("get_member", member_id=member_id) as db:
            member = await db.get(Member, member_id)
            return self._member_record(member) if member else None

    async def list_members(self, status: Optional[str] = None) -> List[MemberRecord]:
        async with self._session("list_members", status=status) as db:
            query = select(Member).order_by(Member.id)
            if status is not None:
                query = query.where(Member.status == status)
            result = await db.execute(query)
            members = [self._member_record(m) for m in result.scalars().all()]

        self.logger.debug("Retrieved members", count=len(members), status=status)
        return members

    async def list_completed_payments(self, member_id: Optional[int] = None) -> List[PaymentRecord]:
        async with self._session("list_completed_payments", member_id=member_id) as db:
            query = (
                select(Payment)
                .where(Payment.status == PaymentStatus.COMPLETED.value)
                .order_by(Payment.payment_date, Payment.id)
            )
            if member_id is not None:
                query = query.where(Payment.member_id == member_id)
            result = await db.execute(query)

            return [
                PaymentRecord(
                    id=p.id,
                    member_id=p.member_id,
                    amount=p.amount,
                    date=_as_utc(p.payment_date),
                    status=p.status,
                )
                for p in result.scalars().all()
            ]

    async def total_completed_revenue(self) -> int:
        async with self._session("total_completed_revenue") as db:
            result = await db.execute(
                select(func.coalesce(func.sum(Payment.amount), 0))
                .where(Payment.status == PaymentStatus.COMPLETED.value)
            )
            return int(result.scalar() or 0)

    async def list_queue_entries(self) -> List[QueueEntryRecord]:
        async with self._session("list_queue_entries") as db:
            result = await db.execute(
                select(QueueEntry).order_by(QueueEntry.queue_position, QueueEntry.member_id)
            )
            return [
                QueueEntryRecord(
                    member_id=entry.member_id,
                    queue_position=entry.queue_position,
                    subscription_active=entry.subscription_active,
                    updated_at=_as_utc(entry.updated_at),
                )
                for entry in result.scalars().all()
            ]

    async def upsert_queue_entry(
        self,
        member_id: int,
        queue_position: int,
        subscription_active: bool,
        updated_at: datetime
    ) -> None:
        async with self._session("upsert_queue_entry", member_id=member_id) as db:
            entry = await db.get(QueueEntry, member_id)
            if entry is None:
                db.add(QueueEntry(
                    member_id=member_id,
                    queue_position=queue_position,
                    subscription_active=subscription_active,
                    updated_at=updated_at,
                ))
            else:
                entry.queue_position = queue_position
                entry.subscription_active = subscription_active
                entry.updated_at = updated_at

    async def delete_queue_entry(self, member_id: int) -> bool:
        async with self._session("delete_queue_entry", member_id=member_id) as db:
            result = await db.execute(
                delete(QueueEntry).where(QueueEntry.member_id == member_id)
            )
            return (result.rowcount or 0) > 0

    async def update_member_status(self, member_id: int, status: str) -> None:
        async with self._session("update_member_status", member_id=member_id, status=status) as db:
            result = await db.execute(
                update(Member).where(Member.id == member_id).values(status=status)
            )
            if not result.rowcount:
                raise SQLAlchemyError(f"No member row updated for id {member_id}")
