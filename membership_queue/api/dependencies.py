"""
API dependencies for FastAPI endpoints.
Provides the ledger, the shared membership queue service and path validation.
"""

from fastapi import Depends, HTTPException, Path, status

import structlog

from membership_queue.services.ledger import LedgerAccessor, SqlLedger
from membership_queue.services.membership_queue_service import (
    MembershipQueueService, get_membership_queue_service
)


logger = structlog.get_logger(__name__)


def get_ledger() -> LedgerAccessor:
    """Get ledger dependency."""
    return SqlLedger()


def get_queue_service(ledger: LedgerAccessor = Depends(get_ledger)) -> MembershipQueueService:
    """Get the process-wide membership queue service.

    A single instance is shared so overlapping batch triggers see the same locks.
    """
    return get_membership_queue_service(ledger)


async def validate_member_id_param(
    member_id: int = Path(..., description="Member identifier")
) -> int:
    """Validate member id path parameter."""
    if member_id <= 0:
        logger.warning("Invalid member id provided", member_id=member_id)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "INVALID_MEMBER_ID",
                "message": "Member id must be a positive integer"
            }
        )
    return member_id
