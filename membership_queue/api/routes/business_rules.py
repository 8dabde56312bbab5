"""
Business rules routes.
Exposes payout readiness, the winner order, queue maintenance and
per-member payment status.
"""

from fastapi import APIRouter, Depends

import structlog

from membership_queue.api.dependencies import get_queue_service, validate_member_id_param
from membership_queue.api.schemas.common import SuccessResponse, create_success_response
from membership_queue.api.schemas.business_rules import (
    BusinessRulesRunResponse,
    EnforcementResultResponse,
    MemberPaymentStatusResponse,
    MemberTenureResponse,
    PayoutStatusResponse,
    QueueConsistencyResponse,
    QueueStatisticsResponse,
    QueueSyncResponse,
    RankedMemberResponse,
    WinnerOrderResponse,
)
from membership_queue.services.membership_queue_service import MembershipQueueService


logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get(
    "/payout-status",
    response_model=SuccessResponse,
    summary="Get Payout Status",
    description="Check whether the fund and elapsed time allow a payout"
)
async def get_payout_status(service: MembershipQueueService = Depends(get_queue_service)):
    payout_status = await service.compute_payout_status()
    return create_success_response(
        data=PayoutStatusResponse.model_validate(payout_status),
        message="Payout status unavailable, showing defaults" if payout_status.degraded else None
    )


@router.get(
    "/winner-order",
    response_model=SuccessResponse,
    summary="Get Winner Order",
    description="Preview the queue as the next sync would write it"
)
async def get_winner_order(service: MembershipQueueService = Depends(get_queue_service)):
    ranked = await service.compute_winner_order()
    return create_success_response(
        data=WinnerOrderResponse(
            members=[RankedMemberResponse.model_validate(m) for m in ranked],
            total=len(ranked)
        )
    )


@router.get(
    "/winners",
    response_model=SuccessResponse,
    summary="Get Payout Winners",
    description="Members at the head of the queue the current fund can pay"
)
async def get_payout_winners(service: MembershipQueueService = Depends(get_queue_service)):
    winners = await service.select_payout_winners()
    return create_success_response(
        data=WinnerOrderResponse(
            members=[RankedMemberResponse.model_validate(m) for m in winners],
            total=len(winners)
        ),
        message=None if winners else "Payout conditions not met"
    )


@router.post(
    "/queue/sync",
    response_model=SuccessResponse,
    summary="Sync Queue Positions",
    description="Rank members and rewrite the stored queue"
)
async def sync_queue(service: MembershipQueueService = Depends(get_queue_service)):
    success = await service.sync_queue_positions()
    return create_success_response(
        data=QueueSyncResponse.from_report(success, service.last_sync),
        message="Queue positions updated" if success else "Queue sync completed with errors"
    )


@router.post(
    "/enforce-defaults",
    response_model=SuccessResponse,
    summary="Enforce Payment Defaults",
    description="Deactivate members past the grace period and remove them from the queue"
)
async def enforce_defaults(service: MembershipQueueService = Depends(get_queue_service)):
    report = await service.enforce_payment_defaults()
    return create_success_response(
        data=EnforcementResultResponse.from_report(report),
        message=f"{report.updated} member(s) deactivated, {report.removed} removed from queue"
    )


@router.post(
    "/enforce",
    response_model=SuccessResponse,
    summary="Run Business Rules",
    description="Enforce defaults, sync the queue and report payout status in one call"
)
async def run_business_rules(service: MembershipQueueService = Depends(get_queue_service)):
    summary = await service.run_business_rules()
    logger.info("Business rules run requested via API", queue_synced=summary["queue_synced"])
    return create_success_response(
        data=BusinessRulesRunResponse.from_summary(summary),
        message="Business rules enforced successfully"
    )


@router.get(
    "/queue/statistics",
    response_model=SuccessResponse,
    summary="Get Queue Statistics"
)
async def get_queue_statistics(service: MembershipQueueService = Depends(get_queue_service)):
    statistics = await service.get_queue_statistics()
    return create_success_response(data=QueueStatisticsResponse.model_validate(statistics))


@router.get(
    "/queue/consistency",
    response_model=SuccessResponse,
    summary="Check Queue Consistency",
    description="Compare the stored queue with a fresh ranking"
)
async def get_queue_consistency(service: MembershipQueueService = Depends(get_queue_service)):
    report = await service.check_queue_consistency()
    return create_success_response(
        data=QueueConsistencyResponse.from_report(report),
        message="Queue needs resync" if report.needs_resync else "Queue is consistent"
    )


@router.get(
    "/members/{member_id}/payment-status",
    response_model=SuccessResponse,
    summary="Get Member Payment Status"
)
async def get_member_payment_status(
    member_id: int = Depends(validate_member_id_param),
    service: MembershipQueueService = Depends(get_queue_service)
):
    payment_status = await service.get_member_payment_status(member_id)
    return create_success_response(data=MemberPaymentStatusResponse.model_validate(payment_status))


@router.get(
    "/members/{member_id}/tenure",
    response_model=SuccessResponse,
    summary="Get Member Tenure"
)
async def get_member_tenure(
    member_id: int = Depends(validate_member_id_param),
    service: MembershipQueueService = Depends(get_queue_service)
):
    tenure_start = await service.get_tenure_start(member_id)
    continuous = await service.check_continuous_tenure(member_id) if tenure_start else False
    return create_success_response(
        data=MemberTenureResponse(
            member_id=member_id,
            has_tenure=tenure_start is not None,
            tenure_start=tenure_start,
            continuous=continuous
        )
    )
