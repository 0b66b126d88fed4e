"""
Operator queues.

Bulk actions only touch rows that are still eligible when the update runs;
everything else comes back under "skipped" with a reason.
"""
from typing import Optional

from fastapi import APIRouter, Query

from app.api.deps import Page, Queues
from app.schemas.base import BulkResult
from app.schemas.queue import (
    BulkIds,
    BulkReject,
    BulkKycReject,
    ApprovalQueueResponse,
    KycQueueItem,
    KycQueueResponse,
    PayoutQueueResponse,
    QueueStats,
    QueueHealth,
)
from app.schemas.settlement import DueStatementResponse
from app.schemas.vendor import VendorResponse

router = APIRouter(tags=["Queues"])


@router.get("/stats", response_model=QueueStats)
async def get_queue_stats(service: Queues):
    return await service.get_queue_stats()


@router.get("/health", response_model=QueueHealth)
async def get_queue_health(service: Queues):
    return await service.get_queue_health()


# ==================== Approval ====================

@router.get("/approvals", response_model=ApprovalQueueResponse)
async def get_approval_queue(
    service: Queues,
    pagination: Page,
    search: Optional[str] = Query(None, description="Matches vendor name or email"),
):
    """PENDING vendors, oldest first."""
    vendors, total = await service.get_approval_queue(
        search=search, skip=pagination.skip, limit=pagination.size
    )
    return ApprovalQueueResponse(
        **pagination.envelope([VendorResponse.model_validate(v) for v in vendors], total)
    )


@router.post("/approvals/bulk-approve", response_model=BulkResult)
async def bulk_approve_vendors(data: BulkIds, service: Queues):
    return await service.bulk_approve_vendors(data.ids)


@router.post("/approvals/bulk-reject", response_model=BulkResult)
async def bulk_reject_vendors(data: BulkReject, service: Queues):
    return await service.bulk_reject_vendors(data.ids, reason=data.reason)


# ==================== KYC ====================

@router.get("/kyc", response_model=KycQueueResponse)
async def get_kyc_queue(
    service: Queues,
    pagination: Page,
    search: Optional[str] = Query(None, description="Matches vendor name or email"),
):
    """PENDING KYC documents, oldest first."""
    documents, total = await service.get_kyc_queue(
        search=search, skip=pagination.skip, limit=pagination.size
    )
    return KycQueueResponse(
        **pagination.envelope([KycQueueItem.model_validate(d) for d in documents], total)
    )


@router.post("/kyc/bulk-approve", response_model=BulkResult)
async def bulk_approve_kyc(data: BulkIds, service: Queues):
    return await service.bulk_approve_kyc(data.ids)


@router.post("/kyc/bulk-reject", response_model=BulkResult)
async def bulk_reject_kyc(data: BulkKycReject, service: Queues):
    return await service.bulk_reject_kyc(data.ids, remarks=data.remarks)


# ==================== Payouts due ====================

@router.get("/payouts", response_model=PayoutQueueResponse)
async def get_payout_due_queue(
    service: Queues,
    pagination: Page,
    search: Optional[str] = Query(None, description="Matches vendor name or email"),
):
    """FINALIZED statements without a COMPLETED payout, oldest period_end first."""
    statements, total = await service.get_payout_due_queue(
        search=search, skip=pagination.skip, limit=pagination.size
    )
    return PayoutQueueResponse(
        **pagination.envelope([DueStatementResponse.model_validate(s) for s in statements], total)
    )
