from typing import Optional
import uuid

from fastapi import APIRouter, status, Query

from app.api.deps import Page, Payouts
from app.schemas.settlement import (
    PayoutCreate,
    BatchPayoutCreate,
    BatchPayoutResponse,
    PayoutComplete,
    PayoutResponse,
    PayoutListResponse,
)

router = APIRouter(tags=["Payouts"])


@router.post("/payouts", response_model=PayoutResponse, status_code=status.HTTP_201_CREATED)
async def create_payout(data: PayoutCreate, service: Payouts):
    """INITIATED payout for a FINALIZED statement. 409 if one is already active."""
    return await service.create_payout(data.statement_id)


@router.post("/payouts/batch", response_model=BatchPayoutResponse)
async def create_batch_payouts(data: BatchPayoutCreate, service: Payouts):
    """Create payouts for many statements; per-statement failures are reported, not raised."""
    return await service.create_batch_payouts(data.statement_ids)


@router.post("/payouts/{payout_id}/complete", response_model=PayoutResponse)
async def complete_payout(payout_id: uuid.UUID, data: PayoutComplete, service: Payouts):
    return await service.complete_payout(
        payout_id,
        data.outcome,
        reference=data.reference,
        failure_reason=data.failure_reason,
    )


@router.get("/vendors/{vendor_id}/payouts", response_model=PayoutListResponse)
async def list_payouts(
    vendor_id: uuid.UUID,
    service: Payouts,
    pagination: Page,
    status: Optional[str] = Query(None, description="INITIATED, COMPLETED, FAILED"),
):
    payouts, total = await service.list_payouts(
        vendor_id,
        status=status.upper() if status else None,
        skip=pagination.skip,
        limit=pagination.size,
    )
    return PayoutListResponse(
        **pagination.envelope([PayoutResponse.model_validate(p) for p in payouts], total)
    )
