from typing import List, Optional
import uuid

from fastapi import APIRouter, status, Query

from app.api.deps import Commissions, Resolver
from app.schemas.commission import (
    CommissionRuleCreate,
    CommissionRuleUpdate,
    CommissionRuleResponse,
    EffectiveCommissionResponse,
    BulkCommissionUpdate,
    BulkCommissionResult,
)

router = APIRouter(tags=["Commissions"])


@router.get("/commissions/effective", response_model=EffectiveCommissionResponse)
async def get_effective_commission(
    resolver: Resolver,
    vendor_id: uuid.UUID = Query(...),
    category_id: Optional[uuid.UUID] = Query(None),
):
    """Resolve the commission that applies to a vendor's sale in a category."""
    commission = await resolver.get_effective_commission(vendor_id, category_id)
    return EffectiveCommissionResponse(
        vendor_id=vendor_id,
        category_id=category_id,
        type=commission.type,
        value=commission.value,
        source=commission.source.value,
        rule_id=commission.rule_id,
    )


@router.get("/vendors/{vendor_id}/commission-rules", response_model=List[CommissionRuleResponse])
async def list_commission_rules(
    vendor_id: uuid.UUID,
    service: Commissions,
    include_inactive: bool = Query(False),
):
    return await service.list_rules(vendor_id, include_inactive=include_inactive)


@router.post(
    "/vendors/{vendor_id}/commission-rules",
    response_model=CommissionRuleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_commission_rule(vendor_id: uuid.UUID, data: CommissionRuleCreate, service: Commissions):
    return await service.create_rule(vendor_id, data.model_dump())


@router.put("/commission-rules/{rule_id}", response_model=CommissionRuleResponse)
async def update_commission_rule(rule_id: uuid.UUID, data: CommissionRuleUpdate, service: Commissions):
    return await service.update_rule(rule_id, data.model_dump(exclude_unset=True))


@router.delete("/commission-rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_commission_rule(rule_id: uuid.UUID, service: Commissions):
    await service.delete_rule(rule_id)


@router.post("/commission-rules/bulk", response_model=BulkCommissionResult)
async def bulk_update_commission_rates(data: BulkCommissionUpdate, service: Commissions):
    """Set the vendor-wide rate for many vendors; failures are reported per vendor."""
    return await service.bulk_update_commission_rates(
        [item.model_dump() for item in data.updates]
    )
