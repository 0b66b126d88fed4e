"""Back-office dashboards and the vendor export."""
from typing import List, Optional
import uuid

from fastapi import APIRouter, Query

from app.api.deps import Analytics
from app.schemas.analytics import (
    VendorOverview,
    VendorGrowthPoint,
    KycAnalytics,
    PayoutAnalytics,
    CommissionAnalytics,
    FinancialAnalytics,
    TopVendor,
    VendorExport,
)

router = APIRouter(tags=["Analytics"])


@router.get("/overview", response_model=VendorOverview)
async def get_vendor_overview(service: Analytics):
    return await service.get_vendor_overview()


@router.get("/growth", response_model=List[VendorGrowthPoint])
async def get_vendor_growth(service: Analytics, days: int = Query(30, ge=1, le=365)):
    return await service.get_vendor_growth(days=days)


@router.get("/kyc", response_model=KycAnalytics)
async def get_kyc_analytics(service: Analytics):
    return await service.get_kyc_analytics()


@router.get("/payouts", response_model=PayoutAnalytics)
async def get_payout_analytics(service: Analytics):
    return await service.get_payout_analytics()


@router.get("/commissions", response_model=CommissionAnalytics)
async def get_commission_analytics(service: Analytics):
    return await service.get_commission_analytics()


@router.get("/financial", response_model=FinancialAnalytics)
async def get_financial_analytics(service: Analytics, months: int = Query(6, ge=1, le=36)):
    return await service.get_financial_analytics(months=months)


@router.get("/top-vendors", response_model=List[TopVendor])
async def get_top_vendors(service: Analytics, limit: int = Query(10, ge=1, le=100)):
    return await service.get_top_vendors(limit=limit)


@router.get("/export", response_model=VendorExport)
async def export_vendor_data(
    service: Analytics,
    vendor_ids: Optional[List[uuid.UUID]] = Query(None, description="Restrict to these vendors"),
):
    """Flat vendor records with related-record counts, oldest first."""
    return await service.export_vendor_data(vendor_ids)
