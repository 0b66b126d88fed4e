from typing import Optional
import uuid

from fastapi import APIRouter, status, Query

from app.api.deps import Page, PlatformSettings, Vendors
from app.schemas.vendor import (
    VendorCreate,
    VendorUpdate,
    VendorStatusUpdate,
    BulkVendorStatusUpdate,
    BulkVendorStatusResult,
    VendorResponse,
    VendorListResponse,
    VendorIssueResponse,
    VendorIssueListResponse,
    OnboardingProgress,
)

router = APIRouter(tags=["Vendors"])


@router.get("", response_model=VendorListResponse)
async def list_vendors(
    service: Vendors,
    pagination: Page,
    status: Optional[str] = Query(None, description="PENDING, ACTIVE, SUSPENDED, REJECTED"),
    search: Optional[str] = Query(None, description="Matches name or email"),
):
    vendors, total = await service.list_vendors(
        status=status.upper() if status else None,
        search=search,
        skip=pagination.skip,
        limit=pagination.size,
    )
    return VendorListResponse(
        **pagination.envelope([VendorResponse.model_validate(v) for v in vendors], total)
    )


@router.post("", response_model=VendorResponse, status_code=status.HTTP_201_CREATED)
async def create_vendor(data: VendorCreate, service: Vendors, platform_settings: PlatformSettings):
    """Create a PENDING vendor."""
    default_commission = await platform_settings.get_platform_commission()
    return await service.create_vendor(data.model_dump(), default_commission=default_commission)


@router.post("/bulk-status", response_model=BulkVendorStatusResult)
async def bulk_update_vendor_status(data: BulkVendorStatusUpdate, service: Vendors):
    """
    Activate, suspend or reject many vendors at once.

    Vendors whose current status has no edge to the target are reported as
    skipped; each vendor moved gets an audit issue.
    """
    return await service.bulk_update_vendor_status(data.ids, data.status, reason=data.reason)


@router.get("/{vendor_id}", response_model=VendorResponse)
async def get_vendor(vendor_id: uuid.UUID, service: Vendors):
    return await service.get_vendor(vendor_id)


@router.put("/{vendor_id}", response_model=VendorResponse)
async def update_vendor(vendor_id: uuid.UUID, data: VendorUpdate, service: Vendors):
    return await service.update_vendor(vendor_id, data.model_dump(exclude_unset=True))


@router.patch("/{vendor_id}/status", response_model=VendorResponse)
async def update_vendor_status(vendor_id: uuid.UUID, data: VendorStatusUpdate, service: Vendors):
    """
    Approve, reject, suspend or reactivate a vendor.

    Only PENDING->ACTIVE, PENDING->REJECTED, ACTIVE->SUSPENDED and
    SUSPENDED->ACTIVE are accepted. A reason is kept as a vendor issue.
    """
    return await service.update_vendor_status(vendor_id, data.status, reason=data.reason)


@router.get("/{vendor_id}/onboarding-progress", response_model=OnboardingProgress)
async def get_onboarding_progress(vendor_id: uuid.UUID, service: Vendors):
    return await service.get_onboarding_progress(vendor_id)


@router.get("/{vendor_id}/issues", response_model=VendorIssueListResponse)
async def list_vendor_issues(
    vendor_id: uuid.UUID,
    service: Vendors,
    pagination: Page,
    status: Optional[str] = Query(None),
):
    issues, total = await service.list_issues(
        vendor_id,
        status=status.upper() if status else None,
        skip=pagination.skip,
        limit=pagination.size,
    )
    return VendorIssueListResponse(
        **pagination.envelope([VendorIssueResponse.model_validate(i) for i in issues], total)
    )
