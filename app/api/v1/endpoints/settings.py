import uuid

from fastapi import APIRouter

from app.api.deps import PlatformSettings, VendorSettings
from app.schemas.settings import (
    PlatformDefaults,
    PlatformDefaultsUpdate,
    VendorSettingsResponse,
    VendorSettingsUpdate,
)

router = APIRouter(tags=["Settings"])


@router.get("/vendor-settings/defaults", response_model=PlatformDefaults)
async def get_platform_defaults(service: PlatformSettings):
    """Platform defaults (configuration merged with stored overrides)."""
    return await service.get_defaults()


@router.put("/vendor-settings/defaults", response_model=PlatformDefaults)
async def update_platform_defaults(data: PlatformDefaultsUpdate, service: PlatformSettings):
    return await service.update_defaults(data.model_dump(exclude_unset=True, mode="json"))


@router.get("/vendors/{vendor_id}/settings", response_model=VendorSettingsResponse)
async def get_vendor_settings(vendor_id: uuid.UUID, service: VendorSettings):
    return await service.get_vendor_settings(vendor_id)


@router.put("/vendors/{vendor_id}/settings", response_model=VendorSettingsResponse)
async def update_vendor_settings(vendor_id: uuid.UUID, data: VendorSettingsUpdate, service: VendorSettings):
    return await service.update_vendor_settings(vendor_id, data.model_dump(exclude_unset=True))
