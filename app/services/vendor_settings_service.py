import uuid
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.vendor import VendorSetting
from app.repositories.settings_repository import VendorSettingRepository
from app.repositories.vendor_repository import VendorRepository
from app.services.commission_resolver import validate_commission
from app.services.platform_settings_service import PlatformSettingsService


class VendorSettingsService:
    """Per-vendor settings singleton: created on first read, upserted on write."""

    def __init__(self, db: AsyncSession, platform_settings: PlatformSettingsService):
        self.db = db
        self.platform_settings = platform_settings
        self.repo = VendorSettingRepository(db)
        self.vendors = VendorRepository(db)

    async def get_vendor_settings(self, vendor_id: uuid.UUID) -> VendorSetting:
        if not await self.vendors.exists(vendor_id):
            raise NotFoundError("Vendor", vendor_id)

        setting = await self.repo.get_for_vendor(vendor_id)
        if setting is None:
            commission_type, value = await self.platform_settings.get_platform_commission()
            setting = await self.repo.add(
                VendorSetting(
                    vendor_id=vendor_id,
                    auto_payout=False,
                    default_commission_type=commission_type,
                    default_commission_value=value,
                )
            )
        return setting

    async def update_vendor_settings(self, vendor_id: uuid.UUID, data: Dict[str, Any]) -> VendorSetting:
        setting = await self.get_vendor_settings(vendor_id)

        commission_type = data.get("default_commission_type") or setting.default_commission_type
        value = data.get("default_commission_value")
        value = Decimal(str(value)) if value is not None else Decimal(setting.default_commission_value)
        validate_commission(commission_type, value)

        setting.default_commission_type = commission_type
        setting.default_commission_value = value
        if data.get("auto_payout") is not None:
            setting.auto_payout = data["auto_payout"]

        await self.db.flush()
        await self.db.refresh(setting)
        return setting
