import uuid
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.platform_setting import PlatformSetting
from app.models.vendor import VendorSetting


class VendorSettingRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_for_vendor(self, vendor_id: uuid.UUID) -> Optional[VendorSetting]:
        result = await self.db.execute(
            select(VendorSetting).where(VendorSetting.vendor_id == vendor_id)
        )
        return result.scalar_one_or_none()

    async def add(self, setting: VendorSetting) -> VendorSetting:
        self.db.add(setting)
        await self.db.flush()
        await self.db.refresh(setting)
        return setting


class PlatformSettingRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_all(self) -> Dict[str, Any]:
        result = await self.db.execute(select(PlatformSetting.key, PlatformSetting.value))
        return {row.key: row.value for row in result.all()}

    async def upsert(self, key: str, value: Any, description: Optional[str] = None) -> PlatformSetting:
        result = await self.db.execute(select(PlatformSetting).where(PlatformSetting.key == key))
        setting = result.scalar_one_or_none()
        if setting is None:
            setting = PlatformSetting(key=key, value=value, description=description)
            self.db.add(setting)
        else:
            setting.value = value
            if description is not None:
                setting.description = description
        await self.db.flush()
        return setting
