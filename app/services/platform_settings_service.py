"""
Platform-wide vendor defaults.

Defaults come from configuration and can be overridden per key through the
platform_settings table. The merged view is served through the cache with a
TTL and invalidated explicitly on every update.
"""
from decimal import Decimal
from typing import Any, Dict, Tuple
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ValidationFailedError
from app.repositories.settings_repository import PlatformSettingRepository
from app.services.cache_service import CacheService
from app.services.commission_resolver import validate_commission

logger = logging.getLogger(__name__)


# Top-level keys that may be overridden; nested dicts merge one level deep
OVERRIDABLE_KEYS = {
    "default_commission_type",
    "default_commission_rate",
    "payment_cycle_days",
    "product_auto_approval",
    "auto_suspension_rules",
    "kyc_requirements",
    "payout_settings",
}


def config_defaults() -> Dict[str, Any]:
    """Defaults from configuration, JSON-safe (decimals as strings)."""
    return {
        "default_commission_type": settings.PLATFORM_DEFAULT_COMMISSION_TYPE,
        "default_commission_rate": str(settings.PLATFORM_DEFAULT_COMMISSION_VALUE),
        "payment_cycle_days": settings.PAYMENT_CYCLE_DAYS,
        "product_auto_approval": settings.PRODUCT_AUTO_APPROVAL,
        "auto_suspension_rules": {
            "max_failed_payouts": settings.MAX_FAILED_PAYOUTS,
            "max_pending_kyc_days": settings.MAX_PENDING_KYC_DAYS,
            "inactivity_days": settings.INACTIVITY_DAYS,
        },
        "kyc_requirements": {
            "required_documents": list(settings.KYC_REQUIRED_DOCUMENTS),
            "auto_approval_enabled": settings.KYC_AUTO_APPROVAL,
        },
        "payout_settings": {
            "minimum_amount": str(settings.PAYOUT_MINIMUM_AMOUNT),
            "processing_days": settings.PAYOUT_PROCESSING_DAYS,
            "auto_processing": settings.PAYOUT_AUTO_PROCESSING,
        },
    }


def merge_overrides(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(defaults)
    for key, value in overrides.items():
        if key not in OVERRIDABLE_KEYS:
            continue
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


class PlatformSettingsService:
    """Read and update platform defaults."""

    def __init__(self, db: AsyncSession, cache: CacheService):
        self.db = db
        self.cache = cache
        self.repo = PlatformSettingRepository(db)

    async def get_defaults(self) -> Dict[str, Any]:
        cached = await self.cache.get_platform_defaults()
        if cached is not None:
            return cached

        overrides = await self.repo.get_all()
        defaults = merge_overrides(config_defaults(), overrides)
        await self.cache.set_platform_defaults(defaults)
        return defaults

    async def update_defaults(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        unknown = set(changes) - OVERRIDABLE_KEYS
        if unknown:
            raise ValidationFailedError(
                "Unknown platform setting",
                {"keys": sorted(unknown)},
            )

        if "default_commission_type" in changes or "default_commission_rate" in changes:
            current = await self.get_defaults()
            commission_type = str(
                changes.get("default_commission_type", current["default_commission_type"])
            ).upper()
            rate = Decimal(str(changes.get("default_commission_rate", current["default_commission_rate"])))
            validate_commission(commission_type, rate)
            if "default_commission_type" in changes:
                changes["default_commission_type"] = commission_type
            if "default_commission_rate" in changes:
                changes["default_commission_rate"] = str(rate)

        for key, value in changes.items():
            if isinstance(value, Decimal):
                value = str(value)
            await self.repo.upsert(key, value)

        await self.cache.invalidate_platform_defaults()
        logger.info(f"Platform defaults updated: {sorted(changes)}")
        return await self.get_defaults()

    async def get_platform_commission(self) -> Tuple[str, Decimal]:
        """(type, value) used when nothing more specific applies."""
        defaults = await self.get_defaults()
        return (
            str(defaults["default_commission_type"]).upper(),
            Decimal(str(defaults["default_commission_rate"])),
        )
