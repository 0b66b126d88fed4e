"""
Commission Resolver.

Resolves the effective commission for a (vendor, category) pair by walking a
fixed priority chain; the first step that yields a value wins:

    1. EXACT_VENDOR_CATEGORY_RULE  active rule for this vendor and this category
    2. CATEGORY_DEFAULT            the category's own default, only when it
                                   declares has_custom_commission
    3. VENDOR_WIDE_RULE            active rule for this vendor with no category
    4. VENDOR_DEFAULT              the vendor's VendorSetting default
    5. PLATFORM_FALLBACK           platform default (5% PERCENTAGE unless overridden)

Category overrides are NOT inherited from ancestor categories: a child with
no override of its own falls through to the vendor-level steps.
"""
import uuid
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional, Tuple
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationFailedError
from app.db_types import MONEY_QUANTUM
from app.models.commission import CommissionType
from app.repositories.category_repository import CategoryRepository
from app.repositories.commission_repository import CommissionRuleRepository
from app.repositories.settings_repository import VendorSettingRepository
from app.repositories.vendor_repository import VendorRepository

if TYPE_CHECKING:
    from app.services.platform_settings_service import PlatformSettingsService

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


class CommissionSource(str, Enum):
    """Which step of the priority chain produced a commission."""
    EXACT_VENDOR_CATEGORY_RULE = "EXACT_VENDOR_CATEGORY_RULE"
    CATEGORY_DEFAULT = "CATEGORY_DEFAULT"
    VENDOR_WIDE_RULE = "VENDOR_WIDE_RULE"
    VENDOR_DEFAULT = "VENDOR_DEFAULT"
    PLATFORM_FALLBACK = "PLATFORM_FALLBACK"


@dataclass(frozen=True)
class EffectiveCommission:
    type: str
    value: Decimal
    source: CommissionSource
    rule_id: Optional[uuid.UUID] = None

    def fee_for(self, sale_amount: Decimal) -> Decimal:
        return apply_commission(sale_amount, self.type, self.value)


def validate_commission(commission_type: str, value: Decimal) -> None:
    """Reject unknown types, negative values, sub-paisa precision and percentages above 100."""
    if commission_type not in (CommissionType.PERCENTAGE.value, CommissionType.FLAT.value):
        raise ValidationFailedError(
            "Commission type must be PERCENTAGE or FLAT",
            {"type": commission_type},
        )
    if value is None or value < 0:
        raise ValidationFailedError(
            "Commission value must be zero or greater",
            {"value": str(value)},
        )
    # Stored as Numeric(14, 2)
    if Decimal(value) != Decimal(value).quantize(MONEY_QUANTUM):
        raise ValidationFailedError(
            "Commission value cannot have more than 2 decimal places",
            {"value": str(value)},
        )
    if commission_type == CommissionType.PERCENTAGE.value and value > HUNDRED:
        raise ValidationFailedError(
            "Percentage commission cannot exceed 100",
            {"value": str(value)},
        )


def apply_commission(sale_amount: Decimal, commission_type: str, value: Decimal) -> Decimal:
    """
    Fee charged on one sale.

    PERCENTAGE: sale * value / 100, rounded half-up to the paisa.
    FLAT: value, capped at the sale amount so net never goes negative.
    """
    sale_amount = Decimal(sale_amount)
    if commission_type == CommissionType.FLAT.value:
        fee = min(Decimal(value), sale_amount)
    else:
        fee = sale_amount * Decimal(value) / HUNDRED
    return fee.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


LookupStep = Callable[[uuid.UUID, Optional[uuid.UUID]], Awaitable[Optional[EffectiveCommission]]]


class CommissionResolver:
    """Walks the priority chain for a vendor and category."""

    def __init__(self, db: AsyncSession, platform_settings: "PlatformSettingsService"):
        self.db = db
        self.platform_settings = platform_settings
        self.vendors = VendorRepository(db)
        self.categories = CategoryRepository(db)
        self.rules = CommissionRuleRepository(db)
        self.vendor_settings = VendorSettingRepository(db)

    @property
    def steps(self) -> List[Tuple[CommissionSource, LookupStep]]:
        """Lookup steps in priority order."""
        return [
            (CommissionSource.EXACT_VENDOR_CATEGORY_RULE, self._exact_vendor_category_rule),
            (CommissionSource.CATEGORY_DEFAULT, self._category_default),
            (CommissionSource.VENDOR_WIDE_RULE, self._vendor_wide_rule),
            (CommissionSource.VENDOR_DEFAULT, self._vendor_default),
            (CommissionSource.PLATFORM_FALLBACK, self._platform_fallback),
        ]

    async def get_effective_commission(
        self,
        vendor_id: uuid.UUID,
        category_id: Optional[uuid.UUID] = None,
    ) -> EffectiveCommission:
        if not await self.vendors.exists(vendor_id):
            raise NotFoundError("Vendor", vendor_id)
        if category_id is not None and await self.categories.get(category_id) is None:
            raise NotFoundError("Category", category_id)
        return await self.resolve(vendor_id, category_id)

    async def resolve(
        self,
        vendor_id: uuid.UUID,
        category_id: Optional[uuid.UUID] = None,
    ) -> EffectiveCommission:
        """Resolve without existence checks (callers already hold valid ids)."""
        for source, lookup in self.steps:
            found = await lookup(vendor_id, category_id)
            if found is not None:
                logger.debug(
                    f"Commission for vendor {vendor_id} / category {category_id}: "
                    f"{found.type} {found.value} from {source.value}"
                )
                return found
        # PLATFORM_FALLBACK always yields a value
        raise RuntimeError("Commission priority chain produced no value")

    async def _exact_vendor_category_rule(self, vendor_id, category_id) -> Optional[EffectiveCommission]:
        if category_id is None:
            return None
        rule = await self.rules.find_active(vendor_id, category_id)
        if rule is None:
            return None
        return EffectiveCommission(
            type=rule.type,
            value=Decimal(rule.value),
            source=CommissionSource.EXACT_VENDOR_CATEGORY_RULE,
            rule_id=rule.id,
        )

    async def _category_default(self, vendor_id, category_id) -> Optional[EffectiveCommission]:
        if category_id is None:
            return None
        category = await self.categories.get(category_id)
        if category is None or not category.has_custom_commission:
            return None
        return EffectiveCommission(
            type=category.default_commission_type,
            value=Decimal(category.default_commission_value),
            source=CommissionSource.CATEGORY_DEFAULT,
        )

    async def _vendor_wide_rule(self, vendor_id, category_id) -> Optional[EffectiveCommission]:
        rule = await self.rules.find_active(vendor_id, None)
        if rule is None:
            return None
        return EffectiveCommission(
            type=rule.type,
            value=Decimal(rule.value),
            source=CommissionSource.VENDOR_WIDE_RULE,
            rule_id=rule.id,
        )

    async def _vendor_default(self, vendor_id, category_id) -> Optional[EffectiveCommission]:
        setting = await self.vendor_settings.get_for_vendor(vendor_id)
        if setting is None:
            return None
        return EffectiveCommission(
            type=setting.default_commission_type,
            value=Decimal(setting.default_commission_value),
            source=CommissionSource.VENDOR_DEFAULT,
        )

    async def _platform_fallback(self, vendor_id, category_id) -> Optional[EffectiveCommission]:
        commission_type, value = await self.platform_settings.get_platform_commission()
        return EffectiveCommission(
            type=commission_type,
            value=value,
            source=CommissionSource.PLATFORM_FALLBACK,
        )
