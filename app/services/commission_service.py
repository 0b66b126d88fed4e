"""Commission rule management (vendor-wide and category-scoped overrides)."""
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, SettlementError
from app.models.commission import CommissionRule
from app.repositories.category_repository import CategoryRepository
from app.repositories.commission_repository import CommissionRuleRepository
from app.repositories.vendor_repository import VendorRepository
from app.services.commission_resolver import validate_commission

logger = logging.getLogger(__name__)


class CommissionService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.rules = CommissionRuleRepository(db)
        self.vendors = VendorRepository(db)
        self.categories = CategoryRepository(db)

    async def get_rule(self, rule_id: uuid.UUID) -> CommissionRule:
        rule = await self.rules.get(rule_id)
        if not rule:
            raise NotFoundError("Commission rule", rule_id)
        return rule

    async def list_rules(self, vendor_id: uuid.UUID, include_inactive: bool = False) -> List[CommissionRule]:
        if not await self.vendors.exists(vendor_id):
            raise NotFoundError("Vendor", vendor_id)
        return await self.rules.list_for_vendor(vendor_id, include_inactive=include_inactive)

    async def create_rule(self, vendor_id: uuid.UUID, data: Dict[str, Any]) -> CommissionRule:
        if not await self.vendors.exists(vendor_id):
            raise NotFoundError("Vendor", vendor_id)

        category_id = data.get("category_id")
        if category_id is not None and await self.categories.get(category_id) is None:
            raise NotFoundError("Category", category_id)

        commission_type = data.get("type", "PERCENTAGE")
        value = Decimal(str(data["value"]))
        validate_commission(commission_type, value)

        rule = await self.rules.add(
            CommissionRule(
                vendor_id=vendor_id,
                category_id=category_id,
                type=commission_type,
                value=value,
                is_active=data.get("is_active", True),
            )
        )
        scope = f"category {category_id}" if category_id else "vendor-wide"
        logger.info(f"Commission rule {rule.id} created for vendor {vendor_id} ({scope}): {commission_type} {value}")
        return rule

    async def update_rule(self, rule_id: uuid.UUID, data: Dict[str, Any]) -> CommissionRule:
        rule = await self.get_rule(rule_id)

        if "category_id" in data and data["category_id"] is not None:
            if await self.categories.get(data["category_id"]) is None:
                raise NotFoundError("Category", data["category_id"])

        commission_type = data.get("type") or rule.type
        value = Decimal(str(data["value"])) if data.get("value") is not None else Decimal(rule.value)
        validate_commission(commission_type, value)

        rule.type = commission_type
        rule.value = value
        if "category_id" in data:
            rule.category_id = data["category_id"]
        if data.get("is_active") is not None:
            rule.is_active = data["is_active"]

        await self.db.flush()
        await self.db.refresh(rule)
        return rule

    async def delete_rule(self, rule_id: uuid.UUID) -> None:
        rule = await self.get_rule(rule_id)
        await self.rules.delete(rule)
        logger.info(f"Commission rule {rule_id} deleted")

    async def set_vendor_wide_rate(
        self,
        vendor_id: uuid.UUID,
        commission_type: str,
        value: Decimal,
    ) -> CommissionRule:
        """Update the vendor's active vendor-wide rule, or create one."""
        if not await self.vendors.exists(vendor_id):
            raise NotFoundError("Vendor", vendor_id)
        validate_commission(commission_type, value)

        rule = await self.rules.find_active(vendor_id, None)
        if rule is None:
            return await self.rules.add(
                CommissionRule(vendor_id=vendor_id, type=commission_type, value=value, is_active=True)
            )
        rule.type = commission_type
        rule.value = value
        await self.db.flush()
        return rule

    async def bulk_update_commission_rates(
        self,
        updates: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """
        Set vendor-wide rates for many vendors.

        Each update runs in its own savepoint; a failing vendor is reported
        in details and does not affect the others.
        """
        successful = 0
        failed = 0
        details = []

        for item in updates:
            vendor_id = item["vendor_id"]
            try:
                async with self.db.begin_nested():
                    rule = await self.set_vendor_wide_rate(
                        vendor_id,
                        item.get("type", "PERCENTAGE"),
                        Decimal(str(item["value"])),
                    )
                successful += 1
                details.append({"vendor_id": vendor_id, "success": True, "rule_id": rule.id})
            except SettlementError as e:
                failed += 1
                logger.warning(f"Bulk commission update failed for vendor {vendor_id}: {e.message}")
                details.append({"vendor_id": vendor_id, "success": False, "error": e.message, "kind": e.kind})

        logger.info(f"Bulk commission update: {successful} successful, {failed} failed")
        return {"successful": successful, "failed": failed, "details": details}
