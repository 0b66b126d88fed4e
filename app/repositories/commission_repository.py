import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.commission import CommissionRule


class CommissionRuleRepository:
    """Persistence for vendor commission rules."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, rule_id: uuid.UUID) -> Optional[CommissionRule]:
        result = await self.db.execute(select(CommissionRule).where(CommissionRule.id == rule_id))
        return result.scalar_one_or_none()

    async def find_active(
        self,
        vendor_id: uuid.UUID,
        category_id: Optional[uuid.UUID],
    ) -> Optional[CommissionRule]:
        """
        Most recent active rule for the exact scope.

        category_id=None selects vendor-wide rules only. Duplicates are
        broken by updated_at, then created_at, then id.
        """
        stmt = select(CommissionRule).where(
            CommissionRule.vendor_id == vendor_id,
            CommissionRule.is_active == True,
        )
        if category_id is None:
            stmt = stmt.where(CommissionRule.category_id.is_(None))
        else:
            stmt = stmt.where(CommissionRule.category_id == category_id)
        stmt = stmt.order_by(
            CommissionRule.updated_at.desc(),
            CommissionRule.created_at.desc(),
            CommissionRule.id.desc(),
        ).limit(1)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_vendor(self, vendor_id: uuid.UUID, include_inactive: bool = False) -> List[CommissionRule]:
        stmt = (
            select(CommissionRule)
            .where(CommissionRule.vendor_id == vendor_id)
            .order_by(CommissionRule.created_at.desc(), CommissionRule.id)
        )
        if not include_inactive:
            stmt = stmt.where(CommissionRule.is_active == True)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def add(self, rule: CommissionRule) -> CommissionRule:
        self.db.add(rule)
        await self.db.flush()
        await self.db.refresh(rule)
        return rule

    async def delete(self, rule: CommissionRule) -> None:
        await self.db.delete(rule)
        await self.db.flush()
