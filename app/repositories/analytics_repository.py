import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.category import Category
from app.models.commission import CommissionRule
from app.models.settlement import Payout, VendorStatement
from app.models.vendor import (
    Vendor,
    VendorAddress,
    VendorBankAccount,
    VendorKyc,
    VendorSetting,
)


def _money(value) -> Decimal:
    return Decimal(str(value or 0))


class AnalyticsRepository:
    """Read-only aggregates for the back-office dashboards."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def vendor_status_counts(self) -> Dict[str, int]:
        result = await self.db.execute(
            select(Vendor.status, func.count(Vendor.id)).group_by(Vendor.status)
        )
        return {row[0]: row[1] for row in result.all()}

    async def vendors_created_since(self, since: datetime) -> List[Any]:
        """(created_at, status) rows, oldest first."""
        stmt = (
            select(Vendor.created_at, Vendor.status)
            .where(Vendor.created_at >= since)
            .order_by(Vendor.created_at)
        )
        result = await self.db.execute(stmt)
        return list(result.all())

    async def kyc_status_counts(self) -> Dict[str, int]:
        result = await self.db.execute(
            select(VendorKyc.status, func.count(VendorKyc.id)).group_by(VendorKyc.status)
        )
        return {row[0]: row[1] for row in result.all()}

    async def kyc_doc_type_counts(self) -> List[Any]:
        stmt = (
            select(VendorKyc.doc_type.label("type"), func.count(VendorKyc.id).label("doc_count"))
            .group_by(VendorKyc.doc_type)
            .order_by(desc("doc_count"), VendorKyc.doc_type)
        )
        result = await self.db.execute(stmt)
        return list(result.all())

    async def payout_totals_by_status(self) -> Dict[str, Dict[str, Any]]:
        """status -> {count, amount}."""
        stmt = select(
            Payout.status,
            func.count(Payout.id),
            func.coalesce(func.sum(Payout.amount), 0),
        ).group_by(Payout.status)
        result = await self.db.execute(stmt)
        return {row[0]: {"count": row[1], "amount": _money(row[2])} for row in result.all()}

    async def commission_rule_groups(self) -> List[Any]:
        """Active rules grouped by (type, category name); category NULL is vendor-wide."""
        stmt = (
            select(
                CommissionRule.type.label("type"),
                Category.name.label("category"),
                func.count(CommissionRule.id).label("rule_count"),
                func.coalesce(func.sum(CommissionRule.value), 0).label("value_sum"),
            )
            .outerjoin(Category, Category.id == CommissionRule.category_id)
            .where(CommissionRule.is_active == True)
            .group_by(CommissionRule.type, Category.name)
        )
        result = await self.db.execute(stmt)
        return list(result.all())

    async def statements_since(self, since: datetime) -> List[Any]:
        """(period_start, total_sales, total_fees, net_amount) for statements created since."""
        stmt = (
            select(
                VendorStatement.period_start,
                VendorStatement.total_sales,
                VendorStatement.total_fees,
                VendorStatement.net_amount,
            )
            .where(VendorStatement.created_at >= since)
            .order_by(VendorStatement.period_start)
        )
        result = await self.db.execute(stmt)
        return list(result.all())

    async def top_vendors_by_sales(self, limit: int) -> List[Any]:
        """ACTIVE vendors ranked by statement sales; vendors without statements rank last."""
        total_sales = func.coalesce(func.sum(VendorStatement.total_sales), 0)
        stmt = (
            select(
                Vendor.id,
                Vendor.name,
                Vendor.email,
                total_sales.label("total_sales"),
                func.coalesce(func.sum(VendorStatement.net_amount), 0).label("total_earnings"),
                func.coalesce(func.sum(VendorStatement.sales_count), 0).label("sales_count"),
            )
            .outerjoin(VendorStatement, VendorStatement.vendor_id == Vendor.id)
            .where(Vendor.status == "ACTIVE")
            .group_by(Vendor.id, Vendor.name, Vendor.email)
            .order_by(desc("total_sales"), Vendor.name)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.all())

    async def vendor_export_rows(self, vendor_ids: Optional[Sequence[uuid.UUID]] = None) -> List[Any]:
        """One row per vendor with related-record counts and settings, oldest first."""

        def count_of(model):
            return (
                select(func.count(model.id))
                .where(model.vendor_id == Vendor.id)
                .correlate(Vendor)
                .scalar_subquery()
            )

        stmt = (
            select(
                Vendor,
                count_of(VendorAddress).label("address_count"),
                count_of(VendorBankAccount).label("bank_account_count"),
                count_of(VendorKyc).label("kyc_documents"),
                count_of(CommissionRule).label("commission_rules"),
                count_of(VendorStatement).label("statement_count"),
                count_of(Payout).label("payout_count"),
                VendorSetting.auto_payout,
                VendorSetting.default_commission_type,
                VendorSetting.default_commission_value,
            )
            .outerjoin(VendorSetting, VendorSetting.vendor_id == Vendor.id)
            .order_by(Vendor.created_at, Vendor.id)
        )
        if vendor_ids:
            stmt = stmt.where(Vendor.id.in_(vendor_ids))
        result = await self.db.execute(stmt)
        return list(result.all())
