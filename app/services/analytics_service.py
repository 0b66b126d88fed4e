"""
Back-office analytics.

Read-only dashboards over vendors, KYC, commission rules, statements and
payouts, plus a flat vendor export. Money stays Decimal; rates are whole
percentages except commission averages, which keep two decimals.
"""
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Sequence
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.db_types import MONEY_QUANTUM
from app.models.settlement import PayoutStatus
from app.models.vendor import KycStatus, VendorStatus
from app.repositories.analytics_repository import AnalyticsRepository

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def percentage(part: int, whole: int) -> int:
    """Whole-number share, 0 when there is nothing to divide."""
    if whole <= 0:
        return 0
    return int((Decimal(part) * 100 / Decimal(whole)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def average(total: Decimal, count: int) -> Decimal:
    if count <= 0:
        return ZERO
    return (Decimal(total) / count).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


class AnalyticsService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = AnalyticsRepository(db)

    async def get_vendor_overview(self) -> Dict[str, Any]:
        counts = await self.repo.vendor_status_counts()
        distribution = {status.value: counts.get(status.value, 0) for status in VendorStatus}
        total = sum(counts.values())
        return {
            "total_vendors": total,
            "status_distribution": distribution,
            "active_percentage": percentage(distribution[VendorStatus.ACTIVE.value], total),
        }

    async def get_vendor_growth(self, days: int = 30, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Vendors registered per day over the last `days` days."""
        since = (now or datetime.now(timezone.utc)) - timedelta(days=days)
        by_day: Dict[str, Dict[str, Any]] = {}
        for created_at, status in await self.repo.vendors_created_since(since):
            day = created_at.date().isoformat()
            entry = by_day.setdefault(day, {"date": day, "total": 0, "active": 0, "pending": 0})
            entry["total"] += 1
            if status == VendorStatus.ACTIVE.value:
                entry["active"] += 1
            elif status == VendorStatus.PENDING.value:
                entry["pending"] += 1
        return list(by_day.values())

    async def get_kyc_analytics(self) -> Dict[str, Any]:
        counts = await self.repo.kyc_status_counts()
        distribution = {status.value: counts.get(status.value, 0) for status in KycStatus}
        total = sum(counts.values())
        return {
            "total_kyc": total,
            "status_distribution": distribution,
            "approval_rate": percentage(distribution[KycStatus.APPROVED.value], total),
            "document_types": [
                {"type": row.type, "count": row.doc_count}
                for row in await self.repo.kyc_doc_type_counts()
            ],
        }

    async def get_payout_analytics(self) -> Dict[str, Any]:
        totals = await self.repo.payout_totals_by_status()
        distribution = {status.value: totals.get(status.value, {}).get("count", 0) for status in PayoutStatus}
        total = sum(distribution.values())
        return {
            "total_payouts": total,
            "status_distribution": distribution,
            "total_amount_paid": totals.get(PayoutStatus.COMPLETED.value, {}).get("amount", ZERO),
            "pending_amount": totals.get(PayoutStatus.INITIATED.value, {}).get("amount", ZERO),
            "failed_amount": totals.get(PayoutStatus.FAILED.value, {}).get("amount", ZERO),
            "success_rate": percentage(distribution[PayoutStatus.COMPLETED.value], total),
        }

    async def get_commission_analytics(self) -> Dict[str, Any]:
        """
        Active commission rules by type and by category.

        PERCENTAGE and FLAT values are not comparable, so averages are only
        reported within a type; the overall average covers PERCENTAGE rules.
        """
        by_type: Dict[str, Dict[str, Any]] = {}
        by_category: Dict[tuple, Dict[str, Any]] = {}
        for row in await self.repo.commission_rule_groups():
            value_sum = Decimal(str(row.value_sum))
            type_entry = by_type.setdefault(row.type, {"type": row.type, "count": 0, "sum": ZERO})
            type_entry["count"] += row.rule_count
            type_entry["sum"] += value_sum

            category = row.category or "Vendor-wide"
            key = (category, row.type)
            category_entry = by_category.setdefault(
                key, {"category": category, "type": row.type, "count": 0, "sum": ZERO}
            )
            category_entry["count"] += row.rule_count
            category_entry["sum"] += value_sum

        percentage_rules = by_type.get("PERCENTAGE", {"count": 0, "sum": ZERO})
        return {
            "total_rules": sum(entry["count"] for entry in by_type.values()),
            "average_percentage": average(percentage_rules["sum"], percentage_rules["count"]),
            "by_type": [
                {"type": e["type"], "count": e["count"], "average_value": average(e["sum"], e["count"])}
                for e in sorted(by_type.values(), key=lambda e: e["type"])
            ],
            "by_category": [
                {
                    "category": e["category"],
                    "type": e["type"],
                    "count": e["count"],
                    "average_value": average(e["sum"], e["count"]),
                }
                for e in sorted(by_category.values(), key=lambda e: (e["category"], e["type"]))
            ],
        }

    async def get_financial_analytics(self, months: int = 6, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Statement totals for statements created in the last `months` months, by period month."""
        since = (now or datetime.now(timezone.utc)) - timedelta(days=30 * months)
        monthly: Dict[str, Dict[str, Any]] = {}
        total_sales = total_fees = total_net = ZERO
        for period_start, sales, fees, net in await self.repo.statements_since(since):
            month = period_start.strftime("%Y-%m")
            entry = monthly.setdefault(month, {"month": month, "sales": ZERO, "fees": ZERO, "net": ZERO})
            entry["sales"] += Decimal(sales)
            entry["fees"] += Decimal(fees)
            entry["net"] += Decimal(net)
            total_sales += Decimal(sales)
            total_fees += Decimal(fees)
            total_net += Decimal(net)

        effective_rate = ZERO
        if total_sales > 0:
            effective_rate = (total_fees * 100 / total_sales).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)
        return {
            "total_sales": total_sales,
            "total_fees": total_fees,
            "total_net": total_net,
            "effective_commission_rate": effective_rate,
            "monthly_breakdown": list(monthly.values()),
        }

    async def get_top_vendors(self, limit: int = 10) -> List[Dict[str, Any]]:
        return [
            {
                "id": row.id,
                "name": row.name,
                "email": row.email,
                "total_sales": Decimal(str(row.total_sales)),
                "total_earnings": Decimal(str(row.total_earnings)),
                "sales_count": int(row.sales_count),
                "average_sale_value": average(Decimal(str(row.total_sales)), int(row.sales_count)),
            }
            for row in await self.repo.top_vendors_by_sales(limit)
        ]

    async def export_vendor_data(self, vendor_ids: Optional[Sequence[uuid.UUID]] = None) -> Dict[str, Any]:
        """Flat per-vendor records with related-record counts."""
        rows = await self.repo.vendor_export_rows(vendor_ids)
        data = []
        for row in rows:
            vendor = row[0]
            settings = None
            if row.default_commission_type is not None:
                settings = {
                    "auto_payout": row.auto_payout,
                    "default_commission_type": row.default_commission_type,
                    "default_commission_value": row.default_commission_value,
                }
            data.append({
                "id": vendor.id,
                "name": vendor.name,
                "legal_name": vendor.legal_name,
                "email": vendor.email,
                "phone": vendor.phone,
                "gst_number": vendor.gst_number,
                "pan_number": vendor.pan_number,
                "status": vendor.status,
                "created_at": vendor.created_at,
                "address_count": row.address_count,
                "bank_account_count": row.bank_account_count,
                "kyc_documents": row.kyc_documents,
                "commission_rules": row.commission_rules,
                "statement_count": row.statement_count,
                "payout_count": row.payout_count,
                "settings": settings,
            })
        logger.info(f"Exported {len(data)} vendor records")
        return {
            "data": data,
            "exported_at": datetime.now(timezone.utc),
            "total_records": len(data),
        }
