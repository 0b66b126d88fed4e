import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select, func, update, or_, and_, exists
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.models.settlement import VendorSale, VendorStatement, Payout
from app.models.vendor import Vendor


class VendorSaleRepository:
    """Read-side aggregates over settled sales."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, sale: VendorSale) -> VendorSale:
        self.db.add(sale)
        await self.db.flush()
        return sale

    async def totals_by_category(
        self,
        vendor_id: uuid.UUID,
        start: datetime,
        end: datetime,
    ) -> List[Tuple[Optional[uuid.UUID], Decimal, int]]:
        """(category_id, SUM(amount), COUNT(*)) for sales in [start, end)."""
        stmt = (
            select(
                VendorSale.category_id,
                func.coalesce(func.sum(VendorSale.amount), 0),
                func.count(VendorSale.id),
            )
            .where(
                VendorSale.vendor_id == vendor_id,
                VendorSale.sold_at >= start,
                VendorSale.sold_at < end,
            )
            .group_by(VendorSale.category_id)
        )
        result = await self.db.execute(stmt)
        return [(row[0], Decimal(str(row[1])), int(row[2])) for row in result.all()]

    async def amounts(
        self,
        vendor_id: uuid.UUID,
        category_id: Optional[uuid.UUID],
        start: datetime,
        end: datetime,
    ) -> List[Decimal]:
        """Individual sale amounts for one category in [start, end)."""
        stmt = select(VendorSale.amount).where(
            VendorSale.vendor_id == vendor_id,
            VendorSale.sold_at >= start,
            VendorSale.sold_at < end,
        )
        if category_id is None:
            stmt = stmt.where(VendorSale.category_id.is_(None))
        else:
            stmt = stmt.where(VendorSale.category_id == category_id)
        result = await self.db.execute(stmt)
        return [Decimal(str(amount)) for amount in result.scalars().all()]


class StatementRepository:
    """Persistence for vendor statements."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, statement_id: uuid.UUID, lock: bool = False) -> Optional[VendorStatement]:
        stmt = select(VendorStatement).where(VendorStatement.id == statement_id)
        if lock:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_overlapping(
        self,
        vendor_id: uuid.UUID,
        period_start: date,
        period_end: date,
    ) -> Optional[VendorStatement]:
        """First statement whose half-open window intersects [period_start, period_end)."""
        stmt = (
            select(VendorStatement)
            .where(
                VendorStatement.vendor_id == vendor_id,
                VendorStatement.period_start < period_end,
                VendorStatement.period_end > period_start,
            )
            .order_by(VendorStatement.period_start)
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def add(self, statement: VendorStatement) -> VendorStatement:
        self.db.add(statement)
        await self.db.flush()
        await self.db.refresh(statement)
        return statement

    async def list_for_vendor(
        self,
        vendor_id: uuid.UUID,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[VendorStatement], int]:
        stmt = (
            select(VendorStatement)
            .where(VendorStatement.vendor_id == vendor_id)
            .order_by(VendorStatement.period_start.desc())
        )
        count_stmt = select(func.count(VendorStatement.id)).where(VendorStatement.vendor_id == vendor_id)
        if status:
            stmt = stmt.where(VendorStatement.status == status)
            count_stmt = count_stmt.where(VendorStatement.status == status)

        total = (await self.db.execute(count_stmt)).scalar()
        result = await self.db.execute(stmt.offset(skip).limit(limit))
        return list(result.scalars().all()), total

    async def finalize_if_draft(self, statement_id: uuid.UUID, requires_review: bool) -> bool:
        """DRAFT -> FINALIZED as a conditional update; False when the row was not DRAFT."""
        now = datetime.now(timezone.utc)
        stmt = (
            update(VendorStatement)
            .where(VendorStatement.id == statement_id, VendorStatement.status == "DRAFT")
            .values(
                status="FINALIZED",
                finalized_at=now,
                requires_review=requires_review,
                updated_at=now,
            )
            .returning(VendorStatement.id)
        )
        result = await self.db.execute(stmt)
        return result.first() is not None

    def _due_filter(self):
        completed = exists().where(
            Payout.statement_id == VendorStatement.id,
            Payout.status == "COMPLETED",
        )
        return and_(VendorStatement.status == "FINALIZED", ~completed)

    async def list_due(
        self,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[VendorStatement], int]:
        """FINALIZED statements without a COMPLETED payout, oldest period_end first."""
        stmt = (
            select(VendorStatement)
            .join(Vendor, Vendor.id == VendorStatement.vendor_id)
            .options(joinedload(VendorStatement.vendor))
            .where(self._due_filter())
            .order_by(VendorStatement.period_end.asc(), VendorStatement.created_at.asc(), VendorStatement.id)
        )
        count_stmt = (
            select(func.count(VendorStatement.id))
            .join(Vendor, Vendor.id == VendorStatement.vendor_id)
            .where(self._due_filter())
        )
        if search:
            search_filter = or_(
                Vendor.name.ilike(f"%{search}%"),
                Vendor.email.ilike(f"%{search}%"),
            )
            stmt = stmt.where(search_filter)
            count_stmt = count_stmt.where(search_filter)

        total = (await self.db.execute(count_stmt)).scalar()
        result = await self.db.execute(stmt.offset(skip).limit(limit))
        return list(result.scalars().all()), total

    async def count_due(self) -> int:
        stmt = select(func.count(VendorStatement.id)).where(self._due_filter())
        return (await self.db.execute(stmt)).scalar() or 0


class PayoutRepository:
    """Persistence for payouts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, payout_id: uuid.UUID) -> Optional[Payout]:
        result = await self.db.execute(select(Payout).where(Payout.id == payout_id))
        return result.scalar_one_or_none()

    async def find_active_for_statement(self, statement_id: uuid.UUID) -> Optional[Payout]:
        """The non-FAILED payout for a statement, if any."""
        stmt = select(Payout).where(
            Payout.statement_id == statement_id,
            Payout.status != "FAILED",
        ).limit(1)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def add(self, payout: Payout) -> Payout:
        """Flush a new payout; the partial unique index may raise IntegrityError here."""
        self.db.add(payout)
        await self.db.flush()
        return payout

    async def list_for_vendor(
        self,
        vendor_id: uuid.UUID,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Payout], int]:
        stmt = (
            select(Payout)
            .where(Payout.vendor_id == vendor_id)
            .order_by(Payout.created_at.desc(), Payout.id)
        )
        count_stmt = select(func.count(Payout.id)).where(Payout.vendor_id == vendor_id)
        if status:
            stmt = stmt.where(Payout.status == status)
            count_stmt = count_stmt.where(Payout.status == status)

        total = (await self.db.execute(count_stmt)).scalar()
        result = await self.db.execute(stmt.offset(skip).limit(limit))
        return list(result.scalars().all()), total

    async def settle(
        self,
        payout_id: uuid.UUID,
        to_status: str,
        reference: Optional[str] = None,
        failure_reason: Optional[str] = None,
    ) -> bool:
        """INITIATED -> to_status as a conditional update; False when no longer INITIATED."""
        now = datetime.now(timezone.utc)
        values = {"status": to_status, "updated_at": now}
        if to_status == "COMPLETED":
            values["completed_at"] = now
        if reference is not None:
            values["reference"] = reference
        if failure_reason is not None:
            values["failure_reason"] = failure_reason
        stmt = (
            update(Payout)
            .where(Payout.id == payout_id, Payout.status == "INITIATED")
            .values(**values)
            .returning(Payout.id)
        )
        result = await self.db.execute(stmt)
        return result.first() is not None

    async def count_by_status(self, status: str) -> int:
        stmt = select(func.count(Payout.id)).where(Payout.status == status)
        return (await self.db.execute(stmt)).scalar() or 0
