import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select, func, update, or_, exists
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.vendor import Vendor, VendorAddress, VendorBankAccount, VendorIssue


class VendorRepository:
    """Persistence for vendors."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, vendor_id: uuid.UUID) -> Optional[Vendor]:
        result = await self.db.execute(select(Vendor).where(Vendor.id == vendor_id))
        return result.scalar_one_or_none()

    async def exists(self, vendor_id: uuid.UUID) -> bool:
        stmt = select(func.count(Vendor.id)).where(Vendor.id == vendor_id)
        return ((await self.db.execute(stmt)).scalar() or 0) > 0

    async def find_by_identifier(
        self,
        field: str,
        value: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> Optional[Vendor]:
        """Find a vendor by email, gst_number or pan_number (case-insensitive)."""
        column = getattr(Vendor, field)
        stmt = select(Vendor).where(func.lower(column) == value.lower())
        if exclude_id:
            stmt = stmt.where(Vendor.id != exclude_id)
        result = await self.db.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def add(self, vendor: Vendor) -> Vendor:
        self.db.add(vendor)
        await self.db.flush()
        await self.db.refresh(vendor)
        return vendor

    async def list(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        oldest_first: bool = False,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Vendor], int]:
        if oldest_first:
            order = (Vendor.created_at.asc(), Vendor.id.asc())
        else:
            order = (Vendor.created_at.desc(), Vendor.id.desc())
        stmt = select(Vendor).order_by(*order)
        count_stmt = select(func.count(Vendor.id))

        if status:
            stmt = stmt.where(Vendor.status == status)
            count_stmt = count_stmt.where(Vendor.status == status)

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

    async def statuses_for(self, vendor_ids: Sequence[uuid.UUID]) -> Dict[uuid.UUID, str]:
        if not vendor_ids:
            return {}
        result = await self.db.execute(
            select(Vendor.id, Vendor.status).where(Vendor.id.in_(vendor_ids))
        )
        return {row.id: row.status for row in result.all()}

    async def transition_status(
        self,
        vendor_ids: Sequence[uuid.UUID],
        from_status: str,
        to_status: str,
    ) -> List[uuid.UUID]:
        """
        Conditionally move vendors from one status to another.

        Only rows still in from_status at statement time are touched; the
        ids actually updated are returned.
        """
        if not vendor_ids:
            return []
        stmt = (
            update(Vendor)
            .where(Vendor.id.in_(vendor_ids), Vendor.status == from_status)
            .values(status=to_status, updated_at=datetime.now(timezone.utc))
            .returning(Vendor.id)
        )
        result = await self.db.execute(stmt)
        return [row[0] for row in result.all()]

    async def count_by_status(self) -> Dict[str, int]:
        result = await self.db.execute(
            select(Vendor.status, func.count(Vendor.id)).group_by(Vendor.status)
        )
        return {row[0]: row[1] for row in result.all()}

    async def count_incomplete_onboarding(self) -> int:
        """Vendors still missing an address or a bank account."""
        has_address = exists().where(VendorAddress.vendor_id == Vendor.id)
        has_bank = exists().where(VendorBankAccount.vendor_id == Vendor.id)
        stmt = select(func.count(Vendor.id)).where(or_(~has_address, ~has_bank))
        return (await self.db.execute(stmt)).scalar() or 0


class VendorIssueRepository:
    """Persistence for vendor issues (audit trail)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, issue: VendorIssue) -> VendorIssue:
        self.db.add(issue)
        await self.db.flush()
        return issue

    async def add_many(self, issues: List[VendorIssue]) -> None:
        if issues:
            self.db.add_all(issues)
            await self.db.flush()

    async def list_for_vendor(
        self,
        vendor_id: uuid.UUID,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[VendorIssue], int]:
        stmt = (
            select(VendorIssue)
            .where(VendorIssue.vendor_id == vendor_id)
            .order_by(VendorIssue.created_at.desc(), VendorIssue.id)
        )
        count_stmt = select(func.count(VendorIssue.id)).where(VendorIssue.vendor_id == vendor_id)
        if status:
            stmt = stmt.where(VendorIssue.status == status)
            count_stmt = count_stmt.where(VendorIssue.status == status)

        total = (await self.db.execute(count_stmt)).scalar()
        result = await self.db.execute(stmt.offset(skip).limit(limit))
        return list(result.scalars().all()), total
