import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select, func, update, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.models.vendor import (
    Vendor,
    VendorAddress,
    VendorBankAccount,
    VendorKyc,
    VendorPortalUser,
)


class VendorAddressRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, address: VendorAddress) -> VendorAddress:
        self.db.add(address)
        await self.db.flush()
        await self.db.refresh(address)
        return address

    async def clear_default(self, vendor_id: uuid.UUID) -> None:
        await self.db.execute(
            update(VendorAddress)
            .where(VendorAddress.vendor_id == vendor_id, VendorAddress.is_default == True)
            .values(is_default=False)
        )

    async def count_for_vendor(self, vendor_id: uuid.UUID) -> int:
        stmt = select(func.count(VendorAddress.id)).where(VendorAddress.vendor_id == vendor_id)
        return (await self.db.execute(stmt)).scalar() or 0


class VendorBankAccountRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, account: VendorBankAccount) -> VendorBankAccount:
        self.db.add(account)
        await self.db.flush()
        await self.db.refresh(account)
        return account

    async def count_for_vendor(self, vendor_id: uuid.UUID) -> int:
        stmt = select(func.count(VendorBankAccount.id)).where(VendorBankAccount.vendor_id == vendor_id)
        return (await self.db.execute(stmt)).scalar() or 0


class VendorKycRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add_many(self, documents: List[VendorKyc]) -> List[VendorKyc]:
        self.db.add_all(documents)
        await self.db.flush()
        return documents

    async def count_for_vendor(self, vendor_id: uuid.UUID) -> int:
        stmt = select(func.count(VendorKyc.id)).where(VendorKyc.vendor_id == vendor_id)
        return (await self.db.execute(stmt)).scalar() or 0

    async def count_by_status(self, status: str) -> int:
        stmt = select(func.count(VendorKyc.id)).where(VendorKyc.status == status)
        return (await self.db.execute(stmt)).scalar() or 0

    async def list_by_status(
        self,
        status: str,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[VendorKyc], int]:
        """KYC rows in a status, oldest submission first, with the vendor loaded."""
        stmt = (
            select(VendorKyc)
            .join(Vendor, Vendor.id == VendorKyc.vendor_id)
            .options(joinedload(VendorKyc.vendor))
            .where(VendorKyc.status == status)
            .order_by(VendorKyc.created_at.asc(), VendorKyc.id.asc())
        )
        count_stmt = (
            select(func.count(VendorKyc.id))
            .join(Vendor, Vendor.id == VendorKyc.vendor_id)
            .where(VendorKyc.status == status)
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

    async def statuses_for(self, kyc_ids: Sequence[uuid.UUID]) -> Dict[uuid.UUID, str]:
        if not kyc_ids:
            return {}
        result = await self.db.execute(
            select(VendorKyc.id, VendorKyc.status).where(VendorKyc.id.in_(kyc_ids))
        )
        return {row.id: row.status for row in result.all()}

    async def review(
        self,
        kyc_ids: Sequence[uuid.UUID],
        to_status: str,
        remarks: Optional[str] = None,
    ) -> List[uuid.UUID]:
        """Move still-PENDING documents to to_status; returns ids actually updated."""
        if not kyc_ids:
            return []
        now = datetime.now(timezone.utc)
        values = {"status": to_status, "reviewed_at": now, "updated_at": now}
        if remarks is not None:
            values["remarks"] = remarks
        stmt = (
            update(VendorKyc)
            .where(VendorKyc.id.in_(kyc_ids), VendorKyc.status == "PENDING")
            .values(**values)
            .returning(VendorKyc.id)
        )
        result = await self.db.execute(stmt)
        return [row[0] for row in result.all()]


class VendorPortalUserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_email(self, email: str) -> Optional[VendorPortalUser]:
        result = await self.db.execute(
            select(VendorPortalUser).where(func.lower(VendorPortalUser.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def add(self, user: VendorPortalUser) -> VendorPortalUser:
        self.db.add(user)
        await self.db.flush()
        return user
