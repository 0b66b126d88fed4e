"""
Statement Generator.

A statement summarises a vendor's sales over a half-open [period_start,
period_end) window. Fees are computed per category through the commission
resolver; net_amount is always total_sales - total_fees in exact decimal
arithmetic. Statements are created DRAFT and finalized once; finalized rows
are never edited.
"""
import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)
from app.db_types import MONEY_QUANTUM
from app.models.commission import CommissionType
from app.models.settlement import StatementStatus, VendorStatement
from app.repositories.settlement_repository import StatementRepository, VendorSaleRepository
from app.repositories.vendor_repository import VendorRepository
from app.services.commission_resolver import CommissionResolver, apply_commission

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def period_bounds(period_start: date, period_end: date) -> Tuple[datetime, datetime]:
    """UTC datetimes for the half-open window [period_start, period_end)."""
    return (
        datetime.combine(period_start, time.min, tzinfo=timezone.utc),
        datetime.combine(period_end, time.min, tzinfo=timezone.utc),
    )


class StatementService:
    def __init__(self, db: AsyncSession, resolver: CommissionResolver):
        self.db = db
        self.resolver = resolver
        self.statements = StatementRepository(db)
        self.sales = VendorSaleRepository(db)
        self.vendors = VendorRepository(db)

    async def get_statement(self, statement_id: uuid.UUID) -> VendorStatement:
        statement = await self.statements.get(statement_id)
        if not statement:
            raise NotFoundError("Statement", statement_id)
        return statement

    async def list_statements(
        self,
        vendor_id: uuid.UUID,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[VendorStatement], int]:
        if not await self.vendors.exists(vendor_id):
            raise NotFoundError("Vendor", vendor_id)
        return await self.statements.list_for_vendor(vendor_id, status=status, skip=skip, limit=limit)

    async def compute_totals(
        self,
        vendor_id: uuid.UUID,
        period_start: date,
        period_end: date,
    ) -> Dict[str, Any]:
        """
        Sales, fees and count for the window.

        PERCENTAGE fees are applied to each category's summed sales; FLAT
        fees are charged per sale and capped at that sale's amount.
        """
        start, end = period_bounds(period_start, period_end)
        total_sales = ZERO
        total_fees = ZERO
        sales_count = 0

        for category_id, category_total, count in await self.sales.totals_by_category(vendor_id, start, end):
            commission = await self.resolver.resolve(vendor_id, category_id)
            if commission.type == CommissionType.FLAT.value:
                amounts = await self.sales.amounts(vendor_id, category_id, start, end)
                fees = sum((commission.fee_for(amount) for amount in amounts), ZERO)
            else:
                fees = apply_commission(category_total, commission.type, commission.value)

            total_sales += category_total
            total_fees += fees
            sales_count += count

        total_sales = total_sales.quantize(MONEY_QUANTUM)
        total_fees = total_fees.quantize(MONEY_QUANTUM)
        return {
            "total_sales": total_sales,
            "total_fees": total_fees,
            "net_amount": total_sales - total_fees,
            "sales_count": sales_count,
        }

    async def generate_statement(
        self,
        vendor_id: uuid.UUID,
        period_start: date,
        period_end: date,
    ) -> VendorStatement:
        """Create a DRAFT statement; windows may not overlap an existing one."""
        if period_start >= period_end:
            raise ValidationFailedError(
                "period_start must be before period_end",
                {"period_start": str(period_start), "period_end": str(period_end)},
            )
        if not await self.vendors.exists(vendor_id):
            raise NotFoundError("Vendor", vendor_id)

        overlapping = await self.statements.find_overlapping(vendor_id, period_start, period_end)
        if overlapping:
            raise ConflictError(
                "Statement period overlaps an existing statement",
                {
                    "statement_id": str(overlapping.id),
                    "period_start": str(overlapping.period_start),
                    "period_end": str(overlapping.period_end),
                },
            )

        totals = await self.compute_totals(vendor_id, period_start, period_end)
        statement = await self.statements.add(
            VendorStatement(
                vendor_id=vendor_id,
                period_start=period_start,
                period_end=period_end,
                status=StatementStatus.DRAFT.value,
                **totals,
            )
        )
        logger.info(
            f"Statement {statement.id} generated for vendor {vendor_id} "
            f"[{period_start}, {period_end}): net={statement.net_amount}"
        )
        return statement

    async def finalize_statement(self, statement_id: uuid.UUID) -> VendorStatement:
        """
        DRAFT -> FINALIZED.

        Finalizing an already FINALIZED statement returns it unchanged.
        A statement with net_amount <= 0 is finalized but flagged for review.
        """
        statement = await self.get_statement(statement_id)
        if statement.status == StatementStatus.FINALIZED.value:
            return statement

        requires_review = Decimal(statement.net_amount) <= 0
        finalized = await self.statements.finalize_if_draft(statement_id, requires_review)
        await self.db.refresh(statement)

        if not finalized and statement.status != StatementStatus.FINALIZED.value:
            raise InvalidStateError(
                f"Statement cannot be finalized from status {statement.status}",
                {"statement_id": str(statement_id), "status": statement.status},
            )

        if finalized and requires_review:
            logger.warning(
                f"Statement {statement_id} finalized with non-positive net amount {statement.net_amount}; "
                f"flagged for review"
            )
        elif finalized:
            logger.info(f"Statement {statement_id} finalized")
        return statement
