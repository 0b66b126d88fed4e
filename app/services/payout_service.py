"""
Payout Batch Processor.

One non-FAILED payout per statement. The lookup in create_payout is only a
fast path; the partial unique index uq_payouts_active_statement is what
actually stops two concurrent callers, and its violation is reported as
DuplicatePayoutError.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    SettlementError,
    StatementNotFinalizedError,
    DuplicatePayoutError,
    ValidationFailedError,
)
from app.core.enum_utils import VALID_PAYOUT_OUTCOMES
from app.models.settlement import Payout, PayoutStatus, StatementStatus
from app.repositories.settlement_repository import PayoutRepository, StatementRepository
from app.repositories.vendor_repository import VendorRepository

logger = logging.getLogger(__name__)


def generate_batch_reference() -> str:
    """BATCH-YYYYMMDDHHMMSS-XXXXXX"""
    now = datetime.now(timezone.utc)
    return f"BATCH-{now.strftime('%Y%m%d%H%M%S')}-{uuid.uuid4().hex[:6].upper()}"


def skip_reason(error: SettlementError) -> str:
    if isinstance(error, NotFoundError):
        return "NOT_FOUND"
    if isinstance(error, StatementNotFinalizedError):
        return "NOT_FINALIZED"
    if isinstance(error, ConflictError):
        return "DUPLICATE_PAYOUT"
    return error.kind


class PayoutService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.payouts = PayoutRepository(db)
        self.statements = StatementRepository(db)
        self.vendors = VendorRepository(db)

    async def get_payout(self, payout_id: uuid.UUID) -> Payout:
        payout = await self.payouts.get(payout_id)
        if not payout:
            raise NotFoundError("Payout", payout_id)
        return payout

    async def list_payouts(
        self,
        vendor_id: uuid.UUID,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Payout], int]:
        if not await self.vendors.exists(vendor_id):
            raise NotFoundError("Vendor", vendor_id)
        return await self.payouts.list_for_vendor(vendor_id, status=status, skip=skip, limit=limit)

    async def create_payout(
        self,
        statement_id: uuid.UUID,
        batch_reference: Optional[str] = None,
    ) -> Payout:
        """INITIATED payout for the full net amount of a FINALIZED statement."""
        statement = await self.statements.get(statement_id)
        if not statement:
            raise NotFoundError("Statement", statement_id)
        if statement.status != StatementStatus.FINALIZED.value:
            raise StatementNotFinalizedError(statement_id, statement.status)

        existing = await self.payouts.find_active_for_statement(statement_id)
        if existing:
            raise DuplicatePayoutError(statement_id, existing.id)

        payout = Payout(
            vendor_id=statement.vendor_id,
            statement_id=statement_id,
            amount=statement.net_amount,
            status=PayoutStatus.INITIATED.value,
            batch_reference=batch_reference,
        )
        try:
            async with self.db.begin_nested():
                await self.payouts.add(payout)
        except IntegrityError:
            logger.warning(f"Concurrent payout creation for statement {statement_id} rejected by unique index")
            raise DuplicatePayoutError(statement_id)

        if Decimal(payout.amount) <= 0:
            logger.warning(f"Payout {payout.id} created with non-positive amount {payout.amount}")
        logger.info(f"Payout {payout.id} initiated for statement {statement_id}: {payout.amount}")
        return payout

    async def create_batch_payouts(self, statement_ids: Sequence[uuid.UUID]) -> Dict[str, Any]:
        """
        Apply create_payout to each statement independently.

        Failures are collected per id and never abort the batch; an id
        repeated in the request is processed once and reported as
        DUPLICATE_IN_BATCH for every later occurrence.
        """
        batch_reference = generate_batch_reference()
        created: List[Payout] = []
        skipped = []
        seen = set()

        for statement_id in statement_ids:
            if statement_id in seen:
                skipped.append({
                    "statement_id": statement_id,
                    "reason": "DUPLICATE_IN_BATCH",
                    "error": "Statement repeated in batch",
                })
                continue
            seen.add(statement_id)
            try:
                created.append(await self.create_payout(statement_id, batch_reference=batch_reference))
            except SettlementError as e:
                logger.warning(f"Batch {batch_reference}: skipped statement {statement_id} ({e.kind}: {e.message})")
                skipped.append({
                    "statement_id": statement_id,
                    "reason": skip_reason(e),
                    "error": e.message,
                })

        total_amount = sum((Decimal(p.amount) for p in created), Decimal("0.00"))
        logger.info(
            f"Batch {batch_reference}: {len(created)} payouts created, {len(skipped)} skipped, total {total_amount}"
        )
        return {
            "batch_reference": batch_reference,
            "created": len(created),
            "payouts": created,
            "skipped": skipped,
            "total_amount": total_amount,
        }

    async def complete_payout(
        self,
        payout_id: uuid.UUID,
        outcome: str,
        reference: Optional[str] = None,
        failure_reason: Optional[str] = None,
    ) -> Payout:
        """INITIATED -> COMPLETED or FAILED. Both outcomes are terminal."""
        outcome = (outcome or "").strip().upper()
        if outcome not in VALID_PAYOUT_OUTCOMES:
            raise ValidationFailedError(
                "Payout outcome must be COMPLETED or FAILED",
                {"outcome": outcome},
            )

        payout = await self.get_payout(payout_id)
        settled = await self.payouts.settle(
            payout_id,
            outcome,
            reference=reference,
            failure_reason=failure_reason if outcome == PayoutStatus.FAILED.value else None,
        )
        await self.db.refresh(payout)

        if not settled:
            raise InvalidStateError(
                f"Payout is already {payout.status}",
                {"payout_id": str(payout_id), "status": payout.status, "outcome": outcome},
            )

        if outcome == PayoutStatus.FAILED.value:
            logger.warning(f"Payout {payout_id} failed: {failure_reason or 'no reason given'}")
        else:
            logger.info(f"Payout {payout_id} completed (reference={reference})")
        return payout
