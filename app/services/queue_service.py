"""
Operational Queues.

Three read models with bulk mutators:

    approval  PENDING vendors, oldest created_at first
    kyc       PENDING KYC documents, oldest first
    payouts   FINALIZED statements with no COMPLETED payout, oldest period_end first

Bulk mutators are set-based conditional updates: only rows that are still
eligible when the UPDATE runs are transitioned. Everything else is reported
under "skipped" with NOT_FOUND or NOT_ELIGIBLE, so two operators working the
same queue never double-process a row.
"""
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.settlement import PayoutStatus, VendorStatement
from app.models.vendor import IssueStatus, KycStatus, Vendor, VendorIssue, VendorKyc, VendorStatus
from app.repositories.onboarding_repository import VendorKycRepository
from app.repositories.settlement_repository import PayoutRepository, StatementRepository
from app.repositories.vendor_repository import VendorIssueRepository, VendorRepository

logger = logging.getLogger(__name__)


# Queue health thresholds
PENDING_APPROVALS_WARNING = 10
PENDING_KYC_WARNING = 20
FAILED_PAYOUTS_CRITICAL = 5

DEFAULT_KYC_REJECTION_REMARKS = "Bulk rejection"


def dedupe(ids: Sequence[uuid.UUID]) -> List[uuid.UUID]:
    """Drop repeated ids, keeping first-seen order."""
    return list(dict.fromkeys(ids))


def build_skipped(
    requested: Sequence[uuid.UUID],
    updated: Sequence[uuid.UUID],
    current_statuses: Dict[uuid.UUID, str],
) -> List[Dict[str, Any]]:
    updated_set = set(updated)
    skipped = []
    for item_id in requested:
        if item_id in updated_set:
            continue
        if item_id not in current_statuses:
            skipped.append({"id": item_id, "reason": "NOT_FOUND", "status": None})
        else:
            skipped.append({"id": item_id, "reason": "NOT_ELIGIBLE", "status": current_statuses[item_id]})
    return skipped


class QueueService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.vendors = VendorRepository(db)
        self.issues = VendorIssueRepository(db)
        self.kyc = VendorKycRepository(db)
        self.statements = StatementRepository(db)
        self.payouts = PayoutRepository(db)

    # ==================== Approval queue ====================

    async def get_approval_queue(
        self,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Vendor], int]:
        return await self.vendors.list(
            status=VendorStatus.PENDING.value,
            search=search,
            oldest_first=True,
            skip=skip,
            limit=limit,
        )

    async def _transition_pending_vendors(
        self,
        vendor_ids: Sequence[uuid.UUID],
        to_status: str,
    ) -> Tuple[List[uuid.UUID], List[Dict[str, Any]]]:
        ids = dedupe(vendor_ids)
        updated = await self.vendors.transition_status(ids, VendorStatus.PENDING.value, to_status)
        remaining = [i for i in ids if i not in set(updated)]
        skipped = build_skipped(ids, updated, await self.vendors.statuses_for(remaining))
        return updated, skipped

    async def bulk_approve_vendors(self, vendor_ids: Sequence[uuid.UUID]) -> Dict[str, Any]:
        updated, skipped = await self._transition_pending_vendors(vendor_ids, VendorStatus.ACTIVE.value)
        logger.info(f"Bulk approve: {len(updated)} vendors approved, {len(skipped)} skipped")
        return {"updated": len(updated), "updated_ids": updated, "skipped": skipped}

    async def bulk_reject_vendors(
        self,
        vendor_ids: Sequence[uuid.UUID],
        reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        updated, skipped = await self._transition_pending_vendors(vendor_ids, VendorStatus.REJECTED.value)

        if reason and updated:
            await self.issues.add_many([
                VendorIssue(
                    vendor_id=vendor_id,
                    title="Application Rejected",
                    description=reason,
                    status=IssueStatus.RESOLVED.value,
                )
                for vendor_id in updated
            ])

        logger.info(f"Bulk reject: {len(updated)} vendors rejected, {len(skipped)} skipped")
        return {"updated": len(updated), "updated_ids": updated, "skipped": skipped}

    # ==================== KYC review queue ====================

    async def get_kyc_queue(
        self,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[VendorKyc], int]:
        return await self.kyc.list_by_status(KycStatus.PENDING.value, search=search, skip=skip, limit=limit)

    async def _review_kyc(
        self,
        kyc_ids: Sequence[uuid.UUID],
        to_status: str,
        remarks: Optional[str] = None,
    ) -> Dict[str, Any]:
        ids = dedupe(kyc_ids)
        updated = await self.kyc.review(ids, to_status, remarks=remarks)
        remaining = [i for i in ids if i not in set(updated)]
        skipped = build_skipped(ids, updated, await self.kyc.statuses_for(remaining))
        return {"updated": len(updated), "updated_ids": updated, "skipped": skipped}

    async def bulk_approve_kyc(self, kyc_ids: Sequence[uuid.UUID]) -> Dict[str, Any]:
        result = await self._review_kyc(kyc_ids, KycStatus.APPROVED.value)
        logger.info(f"Bulk KYC approve: {result['updated']} approved, {len(result['skipped'])} skipped")
        return result

    async def bulk_reject_kyc(
        self,
        kyc_ids: Sequence[uuid.UUID],
        remarks: Optional[str] = None,
    ) -> Dict[str, Any]:
        result = await self._review_kyc(
            kyc_ids,
            KycStatus.REJECTED.value,
            remarks=remarks or DEFAULT_KYC_REJECTION_REMARKS,
        )
        logger.info(f"Bulk KYC reject: {result['updated']} rejected, {len(result['skipped'])} skipped")
        return result

    # ==================== Payout due queue ====================

    async def get_payout_due_queue(
        self,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[VendorStatement], int]:
        return await self.statements.list_due(search=search, skip=skip, limit=limit)

    # ==================== Stats ====================

    async def get_queue_stats(self) -> Dict[str, int]:
        by_status = await self.vendors.count_by_status()
        return {
            "pending_vendors": by_status.get(VendorStatus.PENDING.value, 0),
            "pending_kyc": await self.kyc.count_by_status(KycStatus.PENDING.value),
            "due_payouts": await self.statements.count_due(),
            "failed_payouts": await self.payouts.count_by_status(PayoutStatus.FAILED.value),
        }

    async def get_queue_health(self) -> Dict[str, Any]:
        """Queue metrics plus an overall HEALTHY / WARNING / CRITICAL verdict."""
        stats = await self.get_queue_stats()
        alerts = []
        health = "HEALTHY"

        if stats["pending_vendors"] > PENDING_APPROVALS_WARNING:
            alerts.append(f"{stats['pending_vendors']} vendors awaiting approval")
            health = "WARNING"
        if stats["pending_kyc"] > PENDING_KYC_WARNING:
            alerts.append(f"{stats['pending_kyc']} KYC documents awaiting review")
            health = "WARNING"
        if stats["failed_payouts"] > FAILED_PAYOUTS_CRITICAL:
            alerts.append(f"{stats['failed_payouts']} failed payouts")
            health = "CRITICAL"

        if health != "HEALTHY":
            logger.warning(f"Queue health {health}: {'; '.join(alerts)}")
        return {"health": health, "metrics": stats, "alerts": alerts}
