"""
Vendor Lifecycle Manager.

Owns vendor records, status transitions (through vendor_state_machine) and
the derived onboarding progression. Progression is never stored: it is
computed from the presence of address, bank account and KYC records.
"""
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ConflictError,
    DuplicateIdentifierError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from app.models.vendor import Vendor, VendorIssue, VendorSetting, VendorStatus, IssueStatus
from app.repositories.onboarding_repository import (
    VendorAddressRepository,
    VendorBankAccountRepository,
    VendorKycRepository,
)
from app.repositories.settings_repository import VendorSettingRepository
from app.repositories.vendor_repository import VendorIssueRepository, VendorRepository
from app.services import vendor_state_machine
from app.services.queue_service import build_skipped, dedupe

logger = logging.getLogger(__name__)


ONBOARDING_STEPS = ["business", "address", "bank", "kyc"]

# Checked in this order; first clash wins
IDENTIFIER_FIELDS = ("email", "gst_number", "pan_number")

VENDOR_UPDATABLE_FIELDS = {"name", "legal_name", "email", "phone", "gst_number", "pan_number"}


def clashing_identifier(error: IntegrityError, data: Dict[str, Any]) -> Optional[str]:
    """Which identifier a unique violation names, when it names one we were writing."""
    message = str(error.orig).lower()
    for field in IDENTIFIER_FIELDS:
        if data.get(field) and field in message:
            return field
    return None


def normalize_identifiers(data: Dict[str, Any]) -> Dict[str, Any]:
    """Lower-case email, upper-case GST/PAN, blank strings become None."""
    data = dict(data)
    if data.get("email"):
        data["email"] = data["email"].strip().lower()
    for key in ("gst_number", "pan_number"):
        if key in data:
            value = (data[key] or "").strip().upper()
            data[key] = value or None
    return data


class VendorLifecycleService:
    """Vendor CRUD, status transitions and onboarding progression."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.vendors = VendorRepository(db)
        self.issues = VendorIssueRepository(db)
        self.vendor_settings = VendorSettingRepository(db)
        self.addresses = VendorAddressRepository(db)
        self.bank_accounts = VendorBankAccountRepository(db)
        self.kyc = VendorKycRepository(db)

    # ==================== Vendors ====================

    async def get_vendor(self, vendor_id: uuid.UUID) -> Vendor:
        vendor = await self.vendors.get(vendor_id)
        if not vendor:
            raise NotFoundError("Vendor", vendor_id)
        return vendor

    async def list_vendors(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Vendor], int]:
        return await self.vendors.list(status=status, search=search, skip=skip, limit=limit)

    async def ensure_unique_identifiers(
        self,
        data: Dict[str, Any],
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        """Email, GST number and PAN number must be unique across vendors."""
        for field in IDENTIFIER_FIELDS:
            value = data.get(field)
            if not value:
                continue
            if await self.vendors.find_by_identifier(field, value, exclude_id=exclude_id):
                raise DuplicateIdentifierError(field, value)

    async def create_vendor(
        self,
        data: Dict[str, Any],
        default_commission: Optional[Tuple[str, Decimal]] = None,
    ) -> Vendor:
        """
        Create a PENDING vendor and its settings row.

        default_commission seeds VendorSetting; without it the row falls
        back to 5% PERCENTAGE.
        """
        data = normalize_identifiers(
            {k: v for k, v in data.items() if k in VENDOR_UPDATABLE_FIELDS}
        )
        if not (data.get("name") or "").strip():
            raise ValidationFailedError("Vendor name is required", {"field": "name"})
        if not data.get("email"):
            raise ValidationFailedError("Vendor email is required", {"field": "email"})

        await self.ensure_unique_identifiers(data)

        vendor = Vendor(**data, status=VendorStatus.PENDING.value)
        try:
            async with self.db.begin_nested():
                await self.vendors.add(vendor)
        except IntegrityError as e:
            field = clashing_identifier(e, data) or "email"
            logger.warning(f"Identifier race on vendor create: {field}")
            raise DuplicateIdentifierError(field, data[field])

        commission_type, commission_value = default_commission or ("PERCENTAGE", Decimal("5"))
        await self.vendor_settings.add(
            VendorSetting(
                vendor_id=vendor.id,
                auto_payout=False,
                default_commission_type=commission_type,
                default_commission_value=commission_value,
            )
        )

        logger.info(f"Vendor created: {vendor.name} ({vendor.id}) status=PENDING")
        return vendor

    async def update_vendor(self, vendor_id: uuid.UUID, data: Dict[str, Any]) -> Vendor:
        """Update identity/contact fields. Status is only changed via update_vendor_status."""
        vendor = await self.get_vendor(vendor_id)
        data = normalize_identifiers(
            {k: v for k, v in data.items() if k in VENDOR_UPDATABLE_FIELDS}
        )
        if "name" in data and not (data["name"] or "").strip():
            raise ValidationFailedError("Vendor name is required", {"field": "name"})
        if "email" in data and not data["email"]:
            raise ValidationFailedError("Vendor email is required", {"field": "email"})

        await self.ensure_unique_identifiers(data, exclude_id=vendor_id)

        try:
            async with self.db.begin_nested():
                for key, value in data.items():
                    setattr(vendor, key, value)
                await self.db.flush()
        except IntegrityError as e:
            field = clashing_identifier(e, data)
            if field:
                logger.warning(f"Identifier race on vendor update: {field}")
                raise DuplicateIdentifierError(field, data[field])
            raise ConflictError(
                "Vendor update violates a constraint",
                {"vendor_id": str(vendor_id), "fields": sorted(data)},
            )
        await self.db.refresh(vendor)
        return vendor

    async def update_vendor_status(
        self,
        vendor_id: uuid.UUID,
        new_status: str,
        reason: Optional[str] = None,
    ) -> Vendor:
        """
        Move a vendor along one state-machine edge.

        The write is conditional on the status read here; if another operator
        changed it in between, the transition is re-validated against the
        fresh status and rejected.
        """
        vendor = await self.get_vendor(vendor_id)
        current = vendor.status
        vendor_state_machine.validate_transition(current, new_status)

        updated = await self.vendors.transition_status([vendor_id], current, new_status)
        if not updated:
            await self.db.refresh(vendor)
            raise InvalidTransitionError(
                "vendor",
                vendor.status,
                new_status,
                allowed=vendor_state_machine.get_allowed_transitions(vendor.status),
            )

        if reason:
            await self.issues.add(
                VendorIssue(
                    vendor_id=vendor_id,
                    title=f"Vendor {vendor_state_machine.get_transition_action(current, new_status)}",
                    description=reason,
                    status=(
                        IssueStatus.OPEN.value
                        if new_status == VendorStatus.SUSPENDED.value
                        else IssueStatus.RESOLVED.value
                    ),
                )
            )

        await self.db.refresh(vendor)
        logger.info(f"Vendor {vendor_id} status {current} -> {new_status}")
        return vendor

    async def bulk_update_vendor_status(
        self,
        vendor_ids: Sequence[uuid.UUID],
        new_status: str,
        reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Move many vendors to new_status along whichever edges lead there.

        One conditional UPDATE per source status; vendors in any other
        status are skipped as NOT_ELIGIBLE. Every vendor actually moved gets
        an audit issue.
        """
        sources = vendor_state_machine.get_source_statuses(new_status)
        if not sources:
            raise ValidationFailedError(
                f"No vendor can be moved to {new_status}",
                {"status": new_status},
            )

        ids = dedupe(vendor_ids)
        updated: List[uuid.UUID] = []
        moved_from: Dict[uuid.UUID, str] = {}
        for source in sources:
            remaining = [i for i in ids if i not in moved_from]
            for vendor_id in await self.vendors.transition_status(remaining, source, new_status):
                moved_from[vendor_id] = source
                updated.append(vendor_id)

        remaining = [i for i in ids if i not in moved_from]
        skipped = build_skipped(ids, updated, await self.vendors.statuses_for(remaining))

        await self.issues.add_many([
            VendorIssue(
                vendor_id=vendor_id,
                title=f"Vendor {vendor_state_machine.get_transition_action(moved_from[vendor_id], new_status)}",
                description=reason or f"Bulk status change to {new_status}",
                status=(
                    IssueStatus.OPEN.value
                    if new_status == VendorStatus.SUSPENDED.value
                    else IssueStatus.RESOLVED.value
                ),
            )
            for vendor_id in updated
        ])

        logger.info(f"Bulk status {new_status}: {len(updated)} vendors updated, {len(skipped)} skipped")
        return {"status": new_status, "updated": len(updated), "updated_ids": updated, "skipped": skipped}

    async def list_issues(
        self,
        vendor_id: uuid.UUID,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[VendorIssue], int]:
        await self.get_vendor(vendor_id)
        return await self.issues.list_for_vendor(vendor_id, status=status, skip=skip, limit=limit)

    # ==================== Onboarding progression ====================

    async def get_onboarding_progress(self, vendor_id: uuid.UUID) -> Dict[str, Any]:
        """
        Derived onboarding progression.

        business is complete whenever the vendor exists; the remaining steps
        are complete when at least one matching record exists.
        """
        vendor = await self.get_vendor(vendor_id)
        present = {
            "business": True,
            "address": await self.addresses.count_for_vendor(vendor_id) > 0,
            "bank": await self.bank_accounts.count_for_vendor(vendor_id) > 0,
            "kyc": await self.kyc.count_for_vendor(vendor_id) > 0,
        }
        completed = [step for step in ONBOARDING_STEPS if present[step]]
        current_step = next((step for step in ONBOARDING_STEPS if not present[step]), "completed")
        return {
            "vendor_id": vendor.id,
            "vendor_status": vendor.status,
            "current_step": current_step,
            "completed_steps": completed,
            "percent_complete": int(len(completed) * 100 / len(ONBOARDING_STEPS)),
        }
