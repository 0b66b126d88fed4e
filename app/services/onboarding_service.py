"""
Vendor onboarding.

Steps: business info -> address -> bank account -> KYC. Each step can be
submitted on its own, or complete_onboarding() performs all of them in the
caller's transaction and then provisions a seller-portal login. The portal
access email is not sent here: complete_onboarding() returns what the email
needs and the caller hands it to the notifier once the transaction commits.
"""
import uuid
from typing import Any, Dict, List
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationFailedError
from app.core.security import generate_temporary_password, get_password_hash
from app.models.vendor import (
    Vendor,
    VendorAddress,
    VendorBankAccount,
    VendorKyc,
    VendorPortalUser,
    BankAccountStatus,
    KycStatus,
)
from app.repositories.onboarding_repository import (
    VendorAddressRepository,
    VendorBankAccountRepository,
    VendorKycRepository,
    VendorPortalUserRepository,
)
from app.repositories.vendor_repository import VendorRepository
from app.services.platform_settings_service import PlatformSettingsService
from app.services.vendor_lifecycle_service import ONBOARDING_STEPS, VendorLifecycleService

logger = logging.getLogger(__name__)


class OnboardingService:
    """Stepwise and one-shot vendor onboarding."""

    def __init__(
        self,
        db: AsyncSession,
        platform_settings: PlatformSettingsService,
    ):
        self.db = db
        self.platform_settings = platform_settings
        self.lifecycle = VendorLifecycleService(db)
        self.vendors = VendorRepository(db)
        self.addresses = VendorAddressRepository(db)
        self.bank_accounts = VendorBankAccountRepository(db)
        self.kyc = VendorKycRepository(db)
        self.portal_users = VendorPortalUserRepository(db)

    async def _require_vendor(self, vendor_id: uuid.UUID) -> Vendor:
        vendor = await self.vendors.get(vendor_id)
        if not vendor:
            raise NotFoundError("Vendor", vendor_id)
        return vendor

    async def start_onboarding(self, vendor_data: Dict[str, Any]) -> Dict[str, Any]:
        """Business-info step: creates the PENDING vendor and its default settings."""
        default_commission = await self.platform_settings.get_platform_commission()
        vendor = await self.lifecycle.create_vendor(vendor_data, default_commission=default_commission)
        return {
            "vendor": vendor,
            "progress": await self.lifecycle.get_onboarding_progress(vendor.id),
        }

    async def add_address(self, vendor_id: uuid.UUID, address_data: Dict[str, Any]) -> Dict[str, Any]:
        await self._require_vendor(vendor_id)

        is_default = address_data.get("is_default")
        if is_default is None:
            # First address becomes the default
            is_default = await self.addresses.count_for_vendor(vendor_id) == 0
        if is_default:
            await self.addresses.clear_default(vendor_id)

        address = await self.addresses.add(
            VendorAddress(vendor_id=vendor_id, **{**address_data, "is_default": is_default})
        )
        return {
            "address": address,
            "progress": await self.lifecycle.get_onboarding_progress(vendor_id),
        }

    async def add_bank_account(self, vendor_id: uuid.UUID, bank_data: Dict[str, Any]) -> Dict[str, Any]:
        await self._require_vendor(vendor_id)
        bank_data = dict(bank_data)
        bank_data["ifsc"] = bank_data["ifsc"].strip().upper()
        account = await self.bank_accounts.add(
            VendorBankAccount(
                vendor_id=vendor_id,
                status=BankAccountStatus.UNVERIFIED.value,
                **bank_data,
            )
        )
        return {
            "bank_account": account,
            "progress": await self.lifecycle.get_onboarding_progress(vendor_id),
        }

    async def add_kyc_documents(
        self,
        vendor_id: uuid.UUID,
        documents: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        await self._require_vendor(vendor_id)
        if not documents:
            raise ValidationFailedError("At least one KYC document is required", {"field": "documents"})

        rows = await self.kyc.add_many([
            VendorKyc(
                vendor_id=vendor_id,
                doc_type=doc["doc_type"].strip().upper(),
                doc_url=doc["doc_url"],
                remarks=doc.get("remarks"),
                status=KycStatus.PENDING.value,
            )
            for doc in documents
        ])
        return {
            "kyc_documents": rows,
            "progress": await self.lifecycle.get_onboarding_progress(vendor_id),
        }

    async def complete_onboarding(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        All onboarding steps in the caller's transaction.

        Any failure propagates and the request transaction rolls back, so no
        partially-onboarded vendor is left behind. portal_access carries the
        recipient and temporary password for a newly created login (None when
        an existing login was linked); it must only be sent after commit.
        """
        started = await self.start_onboarding(payload["vendor"])
        vendor: Vendor = started["vendor"]

        await self.add_address(vendor.id, payload["address"])
        await self.add_bank_account(vendor.id, payload["bank_account"])
        if payload.get("kyc_documents"):
            await self.add_kyc_documents(vendor.id, payload["kyc_documents"])

        portal_user, temporary_password = await self.create_portal_user(vendor)

        logger.info(f"Onboarding completed for vendor {vendor.id}")
        return {
            "vendor": vendor,
            "portal_user_id": portal_user.id,
            "portal_user_created": temporary_password is not None,
            "portal_access": {
                "to_email": vendor.email,
                "vendor_name": vendor.name,
                "temporary_password": temporary_password,
            } if temporary_password else None,
            "progress": await self.lifecycle.get_onboarding_progress(vendor.id),
        }

    async def create_portal_user(self, vendor: Vendor):
        """
        Provision the seller-portal login for a vendor.

        Returns (user, temporary_password). An existing login with the same
        email is linked instead, and temporary_password is None.
        """
        existing = await self.portal_users.get_by_email(vendor.email)
        if existing:
            logger.info(f"Portal user {existing.email} already exists; linking to vendor {vendor.id}")
            existing.vendor_id = vendor.id
            await self.db.flush()
            return existing, None

        temporary_password = generate_temporary_password()
        user = await self.portal_users.add(
            VendorPortalUser(
                vendor_id=vendor.id,
                email=vendor.email,
                full_name=vendor.name,
                hashed_password=get_password_hash(temporary_password),
                is_active=True,
                must_change_password=True,
            )
        )
        return user, temporary_password

    async def validate_onboarding_completion(self, vendor_id: uuid.UUID) -> Dict[str, Any]:
        progress = await self.lifecycle.get_onboarding_progress(vendor_id)
        completed = progress["completed_steps"]
        return {
            "vendor_id": vendor_id,
            "is_complete": all(step in completed for step in ("business", "address", "bank")),
            "has_kyc": "kyc" in completed,
            "missing_steps": [step for step in ONBOARDING_STEPS if step not in completed],
            "progress": progress,
        }

    async def get_onboarding_stats(self) -> Dict[str, int]:
        by_status = await self.vendors.count_by_status()
        total = sum(by_status.values())
        incomplete = await self.vendors.count_incomplete_onboarding()
        return {
            "total_vendors": total,
            "pending_vendors": by_status.get("PENDING", 0),
            "incomplete_onboarding": incomplete,
            "completed_onboarding": total - incomplete,
        }
