"""
Onboarding tests: stepwise submission, one-shot completion and portal user
provisioning.
"""
import logging
import smtplib
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from app.core.exceptions import DuplicateIdentifierError, NotFoundError, ValidationFailedError
from app.core.security import verify_password
from app.models.vendor import VendorPortalUser
from app.repositories.onboarding_repository import VendorAddressRepository
from app.repositories.settings_repository import VendorSettingRepository
from app.services.email_service import EmailService, PortalAccessNotifier
from app.services.onboarding_service import OnboardingService


ADDRESS = {
    "type": "BUSINESS",
    "line1": "Plot 7, Industrial Area",
    "city": "Jaipur",
    "state": "Rajasthan",
    "postal_code": "302013",
}

BANK = {
    "account_holder": "Marwar Handicrafts",
    "account_number": "50100012345678",
    "ifsc": "hdfc0001234",
    "bank_name": "HDFC Bank",
}


def complete_payload(email="owner@marwar.example", **vendor_overrides):
    vendor = {"name": "Marwar Handicrafts", "email": email}
    vendor.update(vendor_overrides)
    return {
        "vendor": vendor,
        "address": dict(ADDRESS),
        "bank_account": dict(BANK),
        "kyc_documents": [
            {"doc_type": "pan_card", "doc_url": "https://files.example.com/pan.pdf"},
            {"doc_type": "GST_CERTIFICATE", "doc_url": "https://files.example.com/gst.pdf"},
        ],
    }


@pytest.fixture
def onboarding(db_session, platform_settings):
    return OnboardingService(db_session, platform_settings)


class TestStepwise:
    async def test_start_seeds_platform_commission(self, db_session, onboarding, platform_settings):
        await platform_settings.update_defaults({"default_commission_rate": "8"})

        result = await onboarding.start_onboarding({"name": "Solo Seller", "email": "solo@example.com"})

        vendor = result["vendor"]
        assert vendor.status == "PENDING"
        assert result["progress"]["current_step"] == "address"
        setting = await VendorSettingRepository(db_session).get_for_vendor(vendor.id)
        assert setting.default_commission_value == Decimal("8")

    async def test_first_address_becomes_default(self, db_session, onboarding, make_vendor):
        vendor = await make_vendor()

        first = await onboarding.add_address(vendor.id, dict(ADDRESS))
        second = await onboarding.add_address(vendor.id, {**ADDRESS, "type": "WAREHOUSE"})
        assert first["address"].is_default is True
        assert second["address"].is_default is False

        third = await onboarding.add_address(vendor.id, {**ADDRESS, "type": "PICKUP", "is_default": True})
        assert third["address"].is_default is True

        for result in (first, second):
            await db_session.refresh(result["address"])
        assert first["address"].is_default is False
        assert await VendorAddressRepository(db_session).count_for_vendor(vendor.id) == 3

    async def test_bank_account_is_unverified(self, onboarding, make_vendor):
        vendor = await make_vendor()
        result = await onboarding.add_bank_account(vendor.id, dict(BANK))
        assert result["bank_account"].status == "UNVERIFIED"
        assert result["bank_account"].ifsc == "HDFC0001234"
        assert result["progress"]["current_step"] == "kyc"

    async def test_kyc_requires_documents(self, onboarding, make_vendor):
        vendor = await make_vendor()
        with pytest.raises(ValidationFailedError):
            await onboarding.add_kyc_documents(vendor.id, [])

    async def test_steps_require_vendor(self, onboarding):
        with pytest.raises(NotFoundError):
            await onboarding.add_address(uuid4(), dict(ADDRESS))


class TestCompleteOnboarding:
    async def test_complete_creates_everything_and_returns_portal_access(self, onboarding):
        result = await onboarding.complete_onboarding(complete_payload())

        vendor = result["vendor"]
        assert vendor.status == "PENDING"
        assert result["portal_user_created"] is True
        assert result["progress"]["current_step"] == "completed"
        assert result["progress"]["percent_complete"] == 100

        access = result["portal_access"]
        assert access["to_email"] == "owner@marwar.example"
        assert access["vendor_name"] == "Marwar Handicrafts"
        assert len(access["temporary_password"]) >= 8

    async def test_portal_password_is_hashed(self, db_session, onboarding):
        result = await onboarding.complete_onboarding(complete_payload())
        user = await db_session.get(VendorPortalUser, result["portal_user_id"])
        temporary_password = result["portal_access"]["temporary_password"]

        assert user.hashed_password != temporary_password
        assert verify_password(temporary_password, user.hashed_password)
        assert user.must_change_password is True

    async def test_existing_portal_user_is_linked_without_email(self, db_session, onboarding, make_vendor):
        previous = await make_vendor()
        existing = VendorPortalUser(
            vendor_id=previous.id,
            email="owner@marwar.example",
            hashed_password="not-a-real-hash",
        )
        db_session.add(existing)
        await db_session.flush()

        result = await onboarding.complete_onboarding(complete_payload())

        assert result["portal_user_created"] is False
        assert result["portal_user_id"] == existing.id
        assert existing.vendor_id == result["vendor"].id
        assert result["portal_access"] is None

    async def test_duplicate_email_fails_before_anything_is_written(self, onboarding, make_vendor):
        await make_vendor(email="owner@marwar.example")

        with pytest.raises(DuplicateIdentifierError):
            await onboarding.complete_onboarding(complete_payload())
        assert (await onboarding.get_onboarding_stats())["total_vendors"] == 1


class TestValidationAndStats:
    async def test_validation_reports_missing_steps(self, onboarding, make_vendor):
        vendor = await make_vendor()
        await onboarding.add_address(vendor.id, dict(ADDRESS))

        validation = await onboarding.validate_onboarding_completion(vendor.id)
        assert validation["is_complete"] is False
        assert validation["has_kyc"] is False
        assert validation["missing_steps"] == ["bank", "kyc"]

        await onboarding.add_bank_account(vendor.id, dict(BANK))
        validation = await onboarding.validate_onboarding_completion(vendor.id)
        assert validation["is_complete"] is True
        assert validation["missing_steps"] == ["kyc"]

    async def test_stats(self, onboarding, make_vendor):
        await onboarding.complete_onboarding(complete_payload())
        await make_vendor(status="ACTIVE")

        stats = await onboarding.get_onboarding_stats()
        assert stats == {
            "total_vendors": 2,
            "pending_vendors": 1,
            "incomplete_onboarding": 1,
            "completed_onboarding": 1,
        }


class TestPortalAccessNotifier:
    async def test_send_runs_with_portal_url(self):
        email_service = MagicMock(spec=EmailService)
        email_service.send_portal_access_email.return_value = True
        notifier = PortalAccessNotifier(email_service, portal_url="https://sellers.example.com")

        await notifier.notify_portal_access("owner@marwar.example", "Marwar Handicrafts", "Tmp#12345")

        email_service.send_portal_access_email.assert_called_once_with(
            "owner@marwar.example", "Marwar Handicrafts", "Tmp#12345", "https://sellers.example.com"
        )

    async def test_smtp_failure_is_logged_not_raised(self, caplog):
        email_service = MagicMock(spec=EmailService)
        email_service.send_portal_access_email.side_effect = smtplib.SMTPException("relay refused")
        notifier = PortalAccessNotifier(email_service, portal_url="https://sellers.example.com")

        with caplog.at_level(logging.WARNING, logger="app.services.email_service"):
            await notifier.notify_portal_access("owner@marwar.example", "Marwar Handicrafts", "Tmp#12345")

        assert "relay refused" in caplog.text
