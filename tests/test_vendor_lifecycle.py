"""
Vendor lifecycle tests: status state machine, identifier uniqueness and
derived onboarding progress.
"""
from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.exceptions import (
    DuplicateIdentifierError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from app.models.vendor import VendorAddress, VendorBankAccount
from app.repositories.settings_repository import VendorSettingRepository
from app.services import vendor_state_machine
from app.services.vendor_lifecycle_service import VendorLifecycleService


def vendor_payload(**overrides):
    data = {
        "name": "Acme Traders",
        "email": "Sales@Acme.example",
        "gst_number": "27aapfu0939f1zv",
        "pan_number": "aapfu0939f",
    }
    data.update(overrides)
    return data


class TestStateMachine:
    @pytest.mark.parametrize("current,target", [
        ("PENDING", "ACTIVE"),
        ("PENDING", "REJECTED"),
        ("ACTIVE", "SUSPENDED"),
        ("SUSPENDED", "ACTIVE"),
    ])
    def test_allowed_edges(self, current, target):
        assert vendor_state_machine.can_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        ("REJECTED", "ACTIVE"),
        ("REJECTED", "PENDING"),
        ("ACTIVE", "PENDING"),
        ("SUSPENDED", "REJECTED"),
        ("ACTIVE", "ACTIVE"),
    ])
    def test_rejected_edges(self, current, target):
        with pytest.raises(InvalidTransitionError):
            vendor_state_machine.validate_transition(current, target)

    def test_invalid_transition_is_invalid_state(self):
        assert issubclass(InvalidTransitionError, InvalidStateError)
        assert InvalidTransitionError("vendor", "REJECTED", "ACTIVE").kind == "InvalidState"


class TestCreateVendor:
    async def test_create_normalizes_and_seeds_settings(self, db_session):
        service = VendorLifecycleService(db_session)
        vendor = await service.create_vendor(
            vendor_payload(),
            default_commission=("PERCENTAGE", Decimal("6")),
        )

        assert vendor.status == "PENDING"
        assert vendor.email == "sales@acme.example"
        assert vendor.gst_number == "27AAPFU0939F1ZV"
        assert vendor.pan_number == "AAPFU0939F"

        setting = await VendorSettingRepository(db_session).get_for_vendor(vendor.id)
        assert setting.default_commission_value == Decimal("6")

    @pytest.mark.parametrize("field,value", [
        ("email", "sales@acme.example"),
        ("gst_number", "27AAPFU0939F1ZV"),
        ("pan_number", "AAPFU0939F"),
    ])
    async def test_duplicate_identifier(self, db_session, field, value):
        service = VendorLifecycleService(db_session)
        await service.create_vendor(vendor_payload())

        other = vendor_payload(email="other@acme.example", gst_number=None, pan_number=None)
        other[field] = value
        with pytest.raises(DuplicateIdentifierError) as exc:
            await service.create_vendor(other)
        assert exc.value.details["field"] == field

    async def test_name_required(self, db_session):
        service = VendorLifecycleService(db_session)
        with pytest.raises(ValidationFailedError):
            await service.create_vendor(vendor_payload(name="  "))

    async def test_update_rejects_identifier_of_another_vendor(self, db_session):
        service = VendorLifecycleService(db_session)
        first = await service.create_vendor(vendor_payload())
        second = await service.create_vendor(
            vendor_payload(email="second@acme.example", gst_number=None, pan_number=None)
        )

        with pytest.raises(DuplicateIdentifierError):
            await service.update_vendor(second.id, {"email": first.email})

        updated = await service.update_vendor(first.id, {"phone": "+91 98200 00000", "email": first.email})
        assert updated.phone == "+91 98200 00000"


class TestStatusUpdates:
    async def test_reject_then_activate_fails(self, db_session, make_vendor):
        service = VendorLifecycleService(db_session)
        vendor = await make_vendor()

        rejected = await service.update_vendor_status(vendor.id, "REJECTED")
        assert rejected.status == "REJECTED"

        with pytest.raises(InvalidStateError) as exc:
            await service.update_vendor_status(vendor.id, "ACTIVE")
        assert exc.value.details["from"] == "REJECTED"
        assert exc.value.details["allowed"] == []

    async def test_suspend_and_reactivate(self, db_session, make_vendor):
        service = VendorLifecycleService(db_session)
        vendor = await make_vendor(status="ACTIVE")

        suspended = await service.update_vendor_status(vendor.id, "SUSPENDED", reason="Repeated late shipments")
        assert suspended.status == "SUSPENDED"
        reactivated = await service.update_vendor_status(vendor.id, "ACTIVE")
        assert reactivated.status == "ACTIVE"

        issues, total = await service.list_issues(vendor.id)
        assert total == 1
        assert issues[0].title == "Vendor Suspend"
        assert issues[0].status == "OPEN"

    async def test_same_status_is_rejected(self, db_session, make_vendor):
        service = VendorLifecycleService(db_session)
        vendor = await make_vendor(status="ACTIVE")
        with pytest.raises(InvalidTransitionError):
            await service.update_vendor_status(vendor.id, "ACTIVE")

    async def test_unknown_vendor(self, db_session):
        service = VendorLifecycleService(db_session)
        with pytest.raises(NotFoundError):
            await service.update_vendor_status(uuid4(), "ACTIVE")


class TestOnboardingProgress:
    async def test_progress_is_derived_from_records(self, db_session, make_vendor, make_kyc):
        service = VendorLifecycleService(db_session)
        vendor = await make_vendor()

        progress = await service.get_onboarding_progress(vendor.id)
        assert progress["current_step"] == "address"
        assert progress["completed_steps"] == ["business"]
        assert progress["percent_complete"] == 25

        db_session.add(VendorAddress(
            vendor_id=vendor.id, line1="12 MG Road", city="Pune", state="MH", postal_code="411001",
        ))
        db_session.add(VendorBankAccount(
            vendor_id=vendor.id, account_holder="Acme", account_number="001122334455",
            ifsc="HDFC0000123", bank_name="HDFC Bank",
        ))
        await db_session.flush()

        progress = await service.get_onboarding_progress(vendor.id)
        assert progress["current_step"] == "kyc"
        assert progress["percent_complete"] == 75

        await make_kyc(vendor)
        progress = await service.get_onboarding_progress(vendor.id)
        assert progress["current_step"] == "completed"
        assert progress["completed_steps"] == ["business", "address", "bank", "kyc"]
        assert progress["percent_complete"] == 100

    async def test_list_vendors_filters_by_status(self, db_session, make_vendor):
        service = VendorLifecycleService(db_session)
        await make_vendor(status="PENDING")
        active = await make_vendor(status="ACTIVE")

        vendors, total = await service.list_vendors(status="ACTIVE")
        assert total == 1
        assert vendors[0].id == active.id


class TestUpdateRace:
    async def test_identifier_clash_inside_savepoint(self, db_session, monkeypatch):
        service = VendorLifecycleService(db_session)
        first = await service.create_vendor(vendor_payload())
        second = await service.create_vendor(
            vendor_payload(email="second@acme.example", gst_number=None, pan_number=None)
        )

        async def nothing_found(field, value, exclude_id=None):
            return None

        monkeypatch.setattr(service.vendors, "find_by_identifier", nothing_found)
        with pytest.raises(DuplicateIdentifierError) as exc:
            await service.update_vendor(second.id, {"email": first.email, "phone": "+91 90000 00001"})
        assert exc.value.details["field"] == "email"

        refreshed = await service.get_vendor(second.id)
        assert refreshed.email == "second@acme.example"
        assert refreshed.phone is None

        renamed = await service.update_vendor(second.id, {"name": "Acme Retail"})
        assert renamed.name == "Acme Retail"


class TestBulkStatus:
    async def test_suspend_only_active_vendors(self, db_session, make_vendor):
        service = VendorLifecycleService(db_session)
        active = await make_vendor(status="ACTIVE")
        pending = await make_vendor(status="PENDING")
        missing = uuid4()

        result = await service.bulk_update_vendor_status(
            [active.id, pending.id, missing, active.id], "SUSPENDED", reason="Chargeback spike"
        )

        assert result["updated"] == 1
        assert result["updated_ids"] == [active.id]
        assert result["skipped"] == [
            {"id": pending.id, "reason": "NOT_ELIGIBLE", "status": "PENDING"},
            {"id": missing, "reason": "NOT_FOUND", "status": None},
        ]
        assert (await service.get_vendor(active.id)).status == "SUSPENDED"
        assert (await service.get_vendor(pending.id)).status == "PENDING"

        issues, total = await service.list_issues(active.id)
        assert total == 1
        assert issues[0].title == "Vendor Suspend"
        assert issues[0].description == "Chargeback spike"
        assert issues[0].status == "OPEN"
        assert (await service.list_issues(pending.id))[1] == 0

    async def test_activate_uses_every_source_status(self, db_session, make_vendor):
        service = VendorLifecycleService(db_session)
        pending = await make_vendor(status="PENDING")
        suspended = await make_vendor(status="SUSPENDED")
        rejected = await make_vendor(status="REJECTED")

        result = await service.bulk_update_vendor_status(
            [pending.id, suspended.id, rejected.id], "ACTIVE"
        )

        assert set(result["updated_ids"]) == {pending.id, suspended.id}
        assert [s["id"] for s in result["skipped"]] == [rejected.id]

        titles = {
            vendor_id: (await service.list_issues(vendor_id))[0][0].title
            for vendor_id in (pending.id, suspended.id)
        }
        assert titles == {pending.id: "Vendor Approve", suspended.id: "Vendor Reactivate"}

    async def test_unreachable_target_rejected(self, db_session, make_vendor):
        service = VendorLifecycleService(db_session)
        vendor = await make_vendor(status="ACTIVE")
        with pytest.raises(ValidationFailedError):
            await service.bulk_update_vendor_status([vendor.id], "PENDING")
