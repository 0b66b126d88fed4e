"""
Vendor onboarding endpoints.

Steps can be submitted one at a time (start -> address -> bank-account ->
kyc) or all at once through /complete.
"""
import uuid

from fastapi import APIRouter, BackgroundTasks, status

from app.api.deps import DB, Notifier, Onboarding
from app.schemas.onboarding import (
    VendorAddressCreate,
    VendorBankAccountCreate,
    KycDocumentsCreate,
    OnboardingStartResponse,
    AddressStepResponse,
    BankAccountStepResponse,
    KycStepResponse,
    CompleteOnboardingRequest,
    CompleteOnboardingResponse,
    OnboardingValidation,
    OnboardingStats,
)
from app.schemas.vendor import VendorCreate, OnboardingProgress

router = APIRouter(tags=["Vendor Onboarding"])


@router.post("/start", response_model=OnboardingStartResponse, status_code=status.HTTP_201_CREATED)
async def start_onboarding(data: VendorCreate, service: Onboarding):
    return await service.start_onboarding(data.model_dump())


@router.post("/{vendor_id}/address", response_model=AddressStepResponse, status_code=status.HTTP_201_CREATED)
async def add_address(vendor_id: uuid.UUID, data: VendorAddressCreate, service: Onboarding):
    return await service.add_address(vendor_id, data.model_dump())


@router.post(
    "/{vendor_id}/bank-account",
    response_model=BankAccountStepResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_bank_account(vendor_id: uuid.UUID, data: VendorBankAccountCreate, service: Onboarding):
    return await service.add_bank_account(vendor_id, data.model_dump())


@router.post("/{vendor_id}/kyc", response_model=KycStepResponse, status_code=status.HTTP_201_CREATED)
async def add_kyc_documents(vendor_id: uuid.UUID, data: KycDocumentsCreate, service: Onboarding):
    return await service.add_kyc_documents(vendor_id, [d.model_dump() for d in data.documents])


@router.post("/complete", response_model=CompleteOnboardingResponse, status_code=status.HTTP_201_CREATED)
async def complete_onboarding(
    data: CompleteOnboardingRequest,
    service: Onboarding,
    db: DB,
    notifier: Notifier,
    background_tasks: BackgroundTasks,
):
    """
    Run every onboarding step in one transaction and provision the portal login.

    The portal access email is sent in the background once the transaction
    has committed; a failed send is logged and does not affect this response.
    """
    result = await service.complete_onboarding(data.model_dump())
    portal_access = result.pop("portal_access")
    await db.commit()

    if portal_access:
        background_tasks.add_task(notifier.notify_portal_access, **portal_access)
    return result


@router.get("/stats", response_model=OnboardingStats)
async def get_onboarding_stats(service: Onboarding):
    return await service.get_onboarding_stats()


@router.get("/{vendor_id}/progress", response_model=OnboardingProgress)
async def get_onboarding_progress(vendor_id: uuid.UUID, service: Onboarding):
    return await service.lifecycle.get_onboarding_progress(vendor_id)


@router.get("/{vendor_id}/validation", response_model=OnboardingValidation)
async def validate_onboarding(vendor_id: uuid.UUID, service: Onboarding):
    return await service.validate_onboarding_completion(vendor_id)
