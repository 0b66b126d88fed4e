"""Vendor onboarding schemas."""
from datetime import datetime
from typing import List, Optional
import uuid

from pydantic import BaseModel, Field

from app.core.enum_utils import VALID_ADDRESS_TYPES, create_uppercase_validator
from app.schemas.base import BaseResponseSchema, BaseCreateSchema
from app.schemas.vendor import OnboardingProgress, VendorCreate, VendorResponse


class VendorAddressCreate(BaseCreateSchema):
    type: str = Field("BUSINESS", description="BUSINESS, WAREHOUSE, BILLING, PICKUP")
    line1: str = Field(..., min_length=1, max_length=255)
    line2: Optional[str] = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    country: str = Field("India", max_length=100)
    postal_code: str = Field(..., min_length=3, max_length=10)
    is_default: Optional[bool] = Field(None, description="Defaults to true for the first address")

    _normalize_type = create_uppercase_validator('type', VALID_ADDRESS_TYPES)


class VendorAddressResponse(BaseResponseSchema):
    id: uuid.UUID
    vendor_id: uuid.UUID
    type: str
    line1: str
    line2: Optional[str] = None
    city: str
    state: str
    country: str
    postal_code: str
    is_default: bool
    created_at: datetime


class VendorBankAccountCreate(BaseCreateSchema):
    account_holder: str = Field(..., min_length=2, max_length=200)
    account_number: str = Field(..., min_length=6, max_length=30)
    ifsc: str = Field(..., min_length=11, max_length=11)
    bank_name: str = Field(..., min_length=2, max_length=100)
    branch: Optional[str] = Field(None, max_length=100)


class VendorBankAccountResponse(BaseResponseSchema):
    id: uuid.UUID
    vendor_id: uuid.UUID
    account_holder: str
    account_number: str
    ifsc: str
    bank_name: str
    branch: Optional[str] = None
    status: str
    created_at: datetime


class KycDocumentCreate(BaseCreateSchema):
    doc_type: str = Field(..., min_length=2, max_length=50, description="e.g. GST_CERTIFICATE, PAN_CARD")
    doc_url: str = Field(..., min_length=1, max_length=500)
    remarks: Optional[str] = None


class KycDocumentsCreate(BaseModel):
    documents: List[KycDocumentCreate] = Field(..., min_length=1)


class KycDocumentResponse(BaseResponseSchema):
    id: uuid.UUID
    vendor_id: uuid.UUID
    doc_type: str
    doc_url: str
    status: str
    remarks: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime


class OnboardingStartResponse(BaseModel):
    vendor: VendorResponse
    progress: OnboardingProgress


class AddressStepResponse(BaseModel):
    address: VendorAddressResponse
    progress: OnboardingProgress


class BankAccountStepResponse(BaseModel):
    bank_account: VendorBankAccountResponse
    progress: OnboardingProgress


class KycStepResponse(BaseModel):
    kyc_documents: List[KycDocumentResponse]
    progress: OnboardingProgress


class CompleteOnboardingRequest(BaseModel):
    """All onboarding steps in one request."""
    vendor: VendorCreate
    address: VendorAddressCreate
    bank_account: VendorBankAccountCreate
    kyc_documents: List[KycDocumentCreate] = []


class CompleteOnboardingResponse(BaseModel):
    vendor: VendorResponse
    portal_user_id: uuid.UUID
    portal_user_created: bool
    progress: OnboardingProgress


class OnboardingValidation(BaseModel):
    vendor_id: uuid.UUID
    is_complete: bool
    has_kyc: bool
    missing_steps: List[str]
    progress: OnboardingProgress


class OnboardingStats(BaseModel):
    total_vendors: int
    pending_vendors: int
    incomplete_onboarding: int
    completed_onboarding: int
