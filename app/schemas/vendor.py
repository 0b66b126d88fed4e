"""Vendor schemas."""
from datetime import datetime
from typing import List, Optional
import uuid

from pydantic import BaseModel, Field, EmailStr

from app.core.enum_utils import VALID_VENDOR_STATUSES, create_uppercase_validator
from app.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema, BulkResult


class VendorBase(BaseModel):
    """Business information (first onboarding step)."""
    name: str = Field(..., min_length=2, max_length=200)
    legal_name: Optional[str] = Field(None, max_length=200)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=20)
    gst_number: Optional[str] = Field(None, min_length=15, max_length=15, description="GSTIN")
    pan_number: Optional[str] = Field(None, min_length=10, max_length=10)


class VendorCreate(VendorBase, BaseCreateSchema):
    pass


class VendorUpdate(BaseUpdateSchema):
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    legal_name: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    gst_number: Optional[str] = Field(None, min_length=15, max_length=15)
    pan_number: Optional[str] = Field(None, min_length=10, max_length=10)


class VendorStatusUpdate(BaseModel):
    status: str = Field(..., description="PENDING, ACTIVE, SUSPENDED, REJECTED")
    reason: Optional[str] = Field(None, max_length=1000)

    _normalize_status = create_uppercase_validator('status', VALID_VENDOR_STATUSES)


class VendorResponse(BaseResponseSchema):
    id: uuid.UUID
    name: str
    legal_name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    gst_number: Optional[str] = None
    pan_number: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime


class VendorBrief(BaseResponseSchema):
    """Vendor embedded in queue rows."""
    id: uuid.UUID
    name: str
    email: str
    status: str


class VendorListResponse(BaseModel):
    items: List[VendorResponse]
    total: int
    page: int
    size: int
    pages: int


class VendorIssueResponse(BaseResponseSchema):
    id: uuid.UUID
    vendor_id: uuid.UUID
    title: str
    description: Optional[str] = None
    status: str
    created_at: datetime


class VendorIssueListResponse(BaseModel):
    items: List[VendorIssueResponse]
    total: int
    page: int
    size: int
    pages: int


class OnboardingProgress(BaseModel):
    """Derived from the vendor's related records; never stored."""
    vendor_id: uuid.UUID
    vendor_status: str
    current_step: str
    completed_steps: List[str]
    percent_complete: int


class BulkVendorStatusUpdate(BaseModel):
    ids: List[uuid.UUID] = Field(..., min_length=1, max_length=500)
    status: str = Field(..., description="ACTIVE, SUSPENDED, REJECTED")
    reason: Optional[str] = Field(None, max_length=1000)

    _normalize_status = create_uppercase_validator('status', VALID_VENDOR_STATUSES)


class BulkVendorStatusResult(BulkResult):
    status: str
