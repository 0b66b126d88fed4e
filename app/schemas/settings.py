from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
import uuid

from pydantic import BaseModel, Field

from app.core.enum_utils import VALID_COMMISSION_TYPES, create_uppercase_validator
from app.schemas.base import BaseResponseSchema, BaseUpdateSchema


class VendorSettingsResponse(BaseResponseSchema):
    id: uuid.UUID
    vendor_id: uuid.UUID
    auto_payout: bool
    default_commission_type: str
    default_commission_value: Decimal
    updated_at: datetime


class VendorSettingsUpdate(BaseUpdateSchema):
    auto_payout: Optional[bool] = None
    default_commission_type: Optional[str] = None
    default_commission_value: Optional[Decimal] = Field(None, ge=0)

    _normalize_type = create_uppercase_validator('default_commission_type', VALID_COMMISSION_TYPES)


class AutoSuspensionRules(BaseModel):
    max_failed_payouts: int
    max_pending_kyc_days: int
    inactivity_days: int


class KycRequirements(BaseModel):
    required_documents: List[str]
    auto_approval_enabled: bool


class PayoutSettings(BaseModel):
    minimum_amount: Decimal
    processing_days: int
    auto_processing: bool


class PlatformDefaults(BaseModel):
    default_commission_type: str
    default_commission_rate: Decimal
    payment_cycle_days: int
    product_auto_approval: bool
    auto_suspension_rules: AutoSuspensionRules
    kyc_requirements: KycRequirements
    payout_settings: PayoutSettings


class PlatformDefaultsUpdate(BaseUpdateSchema):
    """Any subset of the overridable keys; nested objects merge one level deep."""
    default_commission_type: Optional[str] = None
    default_commission_rate: Optional[Decimal] = Field(None, ge=0)
    payment_cycle_days: Optional[int] = Field(None, ge=1)
    product_auto_approval: Optional[bool] = None
    auto_suspension_rules: Optional[Dict[str, Any]] = None
    kyc_requirements: Optional[Dict[str, Any]] = None
    payout_settings: Optional[Dict[str, Any]] = None

    _normalize_type = create_uppercase_validator('default_commission_type', VALID_COMMISSION_TYPES)
