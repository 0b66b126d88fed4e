from pydantic import BaseModel, Field

from app.core.enum_utils import VALID_COMMISSION_TYPES, create_uppercase_validator
from app.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema
from typing import Any, Dict, List, Optional
from datetime import datetime
from decimal import Decimal
import uuid


class CommissionRuleCreate(BaseCreateSchema):
    """category_id omitted or null creates a vendor-wide rule."""
    category_id: Optional[uuid.UUID] = None
    type: str = Field("PERCENTAGE", description="PERCENTAGE or FLAT")
    value: Decimal = Field(..., ge=0)
    is_active: bool = True

    _normalize_type = create_uppercase_validator('type', VALID_COMMISSION_TYPES)


class CommissionRuleUpdate(BaseUpdateSchema):
    category_id: Optional[uuid.UUID] = None
    type: Optional[str] = None
    value: Optional[Decimal] = Field(None, ge=0)
    is_active: Optional[bool] = None

    _normalize_type = create_uppercase_validator('type', VALID_COMMISSION_TYPES)


class CommissionRuleResponse(BaseResponseSchema):
    id: uuid.UUID
    vendor_id: uuid.UUID
    category_id: Optional[uuid.UUID] = None
    type: str
    value: Decimal
    is_active: bool
    created_at: datetime
    updated_at: datetime


class EffectiveCommissionResponse(BaseModel):
    vendor_id: uuid.UUID
    category_id: Optional[uuid.UUID] = None
    type: str
    value: Decimal
    source: str
    rule_id: Optional[uuid.UUID] = None


class BulkCommissionItem(BaseModel):
    vendor_id: uuid.UUID
    type: str = "PERCENTAGE"
    value: Decimal = Field(..., ge=0)

    _normalize_type = create_uppercase_validator('type', VALID_COMMISSION_TYPES)


class BulkCommissionUpdate(BaseModel):
    updates: List[BulkCommissionItem] = Field(..., min_length=1)


class BulkCommissionResult(BaseModel):
    successful: int
    failed: int
    details: List[Dict[str, Any]]
