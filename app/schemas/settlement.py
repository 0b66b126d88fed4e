"""Statement and payout schemas."""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
import uuid

from pydantic import BaseModel, Field

from app.core.enum_utils import VALID_PAYOUT_OUTCOMES, create_uppercase_validator
from app.schemas.base import BaseResponseSchema
from app.schemas.vendor import VendorBrief


class StatementGenerate(BaseModel):
    """Half-open window [period_start, period_end)."""
    period_start: date
    period_end: date


class StatementResponse(BaseResponseSchema):
    id: uuid.UUID
    vendor_id: uuid.UUID
    period_start: date
    period_end: date
    total_sales: Decimal
    total_fees: Decimal
    net_amount: Decimal
    sales_count: int
    status: str
    requires_review: bool
    finalized_at: Optional[datetime] = None
    created_at: datetime


class StatementListResponse(BaseModel):
    items: List[StatementResponse]
    total: int
    page: int
    size: int
    pages: int


class DueStatementResponse(StatementResponse):
    vendor: VendorBrief


class PayoutCreate(BaseModel):
    statement_id: uuid.UUID


class BatchPayoutCreate(BaseModel):
    statement_ids: List[uuid.UUID] = Field(..., min_length=1)


class PayoutComplete(BaseModel):
    outcome: str = Field(..., description="COMPLETED or FAILED")
    reference: Optional[str] = Field(None, max_length=100)
    failure_reason: Optional[str] = None

    _normalize_outcome = create_uppercase_validator('outcome', VALID_PAYOUT_OUTCOMES)


class PayoutResponse(BaseResponseSchema):
    id: uuid.UUID
    vendor_id: uuid.UUID
    statement_id: Optional[uuid.UUID] = None
    amount: Decimal
    status: str
    reference: Optional[str] = None
    batch_reference: Optional[str] = None
    failure_reason: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime


class PayoutListResponse(BaseModel):
    items: List[PayoutResponse]
    total: int
    page: int
    size: int
    pages: int


class BatchSkippedItem(BaseModel):
    statement_id: uuid.UUID
    reason: str
    error: str


class BatchPayoutResponse(BaseModel):
    batch_reference: str
    created: int
    payouts: List[PayoutResponse]
    skipped: List[BatchSkippedItem]
    total_amount: Decimal
