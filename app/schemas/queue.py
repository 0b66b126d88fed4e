"""Operational queue schemas."""
from datetime import datetime
from typing import List, Optional
import uuid

from pydantic import BaseModel, Field

from app.schemas.base import BaseResponseSchema
from app.schemas.settlement import DueStatementResponse
from app.schemas.vendor import VendorBrief, VendorResponse


class BulkIds(BaseModel):
    ids: List[uuid.UUID] = Field(..., min_length=1)


class BulkReject(BulkIds):
    reason: Optional[str] = Field(None, max_length=1000)


class BulkKycReject(BulkIds):
    remarks: Optional[str] = Field(None, max_length=1000)


class ApprovalQueueResponse(BaseModel):
    items: List[VendorResponse]
    total: int
    page: int
    size: int
    pages: int


class KycQueueItem(BaseResponseSchema):
    id: uuid.UUID
    doc_type: str
    doc_url: str
    status: str
    remarks: Optional[str] = None
    created_at: datetime
    vendor: VendorBrief


class KycQueueResponse(BaseModel):
    items: List[KycQueueItem]
    total: int
    page: int
    size: int
    pages: int


class PayoutQueueResponse(BaseModel):
    items: List[DueStatementResponse]
    total: int
    page: int
    size: int
    pages: int


class QueueStats(BaseModel):
    pending_vendors: int
    pending_kyc: int
    due_payouts: int
    failed_payouts: int


class QueueHealth(BaseModel):
    health: str
    metrics: QueueStats
    alerts: List[str]
