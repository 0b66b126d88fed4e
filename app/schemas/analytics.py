"""Analytics and export schemas."""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
import uuid

from pydantic import BaseModel


class VendorOverview(BaseModel):
    total_vendors: int
    status_distribution: Dict[str, int]
    active_percentage: int


class VendorGrowthPoint(BaseModel):
    date: str
    total: int
    active: int
    pending: int


class DocumentTypeCount(BaseModel):
    type: str
    count: int


class KycAnalytics(BaseModel):
    total_kyc: int
    status_distribution: Dict[str, int]
    approval_rate: int
    document_types: List[DocumentTypeCount]


class PayoutAnalytics(BaseModel):
    total_payouts: int
    status_distribution: Dict[str, int]
    total_amount_paid: Decimal
    pending_amount: Decimal
    failed_amount: Decimal
    success_rate: int


class CommissionTypeSummary(BaseModel):
    type: str
    count: int
    average_value: Decimal


class CommissionCategorySummary(CommissionTypeSummary):
    category: str


class CommissionAnalytics(BaseModel):
    total_rules: int
    average_percentage: Decimal
    by_type: List[CommissionTypeSummary]
    by_category: List[CommissionCategorySummary]


class MonthlyTotals(BaseModel):
    month: str
    sales: Decimal
    fees: Decimal
    net: Decimal


class FinancialAnalytics(BaseModel):
    total_sales: Decimal
    total_fees: Decimal
    total_net: Decimal
    effective_commission_rate: Decimal
    monthly_breakdown: List[MonthlyTotals]


class TopVendor(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    total_sales: Decimal
    total_earnings: Decimal
    sales_count: int
    average_sale_value: Decimal


class ExportedSettings(BaseModel):
    auto_payout: Optional[bool] = None
    default_commission_type: str
    default_commission_value: Decimal


class ExportedVendor(BaseModel):
    id: uuid.UUID
    name: str
    legal_name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    gst_number: Optional[str] = None
    pan_number: Optional[str] = None
    status: str
    created_at: datetime
    address_count: int
    bank_account_count: int
    kyc_documents: int
    commission_rules: int
    statement_count: int
    payout_count: int
    settings: Optional[ExportedSettings] = None


class VendorExport(BaseModel):
    data: List[ExportedVendor]
    exported_at: datetime
    total_records: int
