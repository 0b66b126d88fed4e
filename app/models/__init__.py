# Models module - importing registers every table with Base.metadata
from app.models.category import Category
from app.models.product import Product
from app.models.vendor import (
    Vendor,
    VendorStatus,
    VendorAddress,
    VendorBankAccount,
    BankAccountStatus,
    VendorKyc,
    KycStatus,
    VendorSetting,
    VendorIssue,
    IssueStatus,
    VendorPortalUser,
)
from app.models.commission import CommissionRule, CommissionType
from app.models.settlement import (
    VendorSale,
    VendorStatement,
    StatementStatus,
    Payout,
    PayoutStatus,
)
from app.models.platform_setting import PlatformSetting

__all__ = [
    "Category",
    "Product",
    "Vendor",
    "VendorStatus",
    "VendorAddress",
    "VendorBankAccount",
    "BankAccountStatus",
    "VendorKyc",
    "KycStatus",
    "VendorSetting",
    "VendorIssue",
    "IssueStatus",
    "VendorPortalUser",
    "CommissionRule",
    "CommissionType",
    "VendorSale",
    "VendorStatement",
    "StatementStatus",
    "Payout",
    "PayoutStatus",
    "PlatformSetting",
]
