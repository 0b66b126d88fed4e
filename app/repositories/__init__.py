# Repositories module - the only layer that issues SQL
from app.repositories.category_repository import CategoryRepository, CategoryNode
from app.repositories.commission_repository import CommissionRuleRepository
from app.repositories.vendor_repository import VendorRepository, VendorIssueRepository
from app.repositories.onboarding_repository import (
    VendorAddressRepository,
    VendorBankAccountRepository,
    VendorKycRepository,
    VendorPortalUserRepository,
)
from app.repositories.settings_repository import (
    VendorSettingRepository,
    PlatformSettingRepository,
)
from app.repositories.settlement_repository import (
    VendorSaleRepository,
    StatementRepository,
    PayoutRepository,
)
from app.repositories.analytics_repository import AnalyticsRepository

__all__ = [
    "CategoryRepository",
    "CategoryNode",
    "CommissionRuleRepository",
    "VendorRepository",
    "VendorIssueRepository",
    "VendorAddressRepository",
    "VendorBankAccountRepository",
    "VendorKycRepository",
    "VendorPortalUserRepository",
    "VendorSettingRepository",
    "PlatformSettingRepository",
    "VendorSaleRepository",
    "StatementRepository",
    "PayoutRepository",
    "AnalyticsRepository",
]
