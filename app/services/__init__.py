# Services module
from app.services.category_service import CategoryService
from app.services.commission_resolver import CommissionResolver
from app.services.commission_service import CommissionService
from app.services.platform_settings_service import PlatformSettingsService
from app.services.vendor_settings_service import VendorSettingsService

# Vendor lifecycle
from app.services.vendor_lifecycle_service import VendorLifecycleService
from app.services.onboarding_service import OnboardingService

# Settlement
from app.services.statement_service import StatementService
from app.services.payout_service import PayoutService
from app.services.queue_service import QueueService
from app.services.analytics_service import AnalyticsService

__all__ = [
    "CategoryService",
    "CommissionResolver",
    "CommissionService",
    "PlatformSettingsService",
    "VendorSettingsService",
    # Vendor lifecycle
    "VendorLifecycleService",
    "OnboardingService",
    # Settlement
    "StatementService",
    "PayoutService",
    "QueueService",
    "AnalyticsService",
]
