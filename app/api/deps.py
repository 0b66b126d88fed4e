from math import ceil
from typing import Annotated

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.services.analytics_service import AnalyticsService
from app.services.cache_service import CacheService, get_cache
from app.services.category_service import CategoryService
from app.services.commission_resolver import CommissionResolver
from app.services.commission_service import CommissionService
from app.services.email_service import PortalAccessNotifier, get_notifier
from app.services.onboarding_service import OnboardingService
from app.services.payout_service import PayoutService
from app.services.platform_settings_service import PlatformSettingsService
from app.services.queue_service import QueueService
from app.services.statement_service import StatementService
from app.services.vendor_lifecycle_service import VendorLifecycleService
from app.services.vendor_settings_service import VendorSettingsService


DB = Annotated[AsyncSession, Depends(get_db)]
Cache = Annotated[CacheService, Depends(get_cache)]
Notifier = Annotated[PortalAccessNotifier, Depends(get_notifier)]


class Pagination:
    """page/size query parameters shared by every list endpoint."""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        size: int = Query(20, ge=1, le=100),
    ):
        self.page = page
        self.size = size

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.size

    def envelope(self, items, total: int) -> dict:
        return {
            "items": items,
            "total": total,
            "page": self.page,
            "size": self.size,
            "pages": ceil(total / self.size) if total > 0 else 1,
        }


Page = Annotated[Pagination, Depends()]


def get_platform_settings_service(db: DB, cache: Cache) -> PlatformSettingsService:
    return PlatformSettingsService(db, cache)


PlatformSettings = Annotated[PlatformSettingsService, Depends(get_platform_settings_service)]


def get_commission_resolver(db: DB, platform_settings: PlatformSettings) -> CommissionResolver:
    return CommissionResolver(db, platform_settings)


def get_category_service(db: DB) -> CategoryService:
    return CategoryService(db)


def get_commission_service(db: DB) -> CommissionService:
    return CommissionService(db)


def get_vendor_service(db: DB) -> VendorLifecycleService:
    return VendorLifecycleService(db)


def get_onboarding_service(db: DB, platform_settings: PlatformSettings) -> OnboardingService:
    return OnboardingService(db, platform_settings)


def get_vendor_settings_service(db: DB, platform_settings: PlatformSettings) -> VendorSettingsService:
    return VendorSettingsService(db, platform_settings)


def get_statement_service(
    db: DB,
    resolver: Annotated[CommissionResolver, Depends(get_commission_resolver)],
) -> StatementService:
    return StatementService(db, resolver)


def get_payout_service(db: DB) -> PayoutService:
    return PayoutService(db)


def get_queue_service(db: DB) -> QueueService:
    return QueueService(db)


def get_analytics_service(db: DB) -> AnalyticsService:
    return AnalyticsService(db)


Resolver = Annotated[CommissionResolver, Depends(get_commission_resolver)]
Categories = Annotated[CategoryService, Depends(get_category_service)]
Commissions = Annotated[CommissionService, Depends(get_commission_service)]
Vendors = Annotated[VendorLifecycleService, Depends(get_vendor_service)]
Onboarding = Annotated[OnboardingService, Depends(get_onboarding_service)]
VendorSettings = Annotated[VendorSettingsService, Depends(get_vendor_settings_service)]
Statements = Annotated[StatementService, Depends(get_statement_service)]
Payouts = Annotated[PayoutService, Depends(get_payout_service)]
Queues = Annotated[QueueService, Depends(get_queue_service)]
Analytics = Annotated[AnalyticsService, Depends(get_analytics_service)]
