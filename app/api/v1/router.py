from fastapi import APIRouter

from app.api.v1.endpoints import (
    # Catalog
    categories,
    commissions,
    # Vendors
    vendors,
    onboarding,
    settings,
    # Settlement
    statements,
    payouts,
    # Operations
    queues,
    analytics,
)


# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== Catalog ====================
api_router.include_router(
    categories.router,
    prefix="/categories",
    tags=["Categories"]
)
api_router.include_router(
    commissions.router,
    tags=["Commissions"]
)

# ==================== Vendors ====================
api_router.include_router(
    vendors.router,
    prefix="/vendors",
    tags=["Vendors"]
)
api_router.include_router(
    onboarding.router,
    prefix="/onboarding",
    tags=["Vendor Onboarding"]
)
api_router.include_router(
    settings.router,
    tags=["Settings"]
)

# ==================== Settlement ====================
api_router.include_router(
    statements.router,
    tags=["Statements"]
)
api_router.include_router(
    payouts.router,
    tags=["Payouts"]
)

# ==================== Operational Queues ====================
api_router.include_router(
    queues.router,
    prefix="/queues",
    tags=["Queues"]
)

# ==================== Analytics ====================
api_router.include_router(
    analytics.router,
    prefix="/analytics",
    tags=["Analytics"]
)
