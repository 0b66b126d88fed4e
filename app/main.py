from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError

from app.config import settings
from app.api.v1.router import api_router
from app.core.exceptions import SettlementError
from app.database import init_db, close_db, async_session_factory


logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    - Create tables when DEBUG is on (production schema comes from Alembic)

    Shutdown:
    - Dispose the connection pool
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    if settings.DEBUG:
        await init_db()

    yield

    logger.info("Shutting down...")
    await close_db()


API_DESCRIPTION = """
## Vendor Settlement Back Office

Back-office core for a multi-vendor marketplace:

- **Categories**: hierarchical catalog with per-category commission overrides
- **Commissions**: vendor rules and effective-commission resolution
- **Vendors**: onboarding, lifecycle (PENDING / ACTIVE / SUSPENDED / REJECTED) and settings
- **Statements & Payouts**: period statements, finalization, single and batch payouts
- **Queues**: approval, KYC review and payout-due queues with bulk actions

### Error responses

| Status | Kind |
|--------|------|
| 400 | ValidationFailed |
| 404 | NotFound |
| 409 | Conflict |
| 422 | InvalidState, DepthExceeded, CircularDependency, request validation |
| 503 | Database unavailable |
"""

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=API_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


def error_response(request: Request, status_code: int, content: dict) -> JSONResponse:
    content.update({"path": str(request.url.path), "method": request.method})
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(SettlementError)
async def settlement_error_handler(request: Request, exc: SettlementError):
    """Business errors map to one status code per kind."""
    if exc.status_code >= 500:
        logger.error(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    return error_response(request, exc.status_code, exc.to_dict())


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    """Constraint violations that slipped past the service checks."""
    logger.error(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return error_response(
        request,
        409,
        {"error": "Request conflicts with existing data", "kind": "Conflict", "details": {}},
    )


@app.exception_handler(OperationalError)
@app.exception_handler(InterfaceError)
async def database_unavailable_handler(request: Request, exc: Exception):
    logger.error(f"Database unavailable on {request.method} {request.url.path}: {exc}")
    return error_response(
        request,
        503,
        {"error": "Database unavailable", "kind": "ServiceUnavailable", "details": {}},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    content = {"error": "Internal server error", "kind": type(exc).__name__, "details": {}}
    if settings.DEBUG:
        content["details"]["traceback"] = traceback.format_exc()
    return error_response(request, 500, content)


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint with database validation."""
    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown"
        }
    }

    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            health_status["checks"]["database"] = "connected"
    except (OperationalError, InterfaceError, OSError) as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }
