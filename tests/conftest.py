"""
Vendor Settlement - Test Configuration

Every test gets a fresh in-memory SQLite database (aiosqlite) with the full
schema, plus factories for the rows most tests need.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime, date, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app import models  # noqa: F401
from app.models.category import Category
from app.models.commission import CommissionRule
from app.models.settlement import VendorSale, VendorStatement
from app.models.vendor import Vendor, VendorKyc, VendorSetting
from app.services.cache_service import CacheService, InMemoryCache, set_cache
from app.services.commission_resolver import CommissionResolver
from app.services.email_service import PortalAccessNotifier, get_notifier
from app.services.platform_settings_service import PlatformSettingsService


BASE_TIME = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)


def _build_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database and session for each test."""
    engine = _build_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session
        await session.rollback()

    await engine.dispose()


@pytest.fixture
def cache() -> CacheService:
    return CacheService(InMemoryCache())


@pytest.fixture
def platform_settings(db_session: AsyncSession, cache: CacheService) -> PlatformSettingsService:
    return PlatformSettingsService(db_session, cache)


@pytest.fixture
def resolver(db_session: AsyncSession, platform_settings: PlatformSettingsService) -> CommissionResolver:
    return CommissionResolver(db_session, platform_settings)


@pytest.fixture
def notifier() -> MagicMock:
    """Stand-in for the portal access notifier; records calls only."""
    return MagicMock(spec=PortalAccessNotifier)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, cache: CacheService, notifier: MagicMock) -> AsyncGenerator[AsyncClient, None]:
    """Test client sharing the test session, cache and notifier."""
    from app.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    set_cache(cache)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    set_cache(None)


# ===========================================
# DATA FACTORIES
# ===========================================

@pytest.fixture
def make_vendor(db_session: AsyncSession):
    """
    Insert a vendor directly.

    with_settings=False leaves the vendor without a VendorSetting row so the
    platform fallback is reachable.
    """
    counter = {"n": 0}

    async def factory(
        name: str = None,
        status: str = "PENDING",
        created_at: datetime = None,
        with_settings: bool = False,
        **kwargs,
    ) -> Vendor:
        counter["n"] += 1
        n = counter["n"]
        vendor = Vendor(
            id=uuid4(),
            name=name or f"Vendor {n}",
            email=kwargs.pop("email", f"vendor{n}-{uuid4().hex[:6]}@example.com"),
            status=status,
            created_at=created_at or BASE_TIME + timedelta(minutes=n),
            updated_at=created_at or BASE_TIME + timedelta(minutes=n),
            **kwargs,
        )
        db_session.add(vendor)
        if with_settings:
            db_session.add(
                VendorSetting(
                    vendor_id=vendor.id,
                    default_commission_type="PERCENTAGE",
                    default_commission_value=Decimal("5"),
                )
            )
        await db_session.flush()
        return vendor

    return factory


@pytest.fixture
def make_category(db_session: AsyncSession):
    """Insert a category directly (level computed from the parent)."""
    counter = {"n": 0}

    async def factory(name: str = None, parent: Category = None, **kwargs) -> Category:
        counter["n"] += 1
        name = name or f"Category {counter['n']}"
        category = Category(
            id=uuid4(),
            name=name,
            slug=kwargs.pop("slug", f"{name.lower().replace(' ', '-')}-{counter['n']}"),
            parent_id=parent.id if parent else None,
            level=parent.level + 1 if parent else 0,
            **kwargs,
        )
        db_session.add(category)
        await db_session.flush()
        return category

    return factory


@pytest.fixture
def make_rule(db_session: AsyncSession):
    async def factory(
        vendor: Vendor,
        value: str,
        category: Category = None,
        type: str = "PERCENTAGE",
        is_active: bool = True,
        updated_at: datetime = None,
    ) -> CommissionRule:
        stamp = updated_at or BASE_TIME
        rule = CommissionRule(
            id=uuid4(),
            vendor_id=vendor.id,
            category_id=category.id if category else None,
            type=type,
            value=Decimal(value),
            is_active=is_active,
            created_at=stamp,
            updated_at=stamp,
        )
        db_session.add(rule)
        await db_session.flush()
        return rule

    return factory


@pytest.fixture
def make_sale(db_session: AsyncSession):
    async def factory(vendor: Vendor, amount: str, sold_at: datetime, category: Category = None) -> VendorSale:
        sale = VendorSale(
            vendor_id=vendor.id,
            category_id=category.id if category else None,
            amount=Decimal(amount),
            sold_at=sold_at,
        )
        db_session.add(sale)
        await db_session.flush()
        return sale

    return factory


@pytest.fixture
def make_statement(db_session: AsyncSession):
    """Insert a statement with given totals; net is always sales - fees."""

    async def factory(
        vendor: Vendor,
        total_sales: str = "1000.00",
        total_fees: str = "100.00",
        status: str = "FINALIZED",
        period_start: date = date(2026, 1, 1),
        period_end: date = date(2026, 1, 8),
    ) -> VendorStatement:
        sales, fees = Decimal(total_sales), Decimal(total_fees)
        statement = VendorStatement(
            id=uuid4(),
            vendor_id=vendor.id,
            period_start=period_start,
            period_end=period_end,
            total_sales=sales,
            total_fees=fees,
            net_amount=sales - fees,
            status=status,
        )
        db_session.add(statement)
        await db_session.flush()
        return statement

    return factory


@pytest.fixture
def make_kyc(db_session: AsyncSession):
    counter = {"n": 0}

    async def factory(vendor: Vendor, status: str = "PENDING", doc_type: str = "PAN_CARD") -> VendorKyc:
        counter["n"] += 1
        stamp = BASE_TIME + timedelta(minutes=counter["n"])
        kyc = VendorKyc(
            id=uuid4(),
            vendor_id=vendor.id,
            doc_type=doc_type,
            doc_url=f"https://files.example.com/kyc/{uuid4().hex}.pdf",
            status=status,
            created_at=stamp,
            updated_at=stamp,
        )
        db_session.add(kyc)
        await db_session.flush()
        return kyc

    return factory
