"""Vendor commission rules.

A rule belongs to one vendor and is either scoped to a single category or
vendor-wide (category_id is NULL). Resolution order lives in
app/services/commission_resolver.py.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Numeric, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class CommissionType(str, Enum):
    """How a commission value is applied to a sale."""
    PERCENTAGE = "PERCENTAGE"  # value is 0-100, fee = sale * value / 100
    FLAT = "FLAT"              # value is a fixed fee per sale


class CommissionRule(Base):
    """Vendor commission override."""
    __tablename__ = "commission_rules"
    __table_args__ = (
        Index("ix_commission_rules_vendor_category", "vendor_id", "category_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("vendors.id", ondelete="CASCADE"),
        nullable=False
    )
    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=True,
        comment="NULL means vendor-wide rule"
    )

    type: Mapped[str] = mapped_column(
        String(50),
        default="PERCENTAGE",
        nullable=False,
        comment="PERCENTAGE, FLAT"
    )
    value: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        scope = self.category_id or "vendor-wide"
        return f"<CommissionRule({self.type} {self.value}, {scope})>"
