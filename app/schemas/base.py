"""
Base Schema Classes for Pydantic Models

RULE: All response schemas that use `from_attributes=True` MUST inherit from BaseResponseSchema.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict


class BaseResponseSchema(BaseModel):
    """
    Base class for all response schemas that read from ORM models.

    - UUIDs serialize as strings
    - from_attributes for ORM compatibility
    - Decimals serialize as strings so money never passes through float
    """
    model_config = ConfigDict(
        from_attributes=True,
        json_encoders={
            UUID: str,
            Decimal: str,
            datetime: lambda v: v.isoformat() if v else None,
        },
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """Base class for create/input schemas. Unknown fields are ignored."""
    model_config = ConfigDict(
        extra='ignore',
    )


class BaseUpdateSchema(BaseModel):
    """
    Base class for update/patch schemas.

    All fields are optional; services receive model_dump(exclude_unset=True).
    """
    model_config = ConfigDict(
        extra='ignore',
    )


class SkippedItem(BaseModel):
    """One row a bulk operation did not touch."""
    id: UUID
    reason: str
    status: Optional[str] = None


class BulkResult(BaseModel):
    """Outcome of a set-based bulk mutation."""
    updated: int
    updated_ids: List[UUID] = []
    skipped: List[SkippedItem] = []


class MessageResponse(BaseModel):
    message: str
    details: Dict[str, Any] = {}


OptionalUUID = Optional[UUID]
