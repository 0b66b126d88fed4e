from pydantic import BaseModel, Field

from app.core.enum_utils import VALID_COMMISSION_TYPES, create_uppercase_validator
from app.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import uuid


class CategoryBase(BaseModel):
    """Base category schema."""
    name: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = Field(None, min_length=1, max_length=120, description="Derived from name when omitted")
    description: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None
    image_url: Optional[str] = Field(None, max_length=500)
    sort_order: int = Field(default=0)
    is_active: bool = True
    is_visible: bool = True
    has_custom_commission: bool = False
    default_commission_type: str = "PERCENTAGE"
    default_commission_value: Decimal = Field(Decimal("0"), ge=0)


class CategoryCreate(CategoryBase, BaseCreateSchema):
    """Category creation schema."""

    _normalize_type = create_uppercase_validator('default_commission_type', VALID_COMMISSION_TYPES)


class CategoryUpdate(BaseUpdateSchema):
    """Category update schema. Sending parent_id (including null) reparents."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None
    image_url: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None
    is_visible: Optional[bool] = None
    has_custom_commission: Optional[bool] = None
    default_commission_type: Optional[str] = None
    default_commission_value: Optional[Decimal] = Field(None, ge=0)

    _normalize_type = create_uppercase_validator('default_commission_type', VALID_COMMISSION_TYPES)


class CategoryResponse(BaseResponseSchema):
    """Category response schema."""
    id: uuid.UUID
    name: str
    slug: str
    description: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None
    level: int
    image_url: Optional[str] = None
    sort_order: int
    is_active: bool
    is_visible: bool
    has_custom_commission: bool
    default_commission_type: str
    default_commission_value: Decimal
    created_at: datetime
    updated_at: datetime


class CategoryWithChildren(CategoryResponse):
    """Category with nested children."""
    children: List["CategoryWithChildren"] = []


class CategoryListResponse(BaseModel):
    """Paginated category list."""
    items: List[CategoryResponse]
    total: int
    page: int
    size: int
    pages: int


class CategoryTreeResponse(BaseModel):
    """Category tree response."""
    categories: List[CategoryWithChildren]


class CategoryDeleteResponse(BaseModel):
    deleted: int
    ids: List[uuid.UUID]


# Enable forward reference resolution
CategoryWithChildren.model_rebuild()
