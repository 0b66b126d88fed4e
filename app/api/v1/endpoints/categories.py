from typing import List, Optional, Union
import uuid

from fastapi import APIRouter, status, Query

from app.api.deps import Categories, Page
from app.schemas.category import (
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse,
    CategoryListResponse,
    CategoryWithChildren,
    CategoryTreeResponse,
    CategoryDeleteResponse,
)
from app.services.category_service import CategoryTreeNode

router = APIRouter(tags=["Categories"])


def tree_to_schema(nodes: List[CategoryTreeNode]) -> List[CategoryWithChildren]:
    result = []
    for node in nodes:
        item = CategoryWithChildren.model_validate(node.category)
        item.children = tree_to_schema(node.children)
        result.append(item)
    return result


@router.get("", response_model=Union[CategoryTreeResponse, CategoryListResponse])
async def list_categories(
    service: Categories,
    pagination: Page,
    tree: bool = Query(False, description="Return the nested hierarchy instead of a page"),
    parent_id: Optional[uuid.UUID] = Query(None, description="Filter by parent category"),
    roots_only: bool = Query(False),
    include_inactive: bool = Query(False),
    search: Optional[str] = Query(None),
):
    """
    List categories.

    With tree=true the whole hierarchy is returned, siblings ordered by
    (sort_order, name); otherwise a flat page.
    """
    if tree:
        nodes = await service.get_tree(include_inactive=include_inactive)
        return CategoryTreeResponse(categories=tree_to_schema(nodes))

    categories, total = await service.list_categories(
        parent_id=parent_id,
        roots_only=roots_only,
        include_inactive=include_inactive,
        search=search,
        skip=pagination.skip,
        limit=pagination.size,
    )
    return CategoryListResponse(
        **pagination.envelope([CategoryResponse.model_validate(c) for c in categories], total)
    )


@router.get("/slug/{slug}", response_model=CategoryResponse)
async def get_category_by_slug(slug: str, service: Categories):
    return await service.get_category_by_slug(slug)


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: uuid.UUID, service: Categories):
    return await service.get_category(category_id)


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(data: CategoryCreate, service: Categories):
    """Create a category. The slug is derived from the name when omitted."""
    return await service.create_category(data.model_dump())


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(category_id: uuid.UUID, data: CategoryUpdate, service: Categories):
    return await service.update_category(category_id, data.model_dump(exclude_unset=True))


@router.delete("/{category_id}", response_model=CategoryDeleteResponse)
async def delete_category(
    category_id: uuid.UUID,
    service: Categories,
    cascade: bool = Query(False, description="Delete all descendants as well"),
    force: bool = Query(False, description="Delete even if active products reference it"),
):
    return await service.delete_category(category_id, cascade=cascade, force=force)
