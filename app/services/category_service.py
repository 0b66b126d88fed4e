"""
Category Hierarchy Store.

The tree is an arena of nodes keyed by id with parent-id references. Cycle
checks walk that arena by id inside the caller's transaction (rows are read
FOR UPDATE on PostgreSQL), and cascading deletes are an explicit depth-first
traversal that removes leaves first.

Invariants:
- level == number of ancestors, and never exceeds MAX_CATEGORY_DEPTH
- no category is its own ancestor
- slug is globally unique
"""
import re
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    CircularDependencyError,
    ConflictError,
    DepthExceededError,
    DuplicateIdentifierError,
    HasChildrenError,
    NotFoundError,
    ValidationFailedError,
)
from app.models.category import Category
from app.repositories.category_repository import CategoryNode, CategoryRepository
from app.services.commission_resolver import validate_commission

logger = logging.getLogger(__name__)


UPDATABLE_FIELDS = {
    "name",
    "slug",
    "description",
    "parent_id",
    "image_url",
    "sort_order",
    "is_active",
    "is_visible",
    "has_custom_commission",
    "default_commission_type",
    "default_commission_value",
}

NON_NULLABLE_FIELDS = {
    "sort_order",
    "is_active",
    "is_visible",
    "has_custom_commission",
    "default_commission_type",
    "default_commission_value",
}


def generate_slug(name: str) -> str:
    """'Home & Kitchen' -> 'home-kitchen'."""
    slug = name.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip("-")


def sort_key(node) -> Tuple[int, str]:
    """Canonical sibling order: (sort_order, name)."""
    return (node.sort_order or 0, node.name)


@dataclass
class CategoryTreeNode:
    category: Category
    children: List["CategoryTreeNode"] = field(default_factory=list)


def children_index(arena: Dict[uuid.UUID, CategoryNode]) -> Dict[Optional[uuid.UUID], List[CategoryNode]]:
    index: Dict[Optional[uuid.UUID], List[CategoryNode]] = {}
    for node in arena.values():
        index.setdefault(node.parent_id, []).append(node)
    for siblings in index.values():
        siblings.sort(key=sort_key)
    return index


def collect_subtree(root_id: uuid.UUID, index: Dict[Optional[uuid.UUID], List[CategoryNode]]) -> List[uuid.UUID]:
    """
    Post-order ids of root_id's subtree (descendants first, root last).

    Iterative so deep or corrupted data cannot blow the stack; a node seen
    twice is not revisited.
    """
    ordered: List[uuid.UUID] = []
    seen = {root_id}
    stack: List[Tuple[uuid.UUID, bool]] = [(root_id, False)]
    while stack:
        node_id, expanded = stack.pop()
        if expanded:
            ordered.append(node_id)
            continue
        stack.append((node_id, True))
        for child in reversed(index.get(node_id, [])):
            if child.id not in seen:
                seen.add(child.id)
                stack.append((child.id, False))
    return ordered


class CategoryService:
    """Create, update, delete and read the category tree."""

    def __init__(self, db: AsyncSession, max_depth: Optional[int] = None):
        self.db = db
        self.repo = CategoryRepository(db)
        self.max_depth = max_depth if max_depth is not None else settings.MAX_CATEGORY_DEPTH

    # ==================== Reads ====================

    async def get_category(self, category_id: uuid.UUID) -> Category:
        category = await self.repo.get(category_id)
        if not category:
            raise NotFoundError("Category", category_id)
        return category

    async def get_category_by_slug(self, slug: str) -> Category:
        category = await self.repo.get_by_slug(slug)
        if not category:
            raise NotFoundError("Category", slug)
        return category

    async def list_categories(
        self,
        parent_id: Optional[uuid.UUID] = None,
        roots_only: bool = False,
        include_inactive: bool = False,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Category], int]:
        return await self.repo.list(
            parent_id=parent_id,
            roots_only=roots_only,
            include_inactive=include_inactive,
            search=search,
            skip=skip,
            limit=limit,
        )

    async def get_tree(self, include_inactive: bool = False) -> List[CategoryTreeNode]:
        """
        Root nodes with children populated depth-first, every level sorted by
        (sort_order, name). Nodes under an excluded (inactive) parent are
        unreachable and therefore omitted.
        """
        categories, _ = await self.repo.list(include_inactive=include_inactive, limit=None)
        index: Dict[Optional[uuid.UUID], List[Category]] = {}
        for category in categories:
            index.setdefault(category.parent_id, []).append(category)
        for siblings in index.values():
            siblings.sort(key=sort_key)

        def build(category: Category, depth: int) -> CategoryTreeNode:
            node = CategoryTreeNode(category=category)
            if depth <= self.max_depth:
                node.children = [build(child, depth + 1) for child in index.get(category.id, [])]
            return node

        return [build(root, 0) for root in index.get(None, [])]

    # ==================== Mutations ====================

    async def create_category(self, data: Dict[str, Any]) -> Category:
        data = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS}
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationFailedError("Category name is required", {"field": "name"})
        data["name"] = name

        slug = data.get("slug") or generate_slug(name)
        if not slug:
            raise ValidationFailedError("Could not derive a slug from the name", {"name": name})
        if await self.repo.slug_exists(slug):
            raise DuplicateIdentifierError("slug", slug)
        data["slug"] = slug

        self._validate_commission_fields(data)

        parent_id = data.get("parent_id")
        level = 0
        if parent_id:
            level = await self._level_under(parent_id, moving_id=None)
            if level > self.max_depth:
                raise DepthExceededError(level, self.max_depth)
        data["level"] = level

        category = Category(**data)
        try:
            async with self.db.begin_nested():
                await self.repo.add(category)
        except IntegrityError:
            logger.warning(f"Slug race on category create: {slug}")
            raise DuplicateIdentifierError("slug", slug)

        logger.info(f"Category created: {category.slug} (level {category.level})")
        return category

    async def update_category(self, category_id: uuid.UUID, data: Dict[str, Any]) -> Category:
        category = await self.get_category(category_id)
        data = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS}

        nulls = sorted(k for k in NON_NULLABLE_FIELDS if k in data and data[k] is None)
        if nulls:
            raise ValidationFailedError("Fields cannot be null", {"fields": nulls})

        if "name" in data:
            name = (data["name"] or "").strip()
            if not name:
                raise ValidationFailedError("Category name is required", {"field": "name"})
            data["name"] = name

        new_slug = None
        if data.get("slug") and data["slug"] != category.slug:
            new_slug = data["slug"]
            if await self.repo.slug_exists(new_slug, exclude_id=category_id):
                raise DuplicateIdentifierError("slug", new_slug)
        elif "slug" in data and not data["slug"]:
            data.pop("slug")

        merged = {
            "has_custom_commission": category.has_custom_commission,
            "default_commission_type": category.default_commission_type,
            "default_commission_value": category.default_commission_value,
        }
        merged.update({k: v for k, v in data.items() if k in merged})
        self._validate_commission_fields(merged)
        if "default_commission_type" in data:
            data["default_commission_type"] = merged["default_commission_type"]

        descendants: Dict[uuid.UUID, int] = {}
        if "parent_id" in data and data["parent_id"] != category.parent_id:
            new_parent_id = data.pop("parent_id")
            data["level"], descendants = await self._plan_move(category, new_parent_id)
            data["parent_id"] = new_parent_id
        else:
            data.pop("parent_id", None)

        try:
            async with self.db.begin_nested():
                if descendants:
                    await self.repo.set_levels(descendants)
                for key, value in data.items():
                    setattr(category, key, value)
                await self.db.flush()
        except IntegrityError as e:
            if new_slug and "slug" in str(e.orig).lower():
                logger.warning(f"Slug race on category update: {new_slug}")
                raise DuplicateIdentifierError("slug", new_slug)
            raise ConflictError(
                "Category update violates a constraint",
                {"category_id": str(category_id), "fields": sorted(data)},
            )

        if "parent_id" in data:
            logger.info(
                f"Category {category_id} moved under {data['parent_id']} "
                f"(level {data['level']}, {len(descendants)} descendants)"
            )
        await self.db.refresh(category)
        return category

    async def delete_category(
        self,
        category_id: uuid.UUID,
        cascade: bool = False,
        force: bool = False,
    ) -> Dict[str, Any]:
        """
        Delete a category.

        Fails with HasChildren unless cascade is set; cascade removes the
        whole subtree leaves-first. Categories referenced by active products
        are refused unless force is set.
        """
        await self.get_category(category_id)

        child_count = await self.repo.count_children(category_id)
        if child_count and not cascade:
            raise HasChildrenError(category_id, child_count)

        if child_count:
            arena = await self.repo.load_arena()
            ordered = collect_subtree(category_id, children_index(arena))
        else:
            ordered = [category_id]

        product_count = await self.repo.count_active_products(ordered)
        if product_count and not force:
            raise ConflictError(
                f"{product_count} active products reference this category",
                {"category_id": str(category_id), "active_products": product_count},
            )

        deleted = await self.repo.delete_ids(ordered)
        logger.info(f"Deleted {deleted} categories (root {category_id}, cascade={cascade})")
        return {"deleted": deleted, "ids": [str(i) for i in ordered]}

    # ==================== Helpers ====================

    def _validate_commission_fields(self, data: Dict[str, Any]) -> None:
        if "default_commission_type" in data and data["default_commission_type"] is not None:
            data["default_commission_type"] = str(data["default_commission_type"]).upper()
        if data.get("has_custom_commission") or "default_commission_value" in data:
            validate_commission(
                data.get("default_commission_type") or "PERCENTAGE",
                Decimal(str(data.get("default_commission_value") or 0)),
            )

    async def _walk_up(
        self,
        start_id: Optional[uuid.UUID],
        stop_at: Optional[uuid.UUID],
        lock: bool = False,
    ) -> List[uuid.UUID]:
        """
        Follow parent ids from start_id to the root.

        Raises CircularDependencyError when stop_at is met (or a loop already
        exists in stored data); raises NotFound when start_id is missing.
        """
        chain: List[uuid.UUID] = []
        current = start_id
        while current is not None:
            if current == stop_at or current in chain:
                raise CircularDependencyError(stop_at or current, start_id)
            exists, parent_id = await self.repo.get_parent_id(current, lock=lock)
            if not exists:
                if not chain:
                    raise NotFoundError("Parent category", current)
                break
            chain.append(current)
            current = parent_id
        return chain

    async def _level_under(self, parent_id: uuid.UUID, moving_id: Optional[uuid.UUID]) -> int:
        """Level a node would have under parent_id (= ancestors of parent + 1)."""
        chain = await self._walk_up(parent_id, stop_at=moving_id, lock=True)
        return len(chain)

    async def _plan_move(
        self,
        category: Category,
        new_parent_id: Optional[uuid.UUID],
    ) -> Tuple[int, Dict[uuid.UUID, int]]:
        """New level for a reparented node plus the shifted levels of its descendants."""
        if new_parent_id == category.id:
            raise CircularDependencyError(category.id, new_parent_id)

        new_level = 0
        if new_parent_id is not None:
            new_level = await self._level_under(new_parent_id, moving_id=category.id)

        arena = await self.repo.load_arena()
        subtree = collect_subtree(category.id, children_index(arena))
        shift = new_level - category.level
        deepest = max(arena[node_id].level for node_id in subtree if node_id in arena) if subtree else category.level
        if deepest + shift > self.max_depth:
            raise DepthExceededError(deepest + shift, self.max_depth)

        descendants = {}
        if shift:
            descendants = {
                node_id: arena[node_id].level + shift
                for node_id in subtree
                if node_id != category.id and node_id in arena
            }
        return new_level, descendants
