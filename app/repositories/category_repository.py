import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select, func, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.category import Category
from app.models.product import Product


@dataclass(frozen=True)
class CategoryNode:
    """Lightweight arena entry: enough of a category to walk the tree by id."""
    id: uuid.UUID
    parent_id: Optional[uuid.UUID]
    level: int
    sort_order: int
    name: str


class CategoryRepository:
    """Persistence for the category tree."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, category_id: uuid.UUID) -> Optional[Category]:
        stmt = select(Category).where(Category.id == category_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_slug(self, slug: str) -> Optional[Category]:
        stmt = select(Category).where(Category.slug == slug)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def slug_exists(self, slug: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
        stmt = select(func.count(Category.id)).where(Category.slug == slug)
        if exclude_id:
            stmt = stmt.where(Category.id != exclude_id)
        return ((await self.db.execute(stmt)).scalar() or 0) > 0

    async def get_parent_id(self, category_id: uuid.UUID, lock: bool = False) -> Tuple[bool, Optional[uuid.UUID]]:
        """
        Return (exists, parent_id) for one node.

        With lock=True the row is read FOR UPDATE (ignored by SQLite) so an
        ancestor walk cannot race a concurrent reparent.
        """
        stmt = select(Category.id, Category.parent_id).where(Category.id == category_id)
        if lock:
            stmt = stmt.with_for_update()
        row = (await self.db.execute(stmt)).first()
        if row is None:
            return False, None
        return True, row.parent_id

    async def load_arena(self, include_inactive: bool = True) -> Dict[uuid.UUID, CategoryNode]:
        """Load every node keyed by id."""
        stmt = select(
            Category.id, Category.parent_id, Category.level, Category.sort_order, Category.name
        )
        if not include_inactive:
            stmt = stmt.where(Category.is_active == True)
        result = await self.db.execute(stmt)
        return {
            row.id: CategoryNode(
                id=row.id,
                parent_id=row.parent_id,
                level=row.level,
                sort_order=row.sort_order or 0,
                name=row.name,
            )
            for row in result.all()
        }

    async def list(
        self,
        parent_id: Optional[uuid.UUID] = None,
        roots_only: bool = False,
        include_inactive: bool = False,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[Category], int]:
        stmt = select(Category).order_by(Category.sort_order, Category.name, Category.id)
        count_stmt = select(func.count(Category.id))

        if roots_only:
            stmt = stmt.where(Category.parent_id.is_(None))
            count_stmt = count_stmt.where(Category.parent_id.is_(None))
        elif parent_id:
            stmt = stmt.where(Category.parent_id == parent_id)
            count_stmt = count_stmt.where(Category.parent_id == parent_id)

        if not include_inactive:
            stmt = stmt.where(Category.is_active == True)
            count_stmt = count_stmt.where(Category.is_active == True)

        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(func.lower(Category.name).like(pattern))
            count_stmt = count_stmt.where(func.lower(Category.name).like(pattern))

        total = (await self.db.execute(count_stmt)).scalar()

        stmt = stmt.offset(skip).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def count_children(self, category_id: uuid.UUID) -> int:
        stmt = select(func.count(Category.id)).where(Category.parent_id == category_id)
        return (await self.db.execute(stmt)).scalar() or 0

    async def count_active_products(self, category_ids: List[uuid.UUID]) -> int:
        if not category_ids:
            return 0
        stmt = select(func.count(Product.id)).where(
            Product.category_id.in_(category_ids),
            Product.is_active == True,
        )
        return (await self.db.execute(stmt)).scalar() or 0

    async def add(self, category: Category) -> Category:
        self.db.add(category)
        await self.db.flush()
        await self.db.refresh(category)
        return category

    async def set_levels(self, levels: Dict[uuid.UUID, int]) -> None:
        """Bulk-apply recomputed levels (after a subtree moved)."""
        for category_id, level in levels.items():
            await self.db.execute(
                update(Category).where(Category.id == category_id).values(level=level)
            )

    async def delete_ids(self, ordered_ids: List[uuid.UUID]) -> int:
        """Delete nodes one statement at a time, in the order given (leaves first)."""
        deleted = 0
        for category_id in ordered_ids:
            result = await self.db.execute(delete(Category).where(Category.id == category_id))
            deleted += result.rowcount or 0
        return deleted
