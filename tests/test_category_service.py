"""
Category hierarchy tests: depth limits, cycle prevention, slugs and
cascading deletes.
"""
from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.exceptions import (
    CircularDependencyError,
    ConflictError,
    DepthExceededError,
    DuplicateIdentifierError,
    HasChildrenError,
    NotFoundError,
    ValidationFailedError,
)
from app.models.product import Product
from app.services.category_service import CategoryService, collect_subtree, generate_slug


class TestSlugs:
    def test_generate_slug(self):
        assert generate_slug("Home & Kitchen") == "home-kitchen"
        assert generate_slug("  Mobile   Phones ") == "mobile-phones"

    async def test_create_derives_slug(self, db_session):
        service = CategoryService(db_session)
        category = await service.create_category({"name": "Home & Kitchen"})
        assert category.slug == "home-kitchen"
        assert category.level == 0

    async def test_duplicate_slug_rejected(self, db_session):
        service = CategoryService(db_session)
        await service.create_category({"name": "Electronics"})
        with pytest.raises(DuplicateIdentifierError) as exc:
            await service.create_category({"name": "Electronics"})
        assert exc.value.details["field"] == "slug"

    async def test_blank_name_rejected(self, db_session):
        service = CategoryService(db_session)
        with pytest.raises(ValidationFailedError):
            await service.create_category({"name": "   "})

    async def test_lookup_by_slug(self, db_session):
        service = CategoryService(db_session)
        created = await service.create_category({"name": "Books"})
        found = await service.get_category_by_slug("books")
        assert found.id == created.id
        with pytest.raises(NotFoundError):
            await service.get_category_by_slug("missing")


class TestDepth:
    async def test_levels_follow_parent(self, db_session):
        service = CategoryService(db_session)
        root = await service.create_category({"name": "Electronics"})
        child = await service.create_category({"name": "Phones", "parent_id": root.id})
        grandchild = await service.create_category({"name": "Smartphones", "parent_id": child.id})
        assert (root.level, child.level, grandchild.level) == (0, 1, 2)

    async def test_create_beyond_max_depth_rejected(self, db_session):
        service = CategoryService(db_session, max_depth=2)
        root = await service.create_category({"name": "L0"})
        l1 = await service.create_category({"name": "L1", "parent_id": root.id})
        l2 = await service.create_category({"name": "L2", "parent_id": l1.id})
        assert l2.level == 2

        with pytest.raises(DepthExceededError) as exc:
            await service.create_category({"name": "L3", "parent_id": l2.id})
        assert exc.value.details == {"level": 3, "max_depth": 2}

    async def test_missing_parent(self, db_session):
        service = CategoryService(db_session)
        with pytest.raises(NotFoundError):
            await service.create_category({"name": "Orphan", "parent_id": uuid4()})

    async def test_move_shifts_subtree_levels(self, db_session, make_category):
        service = CategoryService(db_session)
        a = await make_category("A")
        b = await make_category("B")
        b1 = await make_category("B1", parent=b)
        b2 = await make_category("B2", parent=b1)

        moved = await service.update_category(b.id, {"parent_id": a.id})
        assert moved.level == 1
        assert (await service.get_category(b1.id)).level == 2
        assert (await service.get_category(b2.id)).level == 3

    async def test_move_that_would_exceed_depth_rejected(self, db_session, make_category):
        service = CategoryService(db_session, max_depth=2)
        a = await make_category("A")
        a1 = await make_category("A1", parent=a)
        b = await make_category("B")
        await make_category("B1", parent=b)

        with pytest.raises(DepthExceededError):
            await service.update_category(b.id, {"parent_id": a1.id})


class TestCycles:
    async def test_cannot_parent_to_self(self, db_session, make_category):
        service = CategoryService(db_session)
        a = await make_category("A")
        with pytest.raises(CircularDependencyError):
            await service.update_category(a.id, {"parent_id": a.id})

    async def test_cannot_move_under_descendant(self, db_session, make_category):
        """A -> B -> C; making C the parent of A is refused and nothing changes."""
        service = CategoryService(db_session)
        a = await make_category("A")
        b = await make_category("B", parent=a)
        c = await make_category("C", parent=b)

        with pytest.raises(CircularDependencyError):
            await service.update_category(a.id, {"parent_id": c.id})

        refreshed = await service.get_category(a.id)
        assert refreshed.parent_id is None
        assert (await service.get_category(b.id)).parent_id == a.id
        assert (await service.get_category(c.id)).level == 2


class TestDelete:
    async def test_leaf_delete(self, db_session, make_category):
        service = CategoryService(db_session)
        leaf = await make_category("Leaf")
        result = await service.delete_category(leaf.id)
        assert result["deleted"] == 1
        with pytest.raises(NotFoundError):
            await service.get_category(leaf.id)

    async def test_children_block_delete_without_cascade(self, db_session, make_category):
        service = CategoryService(db_session)
        root = await make_category("Root")
        await make_category("Child", parent=root)

        with pytest.raises(HasChildrenError) as exc:
            await service.delete_category(root.id)
        assert exc.value.details["children"] == 1

    async def test_cascade_removes_whole_subtree(self, db_session, make_category):
        service = CategoryService(db_session)
        root = await make_category("Root")
        child = await make_category("Child", parent=root)
        grandchild = await make_category("Grandchild", parent=child)
        sibling = await make_category("Sibling")

        result = await service.delete_category(root.id, cascade=True)

        assert result["deleted"] == 3
        assert result["ids"] == [str(grandchild.id), str(child.id), str(root.id)]
        remaining, total = await service.list_categories(include_inactive=True)
        assert total == 1
        assert remaining[0].id == sibling.id

    async def test_active_products_block_delete_unless_forced(self, db_session, make_category):
        service = CategoryService(db_session)
        category = await make_category("Shoes")
        db_session.add(Product(name="Runner", category_id=category.id, is_active=True))
        await db_session.flush()

        with pytest.raises(ConflictError):
            await service.delete_category(category.id)

        result = await service.delete_category(category.id, force=True)
        assert result["deleted"] == 1


class TestTree:
    async def test_tree_is_sorted_and_nested(self, db_session, make_category):
        service = CategoryService(db_session)
        zed = await make_category("Zed", sort_order=0)
        alpha = await make_category("Alpha", sort_order=0)
        first = await make_category("First", sort_order=-1)
        await make_category("Child B", parent=alpha)
        await make_category("Child A", parent=alpha)

        tree = await service.get_tree()

        assert [node.category.id for node in tree] == [first.id, alpha.id, zed.id]
        assert [child.category.name for child in tree[1].children] == ["Child A", "Child B"]

    async def test_inactive_branch_hidden(self, db_session, make_category):
        service = CategoryService(db_session)
        hidden = await make_category("Hidden", is_active=False)
        await make_category("Under Hidden", parent=hidden)
        await make_category("Visible")

        tree = await service.get_tree()
        assert [node.category.name for node in tree] == ["Visible"]

        full = await service.get_tree(include_inactive=True)
        assert len(full) == 2


class TestCommissionFields:
    async def test_percentage_over_100_rejected(self, db_session):
        service = CategoryService(db_session)
        with pytest.raises(ValidationFailedError):
            await service.create_category({
                "name": "Jewellery",
                "has_custom_commission": True,
                "default_commission_type": "PERCENTAGE",
                "default_commission_value": Decimal("150"),
            })

    async def test_type_is_upper_cased(self, db_session):
        service = CategoryService(db_session)
        category = await service.create_category({
            "name": "Groceries",
            "has_custom_commission": True,
            "default_commission_type": "flat",
            "default_commission_value": Decimal("20"),
        })
        assert category.default_commission_type == "FLAT"


def test_collect_subtree_is_post_order():
    class Node:
        def __init__(self, id, parent_id, name):
            self.id, self.parent_id, self.name, self.sort_order = id, parent_id, name, 0

    root, a, b, a1 = "root", "a", "b", "a1"
    index = {
        root: [Node(a, root, "a"), Node(b, root, "b")],
        a: [Node(a1, a, "a1")],
    }
    assert collect_subtree(root, index) == [a1, a, b, root]


class TestUpdate:
    async def test_explicit_null_rejected(self, db_session, make_category):
        service = CategoryService(db_session)
        category = await make_category("Toys")

        with pytest.raises(ValidationFailedError) as exc:
            await service.update_category(category.id, {"is_active": None, "sort_order": None})
        assert exc.value.details["fields"] == ["is_active", "sort_order"]

        refreshed = await service.get_category(category.id)
        assert refreshed.is_active is True

    async def test_slug_clash_inside_savepoint_is_duplicate(self, db_session, make_category, monkeypatch):
        service = CategoryService(db_session)
        await make_category("Garden", slug="garden")
        other = await make_category("Outdoor", slug="outdoor")

        async def no_clash(slug, exclude_id=None):
            return False

        monkeypatch.setattr(service.repo, "slug_exists", no_clash)
        with pytest.raises(DuplicateIdentifierError) as exc:
            await service.update_category(other.id, {"slug": "garden", "sort_order": 4})
        assert exc.value.details["field"] == "slug"

        refreshed = await service.get_category(other.id)
        assert refreshed.slug == "outdoor"
        assert refreshed.sort_order == 0

        renamed = await service.update_category(other.id, {"name": "Outdoor Living"})
        assert renamed.name == "Outdoor Living"
