"""
Statement generation and finalization tests.
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.exceptions import ConflictError, NotFoundError, ValidationFailedError
from app.services.statement_service import StatementService, period_bounds


def at(day: int, hour: int = 12) -> datetime:
    return datetime(2026, 3, day, hour, 0, tzinfo=timezone.utc)


@pytest.fixture
def statements(db_session, resolver):
    return StatementService(db_session, resolver)


class TestPeriodBounds:
    def test_half_open_window_in_utc(self):
        start, end = period_bounds(date(2026, 3, 1), date(2026, 3, 8))
        assert start == datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert end == datetime(2026, 3, 8, tzinfo=timezone.utc)


class TestGenerate:
    async def test_net_is_exact_decimal_difference(self, statements, make_vendor, make_rule, make_sale):
        vendor = await make_vendor()
        await make_rule(vendor, "12")
        await make_sale(vendor, "50000.00", at(2))
        await make_sale(vendor, "75000.00", at(5))

        statement = await statements.generate_statement(vendor.id, date(2026, 3, 1), date(2026, 3, 8))

        assert statement.status == "DRAFT"
        assert statement.total_sales == Decimal("125000.00")
        assert statement.total_fees == Decimal("15000.00")
        assert statement.net_amount == Decimal("110000.00")
        assert statement.net_amount == statement.total_sales - statement.total_fees
        assert statement.sales_count == 2

    async def test_window_is_half_open(self, statements, make_vendor, make_sale):
        vendor = await make_vendor()
        await make_sale(vendor, "100.00", datetime(2026, 3, 1, 0, 0, tzinfo=timezone.utc))
        await make_sale(vendor, "900.00", datetime(2026, 3, 8, 0, 0, tzinfo=timezone.utc))

        statement = await statements.generate_statement(vendor.id, date(2026, 3, 1), date(2026, 3, 8))
        assert statement.total_sales == Decimal("100.00")
        assert statement.sales_count == 1

    async def test_fees_follow_each_category_rule(
        self, statements, make_vendor, make_category, make_rule, make_sale
    ):
        vendor = await make_vendor()
        fashion = await make_category("Fashion")
        books = await make_category("Books")
        await make_rule(vendor, "10")
        await make_rule(vendor, "20", category=fashion)
        await make_rule(vendor, "30", category=books, type="FLAT")

        await make_sale(vendor, "1000.00", at(2), category=fashion)
        await make_sale(vendor, "500.00", at(3))
        await make_sale(vendor, "200.00", at(3), category=books)
        await make_sale(vendor, "20.00", at(4), category=books)

        totals = await statements.compute_totals(vendor.id, date(2026, 3, 1), date(2026, 3, 8))

        # 20% of 1000 + 10% of 500 + flat 30 + flat capped at 20
        assert totals["total_fees"] == Decimal("200.00") + Decimal("50.00") + Decimal("30.00") + Decimal("20.00")
        assert totals["total_sales"] == Decimal("1720.00")
        assert totals["net_amount"] == Decimal("1420.00")
        assert totals["sales_count"] == 4

    async def test_empty_period_gives_zero_statement(self, statements, make_vendor):
        vendor = await make_vendor()
        statement = await statements.generate_statement(vendor.id, date(2026, 3, 1), date(2026, 3, 8))
        assert statement.total_sales == Decimal("0")
        assert statement.net_amount == Decimal("0")

    async def test_invalid_period(self, statements, make_vendor):
        vendor = await make_vendor()
        with pytest.raises(ValidationFailedError):
            await statements.generate_statement(vendor.id, date(2026, 3, 8), date(2026, 3, 8))

    async def test_unknown_vendor(self, statements):
        with pytest.raises(NotFoundError):
            await statements.generate_statement(uuid4(), date(2026, 3, 1), date(2026, 3, 8))

    async def test_overlapping_period_conflicts(self, statements, make_vendor):
        vendor = await make_vendor()
        first = await statements.generate_statement(vendor.id, date(2026, 3, 1), date(2026, 3, 8))

        with pytest.raises(ConflictError) as exc:
            await statements.generate_statement(vendor.id, date(2026, 3, 7), date(2026, 3, 14))
        assert exc.value.details["statement_id"] == str(first.id)

        # Adjacent windows share only the boundary, which is excluded
        adjacent = await statements.generate_statement(vendor.id, date(2026, 3, 8), date(2026, 3, 15))
        assert adjacent.period_start == date(2026, 3, 8)


class TestFinalize:
    async def test_finalize_is_idempotent(self, statements, make_vendor, make_sale):
        vendor = await make_vendor()
        await make_sale(vendor, "1000.00", at(2))
        draft = await statements.generate_statement(vendor.id, date(2026, 3, 1), date(2026, 3, 8))

        finalized = await statements.finalize_statement(draft.id)
        assert finalized.status == "FINALIZED"
        assert finalized.requires_review is False
        finalized_at = finalized.finalized_at

        again = await statements.finalize_statement(draft.id)
        assert again.status == "FINALIZED"
        assert again.finalized_at == finalized_at

    async def test_non_positive_net_is_flagged(self, statements, make_vendor):
        vendor = await make_vendor()
        draft = await statements.generate_statement(vendor.id, date(2026, 3, 1), date(2026, 3, 8))

        finalized = await statements.finalize_statement(draft.id)
        assert finalized.status == "FINALIZED"
        assert finalized.requires_review is True

    async def test_unknown_statement(self, statements):
        with pytest.raises(NotFoundError):
            await statements.finalize_statement(uuid4())

    async def test_list_for_vendor(self, statements, make_vendor):
        vendor = await make_vendor()
        await statements.generate_statement(vendor.id, date(2026, 3, 1), date(2026, 3, 8))
        await statements.generate_statement(vendor.id, date(2026, 3, 8), date(2026, 3, 15))

        items, total = await statements.list_statements(vendor.id)
        assert total == 2
        assert [s.period_start for s in items] == [date(2026, 3, 8), date(2026, 3, 1)]
