"""
Analytics tests: distributions, rates, money totals and the vendor export.
"""
from datetime import date, timedelta
from decimal import Decimal

from app.models.settlement import Payout
from app.services.analytics_service import AnalyticsService, percentage

from tests.conftest import BASE_TIME


class TestHelpers:
    def test_percentage_rounds_half_up(self):
        assert percentage(1, 3) == 33
        assert percentage(1, 8) == 13
        assert percentage(5, 0) == 0


class TestVendorAnalytics:
    async def test_overview(self, db_session, make_vendor):
        for status in ("ACTIVE", "ACTIVE", "PENDING", "REJECTED"):
            await make_vendor(status=status)

        overview = await AnalyticsService(db_session).get_vendor_overview()

        assert overview["total_vendors"] == 4
        assert overview["status_distribution"] == {
            "PENDING": 1, "ACTIVE": 2, "SUSPENDED": 0, "REJECTED": 1,
        }
        assert overview["active_percentage"] == 50

    async def test_growth_groups_by_day(self, db_session, make_vendor):
        await make_vendor(status="ACTIVE")
        await make_vendor()
        await make_vendor()
        await make_vendor(created_at=BASE_TIME - timedelta(days=60))

        growth = await AnalyticsService(db_session).get_vendor_growth(
            days=30, now=BASE_TIME + timedelta(days=1)
        )

        assert growth == [{"date": "2026-01-01", "total": 3, "active": 1, "pending": 2}]

    async def test_top_vendors_ranked_by_sales(self, db_session, make_vendor, make_statement):
        leader = await make_vendor(name="Leader", status="ACTIVE")
        runner_up = await make_vendor(name="Runner Up", status="ACTIVE")
        idle = await make_vendor(name="Idle", status="ACTIVE")
        pending = await make_vendor(name="Pending", status="PENDING")

        await make_statement(leader, "1000.00", "100.00")
        await make_statement(leader, "2000.00", "300.00", period_start=date(2026, 1, 8), period_end=date(2026, 1, 15))
        await make_statement(runner_up, "500.00", "50.00")
        await make_statement(pending, "9000.00", "900.00")

        top = await AnalyticsService(db_session).get_top_vendors(limit=10)

        assert [v["id"] for v in top] == [leader.id, runner_up.id, idle.id]
        assert top[0]["total_sales"] == Decimal("3000.00")
        assert top[0]["total_earnings"] == Decimal("2600.00")
        assert top[2]["total_sales"] == Decimal("0")


class TestKycAnalytics:
    async def test_distribution_and_document_types(self, db_session, make_vendor, make_kyc):
        vendor = await make_vendor()
        await make_kyc(vendor, doc_type="PAN_CARD")
        await make_kyc(vendor, doc_type="PAN_CARD")
        await make_kyc(vendor, status="APPROVED", doc_type="GST_CERTIFICATE")

        analytics = await AnalyticsService(db_session).get_kyc_analytics()

        assert analytics["total_kyc"] == 3
        assert analytics["status_distribution"] == {"PENDING": 2, "APPROVED": 1, "REJECTED": 0}
        assert analytics["approval_rate"] == 33
        assert analytics["document_types"] == [
            {"type": "PAN_CARD", "count": 2},
            {"type": "GST_CERTIFICATE", "count": 1},
        ]


class TestPayoutAnalytics:
    async def test_amounts_by_status(self, db_session, make_vendor):
        vendor = await make_vendor(status="ACTIVE")
        for status, amount in (("COMPLETED", "900.00"), ("INITIATED", "400.00"), ("FAILED", "100.00")):
            db_session.add(Payout(vendor_id=vendor.id, amount=Decimal(amount), status=status))
        await db_session.flush()

        analytics = await AnalyticsService(db_session).get_payout_analytics()

        assert analytics["total_payouts"] == 3
        assert analytics["status_distribution"] == {"INITIATED": 1, "COMPLETED": 1, "FAILED": 1}
        assert analytics["total_amount_paid"] == Decimal("900.00")
        assert analytics["pending_amount"] == Decimal("400.00")
        assert analytics["failed_amount"] == Decimal("100.00")
        assert analytics["success_rate"] == 33

    async def test_empty(self, db_session):
        analytics = await AnalyticsService(db_session).get_payout_analytics()
        assert analytics["total_payouts"] == 0
        assert analytics["success_rate"] == 0
        assert analytics["total_amount_paid"] == Decimal("0")


class TestCommissionAnalytics:
    async def test_averages_stay_within_type(self, db_session, make_vendor, make_category, make_rule):
        fashion = await make_category("Fashion")
        first = await make_vendor()
        second = await make_vendor()
        third = await make_vendor()
        await make_rule(first, "8", category=fashion)
        await make_rule(second, "12")
        await make_rule(third, "50", type="FLAT")
        await make_rule(third, "30", is_active=False)

        analytics = await AnalyticsService(db_session).get_commission_analytics()

        assert analytics["total_rules"] == 3
        assert analytics["average_percentage"] == Decimal("10.00")
        assert analytics["by_type"] == [
            {"type": "FLAT", "count": 1, "average_value": Decimal("50.00")},
            {"type": "PERCENTAGE", "count": 2, "average_value": Decimal("10.00")},
        ]
        assert [(c["category"], c["type"], c["count"]) for c in analytics["by_category"]] == [
            ("Fashion", "PERCENTAGE", 1),
            ("Vendor-wide", "FLAT", 1),
            ("Vendor-wide", "PERCENTAGE", 1),
        ]


class TestFinancialAnalytics:
    async def test_monthly_breakdown(self, db_session, make_vendor, make_statement):
        vendor = await make_vendor(status="ACTIVE")
        await make_statement(vendor, "1000.00", "100.00")
        await make_statement(
            vendor, "2000.00", "300.00", period_start=date(2026, 2, 1), period_end=date(2026, 3, 1)
        )

        analytics = await AnalyticsService(db_session).get_financial_analytics(months=6)

        assert analytics["total_sales"] == Decimal("3000.00")
        assert analytics["total_fees"] == Decimal("400.00")
        assert analytics["total_net"] == Decimal("2600.00")
        assert analytics["effective_commission_rate"] == Decimal("13.33")
        assert [m["month"] for m in analytics["monthly_breakdown"]] == ["2026-01", "2026-02"]
        assert analytics["monthly_breakdown"][1]["net"] == Decimal("1700.00")


class TestExport:
    async def test_export_counts_related_records(self, db_session, make_vendor, make_kyc, make_rule):
        with_settings = await make_vendor(name="Configured", with_settings=True)
        bare = await make_vendor(name="Bare")
        await make_kyc(with_settings)
        await make_rule(with_settings, "7")

        export = await AnalyticsService(db_session).export_vendor_data()

        assert export["total_records"] == 2
        first, second = export["data"]
        assert first["id"] == with_settings.id
        assert first["kyc_documents"] == 1
        assert first["commission_rules"] == 1
        assert first["settings"]["default_commission_value"] == Decimal("5")
        assert second["id"] == bare.id
        assert second["settings"] is None

    async def test_export_restricted_to_ids(self, db_session, make_vendor):
        await make_vendor()
        wanted = await make_vendor()

        export = await AnalyticsService(db_session).export_vendor_data([wanted.id])

        assert [row["id"] for row in export["data"]] == [wanted.id]
