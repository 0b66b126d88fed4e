"""
HTTP layer tests: routing, error bodies, pagination envelopes and an
end-to-end settlement flow.
"""
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest


VENDOR = {
    "name": "Coastal Cashews",
    "email": "accounts@coastal.example",
}


async def create_vendor(client, **overrides):
    response = await client.post("/api/v1/vendors", json={**VENDOR, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


class TestErrorBodies:
    async def test_not_found(self, client):
        missing = uuid4()
        response = await client.get(f"/api/v1/vendors/{missing}")

        assert response.status_code == 404
        body = response.json()
        assert body["kind"] == "NotFound"
        assert body["details"]["id"] == str(missing)
        assert body["path"] == f"/api/v1/vendors/{missing}"
        assert body["method"] == "GET"

    async def test_duplicate_email_is_conflict(self, client):
        await create_vendor(client)
        response = await client.post("/api/v1/vendors", json=VENDOR)

        assert response.status_code == 409
        assert response.json()["kind"] == "Conflict"
        assert response.json()["details"]["field"] == "email"

    async def test_invalid_transition_is_422(self, client):
        vendor = await create_vendor(client)
        url = f"/api/v1/vendors/{vendor['id']}/status"

        rejected = await client.patch(url, json={"status": "rejected", "reason": "Duplicate application"})
        assert rejected.status_code == 200
        assert rejected.json()["status"] == "REJECTED"

        response = await client.patch(url, json={"status": "ACTIVE"})
        assert response.status_code == 422
        assert response.json()["kind"] == "InvalidState"

    async def test_category_depth_is_422(self, client):
        parent_id = None
        for level in range(6):
            payload = {"name": f"Level {level}"}
            if parent_id:
                payload["parent_id"] = parent_id
            response = await client.post("/api/v1/categories", json=payload)
            assert response.status_code == 201, response.text
            parent_id = response.json()["id"]

        response = await client.post("/api/v1/categories", json={"name": "Too Deep", "parent_id": parent_id})
        assert response.status_code == 422
        assert response.json()["kind"] == "DepthExceeded"

    async def test_category_with_children_is_conflict(self, client):
        root = (await client.post("/api/v1/categories", json={"name": "Apparel"})).json()
        await client.post("/api/v1/categories", json={"name": "Shirts", "parent_id": root["id"]})

        response = await client.delete(f"/api/v1/categories/{root['id']}")
        assert response.status_code == 409

        response = await client.delete(f"/api/v1/categories/{root['id']}", params={"cascade": "true"})
        assert response.status_code == 200
        assert response.json()["deleted"] == 2


class TestPagination:
    async def test_vendor_list_envelope(self, client, make_vendor):
        for _ in range(3):
            await make_vendor()

        response = await client.get("/api/v1/vendors", params={"page": 2, "size": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 3
        assert body["page"] == 2
        assert body["size"] == 2
        assert body["pages"] == 2
        assert len(body["items"]) == 1

    async def test_size_is_bounded(self, client):
        response = await client.get("/api/v1/vendors", params={"size": 500})
        assert response.status_code == 422


class TestCommissionsApi:
    async def test_effective_commission_sources(self, client, make_vendor, make_category):
        vendor = await make_vendor()
        fashion = await make_category("Fashion")

        response = await client.get(
            "/api/v1/commissions/effective",
            params={"vendor_id": str(vendor.id), "category_id": str(fashion.id)},
        )
        assert response.json()["source"] == "PLATFORM_FALLBACK"

        response = await client.post(
            f"/api/v1/vendors/{vendor.id}/commission-rules",
            json={"category_id": str(fashion.id), "type": "PERCENTAGE", "value": "8"},
        )
        assert response.status_code == 201, response.text

        response = await client.get(
            "/api/v1/commissions/effective",
            params={"vendor_id": str(vendor.id), "category_id": str(fashion.id)},
        )
        body = response.json()
        assert body["source"] == "EXACT_VENDOR_CATEGORY_RULE"
        assert Decimal(str(body["value"])) == Decimal("8")

    async def test_update_and_delete_rule(self, client, make_vendor, make_category, make_rule):
        vendor = await make_vendor()
        fashion = await make_category("Fashion")
        vendor_wide = await make_rule(vendor, "12")
        exact = await make_rule(vendor, "8", category=fashion)
        params = {"vendor_id": str(vendor.id), "category_id": str(fashion.id)}

        response = await client.put(f"/api/v1/commission-rules/{vendor_wide.id}", json={"value": "15"})
        assert response.status_code == 200, response.text
        assert Decimal(str(response.json()["value"])) == Decimal("15")
        assert (await client.get("/api/v1/commissions/effective", params=params)).json()["source"] == (
            "EXACT_VENDOR_CATEGORY_RULE"
        )

        response = await client.put(f"/api/v1/commission-rules/{exact.id}", json={"value": "7.125"})
        assert response.status_code == 400
        assert response.json()["kind"] == "ValidationFailed"

        response = await client.delete(f"/api/v1/commission-rules/{exact.id}")
        assert response.status_code == 204

        body = (await client.get("/api/v1/commissions/effective", params=params)).json()
        assert body["source"] == "VENDOR_WIDE_RULE"
        assert Decimal(str(body["value"])) == Decimal("15")

        response = await client.delete(f"/api/v1/commission-rules/{exact.id}")
        assert response.status_code == 404


class TestOnboardingApi:
    async def test_complete_onboarding(self, client, db_session, notifier):
        open_transaction_at_send = []

        async def record_send(**kwargs):
            open_transaction_at_send.append(db_session.in_transaction())

        notifier.notify_portal_access.side_effect = record_send

        response = await client.post("/api/v1/onboarding/complete", json={
            "vendor": {"name": "Himalayan Teas", "email": "hello@himalayan.example"},
            "address": {
                "line1": "Mall Road", "city": "Darjeeling", "state": "West Bengal", "postal_code": "734101",
            },
            "bank_account": {
                "account_holder": "Himalayan Teas", "account_number": "123456789012",
                "ifsc": "SBIN0000123", "bank_name": "State Bank of India",
            },
            "kyc_documents": [{"doc_type": "PAN_CARD", "doc_url": "https://files.example.com/pan.pdf"}],
        })

        assert response.status_code == 201, response.text
        body = response.json()
        assert body["portal_user_created"] is True
        assert body["progress"]["current_step"] == "completed"
        assert "portal_access" not in body
        notifier.notify_portal_access.assert_awaited_once()
        kwargs = notifier.notify_portal_access.call_args.kwargs
        assert kwargs["to_email"] == "hello@himalayan.example"
        assert kwargs["vendor_name"] == "Himalayan Teas"
        # sent after the onboarding transaction committed
        assert open_transaction_at_send == [False]

    async def test_invalid_body_is_rejected_before_any_write(self, client, notifier):
        response = await client.post("/api/v1/onboarding/complete", json={
            "vendor": {"name": "No Address", "email": "noaddress@example.com"},
        })
        assert response.status_code == 422
        notifier.notify_portal_access.assert_not_called()

        stats = (await client.get("/api/v1/onboarding/stats")).json()
        assert stats["total_vendors"] == 0


class TestSettlementFlow:
    async def test_statement_to_payout(self, client, make_vendor, make_sale):
        vendor = await make_vendor(status="ACTIVE")
        await client.post(
            f"/api/v1/vendors/{vendor.id}/commission-rules",
            json={"type": "PERCENTAGE", "value": "12"},
        )
        await make_sale(vendor, "125000.00", datetime(2026, 2, 3, 10, 0, tzinfo=timezone.utc))

        response = await client.post(
            f"/api/v1/vendors/{vendor.id}/statements",
            json={"period_start": "2026-02-01", "period_end": "2026-03-01"},
        )
        assert response.status_code == 201, response.text
        statement = response.json()
        assert Decimal(str(statement["net_amount"])) == Decimal("110000.00")
        assert statement["status"] == "DRAFT"

        # Payout before finalization is refused
        response = await client.post("/api/v1/payouts", json={"statement_id": statement["id"]})
        assert response.status_code == 422

        response = await client.post(f"/api/v1/statements/{statement['id']}/finalize")
        assert response.json()["status"] == "FINALIZED"

        queue = (await client.get("/api/v1/queues/payouts")).json()
        assert [item["id"] for item in queue["items"]] == [statement["id"]]

        response = await client.post("/api/v1/payouts", json={"statement_id": statement["id"]})
        assert response.status_code == 201
        payout = response.json()

        response = await client.post("/api/v1/payouts", json={"statement_id": statement["id"]})
        assert response.status_code == 409

        response = await client.post(
            f"/api/v1/payouts/{payout['id']}/complete",
            json={"outcome": "COMPLETED", "reference": "UTR20260305001"},
        )
        assert response.status_code == 200
        assert response.json()["reference"] == "UTR20260305001"

        queue = (await client.get("/api/v1/queues/payouts")).json()
        assert queue["total"] == 0

    async def test_batch_reports_skips(self, client, make_vendor, make_statement):
        vendor = await make_vendor()
        statement = await make_statement(vendor)
        missing = uuid4()

        response = await client.post(
            "/api/v1/payouts/batch",
            json={"statement_ids": [str(statement.id), str(missing), str(statement.id)]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["created"] == 1
        assert body["skipped"] == [
            {"statement_id": str(missing), "reason": "NOT_FOUND", "error": "Statement not found"},
            {"statement_id": str(statement.id), "reason": "DUPLICATE_IN_BATCH", "error": "Statement repeated in batch"},
        ]


class TestQueuesApi:
    async def test_bulk_approve(self, client, make_vendor):
        pending = await make_vendor()
        active = await make_vendor(status="ACTIVE")

        response = await client.post(
            "/api/v1/queues/approvals/bulk-approve",
            json={"ids": [str(pending.id), str(active.id)]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["updated"] == 1
        assert body["skipped"][0]["reason"] == "NOT_ELIGIBLE"

    async def test_health(self, client):
        response = await client.get("/api/v1/queues/health")
        assert response.status_code == 200
        assert response.json()["health"] == "HEALTHY"


class TestVendorsApi:
    async def test_bulk_status_suspends_eligible_vendors(self, client, make_vendor):
        active = await make_vendor(status="ACTIVE")
        pending = await make_vendor()

        response = await client.post("/api/v1/vendors/bulk-status", json={
            "ids": [str(active.id), str(pending.id)],
            "status": "suspended",
            "reason": "Chargeback ratio above threshold",
        })

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["status"] == "SUSPENDED"
        assert body["updated_ids"] == [str(active.id)]
        assert body["skipped"] == [{"id": str(pending.id), "reason": "NOT_ELIGIBLE", "status": "PENDING"}]

        issues = (await client.get(f"/api/v1/vendors/{active.id}/issues")).json()
        assert issues["items"][0]["description"] == "Chargeback ratio above threshold"

    async def test_bulk_status_rejects_pending_target(self, client, make_vendor):
        vendor = await make_vendor(status="ACTIVE")
        response = await client.post(
            "/api/v1/vendors/bulk-status",
            json={"ids": [str(vendor.id)], "status": "PENDING"},
        )
        assert response.status_code == 400
        assert response.json()["kind"] == "ValidationFailed"


class TestAnalyticsApi:
    async def test_overview_and_export(self, client, make_vendor):
        active = await make_vendor(status="ACTIVE")
        await make_vendor()

        overview = (await client.get("/api/v1/analytics/overview")).json()
        assert overview["total_vendors"] == 2
        assert overview["active_percentage"] == 50

        response = await client.get("/api/v1/analytics/export", params={"vendor_ids": [str(active.id)]})
        assert response.status_code == 200, response.text
        export = response.json()
        assert export["total_records"] == 1
        assert export["data"][0]["id"] == str(active.id)

    @pytest.mark.parametrize("path", [
        "/api/v1/analytics/growth",
        "/api/v1/analytics/kyc",
        "/api/v1/analytics/payouts",
        "/api/v1/analytics/commissions",
        "/api/v1/analytics/financial",
        "/api/v1/analytics/top-vendors",
    ])
    async def test_dashboards_on_empty_store(self, client, path):
        response = await client.get(path)
        assert response.status_code == 200, response.text

@pytest.mark.parametrize("path", ["/", "/health"])
async def test_service_endpoints(client, path):
    response = await client.get(path)
    assert response.status_code == 200
