"""
iCanGrow API — Production Record Tests
========================================

What:  Tests for daily logs, packaging runs, finished goods, waste records
       and the QA batch review under /api/v1/erp, plus the inventory screen's
       recent daily logs.
Why:   The batch review closes a batch on the strength of these records. A
       review that passes a batch with no eBR, or an eBR that undercounts
       the daily logs, puts a wrong release decision on record.
How:   API tests drive the full application with bearer tokens for seeded
       profiles; the review is checked against the batch row afterwards.

What we test:
    ✅ Daily logs: create, list by batch and day, update keeps the batch
    ✅ Unknown batch → 400 "Batch not found"; humidity 140 → 400
    ✅ /inventory/batches/{id}/daily-logs honours limit, newest day first
    ✅ Packaging runs: create and filter; growers may not record them
    ✅ Finished goods: create, substring filters, update, 404
    ✅ Waste: create and disposal_date window
    ✅ Review pass → eBR pass with recounted completeness, batch completed/packaging
    ✅ Review fail needs a reason; conditional leaves compliance pending
    ✅ Review of a batch with no eBR → 400, of an unknown batch → 404
"""

import uuid

import pytest

from icangrow.models.cultivation import Batch
from icangrow.services.ebr_service import ebr_service

ERP_URL = "/api/v1/erp"


async def post_daily_log(client, headers, batch_id, day, **fields):
    body = {"batch_id": str(batch_id), "date": day, "stage": "flowering", **fields}
    return await client.post(f"{ERP_URL}/daily_logs", json=body, headers=headers)


class TestDailyLogs:
    @pytest.mark.asyncio
    async def test_create_list_and_update(self, client, users, auth_headers, make_batch):
        grower = users["grower"]
        headers = auth_headers(grower)
        batch = await make_batch()
        other = await make_batch(name="Batch B2")

        created = await post_daily_log(
            client, headers, batch.id, "2024-02-01", plant_count=48, humidity=55.5, observations="Healthy canopy"
        )
        assert created.status_code == 201
        assert created.json()["message"] == "Daily log created successfully"
        log = created.json()["data"]
        assert log["logged_by"] == str(grower.id)
        assert log["stage"] == "flowering"

        await post_daily_log(client, headers, batch.id, "2024-02-02")
        await post_daily_log(client, headers, other.id, "2024-02-02")

        listing = await client.get(f"{ERP_URL}/daily_logs", params={"batch_id": str(batch.id)}, headers=headers)
        assert [row["date"] for row in listing.json()["data"]["records"]] == ["2024-02-02", "2024-02-01"]

        one_day = await client.get(
            f"{ERP_URL}/daily_logs",
            params={"date_from": "2024-02-02", "date_to": "2024-02-02"},
            headers=headers,
        )
        assert one_day.json()["data"]["total"] == 2

        updated = await client.put(
            f"{ERP_URL}/daily_logs/{log['id']}",
            json={"batch_id": str(other.id), "plant_count": 46, "issues": "Two plants culled"},
            headers=headers,
        )
        assert updated.status_code == 200
        assert updated.json()["message"] == "Daily log updated successfully"
        data = updated.json()["data"]
        assert data["batch_id"] == str(batch.id)
        assert data["plant_count"] == 46
        assert data["observations"] == "Healthy canopy"

        fetched = await client.get(f"{ERP_URL}/daily_logs/{log['id']}", headers=auth_headers(users["qa_manager"]))
        assert fetched.json()["data"]["issues"] == "Two plants culled"

    @pytest.mark.asyncio
    async def test_unknown_batch_is_400(self, client, users, auth_headers):
        response = await post_daily_log(client, auth_headers(users["grower"]), uuid.uuid4(), "2024-02-01")
        assert response.status_code == 400
        assert response.json()["error"] == "Batch not found"

    @pytest.mark.asyncio
    async def test_out_of_range_humidity_is_400(self, client, users, auth_headers, make_batch):
        batch = await make_batch()
        response = await post_daily_log(client, auth_headers(users["grower"]), batch.id, "2024-02-01", humidity=140)
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "humidity"

    @pytest.mark.asyncio
    async def test_qa_manager_cannot_log(self, client, users, auth_headers, make_batch):
        batch = await make_batch()
        response = await post_daily_log(client, auth_headers(users["qa_manager"]), batch.id, "2024-02-01")
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_inventory_shows_most_recent_days(self, client, users, auth_headers, make_batch):
        headers = auth_headers(users["grower"])
        batch = await make_batch()
        for day in ("2024-02-01", "2024-02-03", "2024-02-02"):
            await post_daily_log(client, headers, batch.id, day)

        response = await client.get(
            f"/api/v1/inventory/batches/{batch.id}/daily-logs",
            params={"limit": 2},
            headers=auth_headers(users["packaging_dispatch"]),
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Daily logs retrieved successfully"
        assert [row["date"] for row in response.json()["data"]] == ["2024-02-03", "2024-02-02"]

        default = await client.get(f"/api/v1/inventory/batches/{batch.id}/daily-logs", headers=headers)
        assert len(default.json()["data"]) == 3


class TestPackagingAndStock:
    @pytest.mark.asyncio
    async def test_packaging_run_create_and_filter(self, client, users, auth_headers, make_batch):
        packer = users["packaging_dispatch"]
        headers = auth_headers(packer)
        batch = await make_batch()

        created = await client.post(
            f"{ERP_URL}/packaging",
            json={
                "batch_id": str(batch.id),
                "moisture_percentage": 11.5,
                "visual_inspection_pass": True,
                "packaging_integrity": True,
            },
            headers=headers,
        )
        assert created.status_code == 201
        assert created.json()["message"] == "Packaging run created successfully"
        run = created.json()["data"]
        assert run["status"] == "pending"
        assert run["created_by"] == str(packer.id)

        pending = await client.get(f"{ERP_URL}/packaging", params={"status": "pending"}, headers=headers)
        assert pending.json()["data"]["total"] == 1
        approved = await client.get(f"{ERP_URL}/packaging", params={"status": "approved"}, headers=headers)
        assert approved.json()["data"]["total"] == 0

        fetched = await client.get(f"{ERP_URL}/packaging/{run['id']}", headers=auth_headers(users["grower"]))
        assert fetched.json()["data"]["moisture_percentage"] == 11.5

        denied = await client.post(
            f"{ERP_URL}/packaging",
            json={"batch_id": str(batch.id), "visual_inspection_pass": True, "packaging_integrity": True},
            headers=auth_headers(users["grower"]),
        )
        assert denied.status_code == 403

    @pytest.mark.asyncio
    async def test_finished_goods_filters_and_update(self, client, users, auth_headers, make_batch):
        headers = auth_headers(users["packaging_dispatch"])
        batch = await make_batch()

        for product, strain, location in [
            ("Blue Dream 3.5g", "Blue Dream", "Vault A - Shelf 2"),
            ("OG Kush 1g", "OG Kush", "Vault B"),
        ]:
            response = await client.post(
                f"{ERP_URL}/finished_goods",
                json={
                    "product_name": product,
                    "strain": strain,
                    "batch_id": str(batch.id),
                    "quantity_available": 100,
                    "storage_location": location,
                },
                headers=headers,
            )
            assert response.status_code == 201

        blue = await client.get(f"{ERP_URL}/finished_goods", params={"strain_name": "blue"}, headers=headers)
        rows = blue.json()["data"]["records"]
        assert [row["product_name"] for row in rows] == ["Blue Dream 3.5g"]
        assert rows[0]["qa_status"] == "pending"
        assert rows[0]["unit_type"] == "grams"

        vault_a = await client.get(
            f"{ERP_URL}/finished_goods", params={"storage_location": "vault a"}, headers=headers
        )
        assert vault_a.json()["data"]["total"] == 1

        updated = await client.put(
            f"{ERP_URL}/finished_goods/{rows[0]['id']}",
            json={"quantity_available": 80, "quantity_reserved": 20, "qa_status": "released"},
            headers=headers,
        )
        assert updated.status_code == 200
        assert updated.json()["message"] == "Finished goods item updated successfully"
        assert updated.json()["data"]["quantity_reserved"] == 20

        released = await client.get(f"{ERP_URL}/finished_goods", params={"qa_status": "released"}, headers=headers)
        assert released.json()["data"]["total"] == 1

    @pytest.mark.asyncio
    async def test_unknown_finished_good_is_404(self, client, users, auth_headers):
        response = await client.put(
            f"{ERP_URL}/finished_goods/{uuid.uuid4()}",
            json={"quantity_available": 1},
            headers=auth_headers(users["admin"]),
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Finished goods item not found"

    @pytest.mark.asyncio
    async def test_waste_disposal_window(self, client, users, auth_headers, make_batch):
        headers = auth_headers(users["grower"])
        batch = await make_batch()

        created = await client.post(
            f"{ERP_URL}/waste",
            json={
                "batch_id": str(batch.id),
                "waste_type": "plant_material",
                "quantity": 2.5,
                "unit": "kg",
                "reason": "Powdery mildew on lower fan leaves",
                "disposal_method": "compost",
                "disposal_date": "2024-02-03T16:30:00Z",
            },
            headers=headers,
        )
        assert created.status_code == 201
        assert created.json()["message"] == "Waste record created successfully"

        same_day = await client.get(
            f"{ERP_URL}/waste", params={"date_from": "2024-02-03", "date_to": "2024-02-03"}, headers=headers
        )
        assert same_day.json()["data"]["total"] == 1

        later = await client.get(f"{ERP_URL}/waste", params={"date_from": "2024-02-04"}, headers=headers)
        assert later.json()["data"]["total"] == 0

        composted = await client.get(f"{ERP_URL}/waste", params={"disposal_method": "compost"}, headers=headers)
        assert composted.json()["data"]["records"][0]["quantity"] == 2.5


class TestBatchReview:
    @staticmethod
    async def batch_with_record(gateway, users, make_batch):
        batch = await make_batch()
        async with gateway.session(privileged=True) as db:
            await ebr_service.create_record(db, batch.id, users["qa_manager"].id)
        return batch

    @pytest.mark.asyncio
    async def test_pass_closes_batch_and_recounts_completeness(
        self, client, gateway, users, auth_headers, make_batch
    ):
        qa = users["qa_manager"]
        batch = await self.batch_with_record(gateway, users, make_batch)

        grower = auth_headers(users["grower"])
        for day in ("2024-02-01", "2024-02-02"):
            await post_daily_log(client, grower, batch.id, day)
        await client.post(
            f"{ERP_URL}/packaging",
            json={"batch_id": str(batch.id), "visual_inspection_pass": True, "packaging_integrity": True},
            headers=auth_headers(users["packaging_dispatch"]),
        )

        headers = auth_headers(qa)
        before = await client.get(f"{ERP_URL}/review/{batch.id}", headers=headers)
        assert before.json()["data"]["daily_logs_count"] == 0

        response = await client.post(
            f"{ERP_URL}/review/{batch.id}",
            json={"pass_fail_status": "pass", "review_notes": "Release approved"},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Batch approved and closed successfully"
        data = response.json()["data"]
        assert data["pass_fail_status"] == "pass"
        assert data["compliance_status"] == "approved"
        assert data["reviewed_by"] == str(qa.id)
        assert data["reviewed_at"] is not None
        assert data["review_notes"] == "Release approved"
        assert data["daily_logs_count"] == 2
        assert data["packaging_complete"] is True

        async with gateway.session(privileged=True) as db:
            row = await db.get(Batch, batch.id)
        assert row.status == "completed"
        assert row.current_stage == "packaging"

    @pytest.mark.asyncio
    async def test_fail_needs_a_reason(self, client, gateway, users, auth_headers, make_batch):
        headers = auth_headers(users["admin"])
        batch = await self.batch_with_record(gateway, users, make_batch)

        missing = await client.post(f"{ERP_URL}/review/{batch.id}", json={"pass_fail_status": "fail"}, headers=headers)
        assert missing.status_code == 400
        assert missing.json()["details"]["field"] == "rejection_reason"

        rejected = await client.post(
            f"{ERP_URL}/review/{batch.id}",
            json={"pass_fail_status": "fail", "rejection_reason": "Aspergillus detected", "requires_reprocessing": True},
            headers=headers,
        )
        assert rejected.status_code == 200
        assert rejected.json()["message"] == "Batch rejected"
        data = rejected.json()["data"]
        assert data["pass_fail_status"] == "fail"
        assert data["rejection_reason"] == "Aspergillus detected"

        async with gateway.session(privileged=True) as db:
            row = await db.get(Batch, batch.id)
        assert row.status == "active"

    @pytest.mark.asyncio
    async def test_conditional_leaves_compliance_pending(self, client, gateway, users, auth_headers, make_batch):
        batch = await self.batch_with_record(gateway, users, make_batch)

        response = await client.post(
            f"{ERP_URL}/review/{batch.id}",
            json={"pass_fail_status": "conditional", "review_notes": "Release once retest lands"},
            headers=auth_headers(users["qa_manager"]),
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Batch conditionally approved"
        assert response.json()["data"]["pass_fail_status"] == "conditional"
        assert response.json()["data"]["compliance_status"] == "pending"

    @pytest.mark.asyncio
    async def test_batch_without_record_is_400(self, client, users, auth_headers, make_batch):
        batch = await make_batch()
        headers = auth_headers(users["qa_manager"])

        response = await client.post(f"{ERP_URL}/review/{batch.id}", json={"pass_fail_status": "pass"}, headers=headers)
        assert response.status_code == 400
        assert response.json()["error"].startswith("Batch record not found")

        lookup = await client.get(f"{ERP_URL}/review/{batch.id}", headers=headers)
        assert lookup.status_code == 404
        assert lookup.json()["error"] == "Batch record not found"

    @pytest.mark.asyncio
    async def test_unknown_batch_is_404(self, client, users, auth_headers):
        response = await client.post(
            f"{ERP_URL}/review/{uuid.uuid4()}",
            json={"pass_fail_status": "pass"},
            headers=auth_headers(users["qa_manager"]),
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Batch not found"

    @pytest.mark.asyncio
    async def test_grower_cannot_review(self, client, gateway, users, auth_headers, make_batch):
        batch = await self.batch_with_record(gateway, users, make_batch)
        response = await client.post(
            f"{ERP_URL}/review/{batch.id}",
            json={"pass_fail_status": "pass"},
            headers=auth_headers(users["grower"]),
        )
        assert response.status_code == 403
