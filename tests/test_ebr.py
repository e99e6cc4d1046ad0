"""
iCanGrow API — Electronic Batch Record Tests
==============================================

What:  Tests for EbrService and the /api/v1/qms/ebr routes.
Why:   The eBR disposition is the QA sign-off for a batch; an approval that
       can be silently flipped, or statistics that divide by zero, would put
       a wrong release decision on record.
How:   Service tests run against the in-memory database; API tests drive the
       full application with bearer tokens for seeded profiles.

What we test:
    ✅ Creating an eBR snapshots the batch; a second eBR for it is a 409
    ✅ Unknown batch → 404 "Batch not found", nothing inserted
    ✅ Creating an eBR counts the batch's daily logs, packaging and waste
    ✅ Checklist items come back in the order they were added; none for an unknown eBR
    ✅ Statistics are all zero on an empty table and rounded half-up
    ✅ Approve → pass/approved with approver and timestamp, audit row written
    ✅ pass → fail is refused (409); reopen returns the record to pending
    ✅ Approving twice stays pass with fresh notes and timestamp
    ✅ Listing: newest first, q over number/name/strain/notes, start_date window,
       batch and disposition filters, totalPages; unknown compliance_status is empty
    ✅ Rejection needs a non-blank reason
"""

import uuid
from datetime import date, datetime, timezone

import pytest
from sqlalchemy import func, select

from icangrow.exceptions import ConflictError, InvalidTransitionError, NotFoundError
from icangrow.models.audit_log import AuditLog
from icangrow.models.ebr import EbrRecord
from icangrow.models.production import DailyLog, PackagingRun, WasteRecord
from icangrow.services.ebr_service import ebr_service

EBR_URL = "/api/v1/qms/ebr"


class TestEbrServiceCreate:
    @pytest.mark.asyncio
    async def test_create_snapshots_batch(self, gateway, users, make_batch):
        qa = users["qa_manager"]
        batch = await make_batch(created_by=qa.id)

        async with gateway.session(privileged=True) as db:
            record = await ebr_service.create_record(db, batch.id, qa.id)

        assert record.ebr_number.startswith("EBR-")
        assert record.batch_name == "Batch A1"
        assert record.strain == "Blue Dream"
        assert record.current_stage == "flowering"
        assert record.total_plant_count == 48
        assert record.pass_fail_status == "pending"
        assert record.compliance_status == "pending"
        assert record.created_by == qa.id

    @pytest.mark.asyncio
    async def test_create_counts_the_production_trail(self, gateway, users, make_batch):
        qa = users["qa_manager"]
        grower = users["grower"]
        batch = await make_batch()
        async with gateway.session(privileged=True) as db:
            for day in (1, 2, 3):
                db.add(DailyLog(batch_id=batch.id, date=date(2024, 2, day), stage="flowering", logged_by=grower.id))
            db.add(PackagingRun(
                batch_id=batch.id, visual_inspection_pass=True, packaging_integrity=False, created_by=qa.id,
            ))
            db.add(WasteRecord(
                batch_id=batch.id, waste_type="trim", quantity=1.5, unit="kg", reason="Fan leaves",
                disposal_method="compost", disposal_date=datetime(2024, 2, 3, tzinfo=timezone.utc),
                created_by=grower.id,
            ))
            await db.flush()
            record = await ebr_service.create_record(db, batch.id, qa.id)

        assert record.daily_logs_count == 3
        assert record.packaging_complete is False
        assert record.waste_recorded is True
        assert record.critical_deviations_count == 0

    @pytest.mark.asyncio
    async def test_second_record_for_batch_conflicts(self, gateway, users, make_batch):
        qa = users["qa_manager"]
        batch = await make_batch()
        async with gateway.session(privileged=True) as db:
            await ebr_service.create_record(db, batch.id, qa.id)

        with pytest.raises(ConflictError):
            async with gateway.session(privileged=True) as db:
                await ebr_service.create_record(db, batch.id, qa.id)

    @pytest.mark.asyncio
    async def test_unknown_batch_inserts_nothing(self, gateway, users):
        with pytest.raises(NotFoundError) as exc_info:
            async with gateway.session(privileged=True) as db:
                await ebr_service.create_record(db, uuid.uuid4(), users["admin"].id)

        assert exc_info.value.message == "Batch not found"
        async with gateway.session(privileged=True) as db:
            count = (await db.execute(select(func.count(EbrRecord.id)))).scalar_one()
        assert count == 0


class TestEbrChecklist:
    @pytest.mark.asyncio
    async def test_items_are_returned_in_creation_order(self, gateway, users, make_batch):
        qa = users["qa_manager"]
        batch = await make_batch()
        async with gateway.session(privileged=True) as db:
            record = await ebr_service.create_record(db, batch.id, qa.id)
            for text, category in [
                ("Clone source documented", "documentation"),
                ("Residue screen attached", "testing"),
                ("Labels match lot code", "packaging"),
            ]:
                await ebr_service.add_checklist_item(
                    db, record.id, qa.id, {"checklist_item": text, "item_category": category}
                )

        async with gateway.session(privileged=True) as db:
            items = await ebr_service.get_checklist(db, record.id)

        assert [item.checklist_item for item in items] == [
            "Clone source documented",
            "Residue screen attached",
            "Labels match lot code",
        ]
        assert all(item.reviewer_id == qa.id for item in items)

    @pytest.mark.asyncio
    async def test_checklist_of_unknown_record_is_empty(self, gateway):
        async with gateway.session(privileged=True) as db:
            items = await ebr_service.get_checklist(db, uuid.uuid4())

        assert items == []

    @pytest.mark.asyncio
    async def test_details_of_unknown_record_is_404(self, gateway):
        with pytest.raises(NotFoundError) as exc_info:
            async with gateway.session(privileged=True) as db:
                await ebr_service.get_details(db, uuid.uuid4())

        assert exc_info.value.message == "eBR record not found"


class TestEbrStatistics:
    @pytest.mark.asyncio
    async def test_empty_table_is_all_zero(self, gateway):
        async with gateway.session(privileged=True) as db:
            stats = await ebr_service.statistics(db)

        assert stats == {
            "total_records": 0,
            "pass_count": 0,
            "fail_count": 0,
            "conditional_count": 0,
            "compliance_rate": 0.0,
            "average_compliance_score": 0.0,
        }

    @pytest.mark.asyncio
    async def test_rates_are_rounded_to_two_places(self, gateway, users, make_batch):
        qa = users["qa_manager"]
        outcomes = [("pass", 90.0), ("fail", 85.0), ("pending", None)]
        for index, (status, score) in enumerate(outcomes):
            batch = await make_batch(name=f"Batch {index}")
            async with gateway.session(privileged=True) as db:
                record = await ebr_service.create_record(db, batch.id, qa.id)
                row = await db.get(EbrRecord, record.id)
                row.pass_fail_status = status
                row.compliance_score = score

        async with gateway.session(privileged=True) as db:
            stats = await ebr_service.statistics(db)

        assert stats["total_records"] == 3
        assert stats["pass_count"] == 1
        assert stats["fail_count"] == 1
        assert stats["conditional_count"] == 0
        assert stats["compliance_rate"] == 33.33
        assert stats["average_compliance_score"] == 87.5


class TestEbrDisposition:
    @pytest.mark.asyncio
    async def test_approve_then_reject_is_refused(self, gateway, users, make_batch):
        qa = users["qa_manager"]
        batch = await make_batch()
        async with gateway.session(privileged=True) as db:
            record = await ebr_service.create_record(db, batch.id, qa.id)
            approved = await ebr_service.approve(db, record.id, qa.id, "All checks passed")

        assert approved.pass_fail_status == "pass"
        assert approved.compliance_status == "approved"
        assert approved.approved_by == qa.id
        assert approved.approved_at is not None
        assert approved.review_notes == "All checks passed"

        with pytest.raises(InvalidTransitionError):
            async with gateway.session(privileged=True) as db:
                await ebr_service.reject(db, record.id, qa.id, "Mould found")

        async with gateway.session(privileged=True) as db:
            current = await ebr_service.get(db, record.id)
        assert current.pass_fail_status == "pass"

    @pytest.mark.asyncio
    async def test_approving_twice_keeps_pass_and_refreshes_notes(self, gateway, users, make_batch):
        qa = users["qa_manager"]
        batch = await make_batch()
        async with gateway.session(privileged=True) as db:
            record = await ebr_service.create_record(db, batch.id, qa.id)
            first = await ebr_service.approve(db, record.id, qa.id, "All checks passed")
            first_approved_at = first.approved_at

        async with gateway.session(privileged=True) as db:
            second = await ebr_service.approve(db, record.id, users["admin"].id, "Retest within limits")

        assert second.pass_fail_status == "pass"
        assert second.compliance_status == "approved"
        assert second.review_notes == "Retest within limits"
        assert second.approved_by == users["admin"].id
        assert second.approved_at >= first_approved_at

    @pytest.mark.asyncio
    async def test_reopen_clears_disposition(self, gateway, users, make_batch):
        qa = users["qa_manager"]
        batch = await make_batch()
        async with gateway.session(privileged=True) as db:
            record = await ebr_service.create_record(db, batch.id, qa.id)
            await ebr_service.reject(db, record.id, qa.id, "Pesticide residue", requires_reprocessing=True)
            reopened = await ebr_service.reopen(db, record.id, qa.id, "Retest came back clean")

        assert reopened.pass_fail_status == "pending"
        assert reopened.compliance_status == "pending"
        assert reopened.approved_by is None
        assert reopened.rejection_reason is None

    @pytest.mark.asyncio
    async def test_reopen_pending_record_is_refused(self, gateway, users, make_batch):
        qa = users["qa_manager"]
        batch = await make_batch()
        async with gateway.session(privileged=True) as db:
            record = await ebr_service.create_record(db, batch.id, qa.id)

        with pytest.raises(InvalidTransitionError):
            async with gateway.session(privileged=True) as db:
                await ebr_service.reopen(db, record.id, qa.id, "No reason")


class TestEbrListing:
    """Filters, search and paging of list_ebr_records."""

    @staticmethod
    async def create_two(gateway, users, make_batch):
        qa = users["qa_manager"]
        older_batch = await make_batch(name="Batch A1")
        newer_batch = await make_batch(name="Other Batch")
        async with gateway.session(privileged=True) as db:
            older = await ebr_service.create_record(db, older_batch.id, qa.id)
        async with gateway.session(privileged=True) as db:
            newer = await ebr_service.create_record(db, newer_batch.id, qa.id)
        return older, newer

    @pytest.mark.asyncio
    async def test_newest_first_with_total_pages(self, gateway, users, make_batch):
        older, newer = await self.create_two(gateway, users, make_batch)

        async with gateway.session(privileged=True) as db:
            first_page = await ebr_service.list(db, {}, 1, 1)
            second_page = await ebr_service.list(db, {}, 2, 1)

        assert first_page.total == 2
        assert first_page.total_pages == 2
        assert [record.batch_name for record in first_page.records] == ["Other Batch"]
        assert [record.id for record in second_page.records] == [older.id]

    @pytest.mark.asyncio
    async def test_q_matches_number_name_strain_or_notes(self, gateway, users, make_batch):
        older, newer = await self.create_two(gateway, users, make_batch)
        async with gateway.session(privileged=True) as db:
            await ebr_service.approve(db, older.id, users["qa_manager"].id, "Trichomes inspected under loupe")

        async def search(q):
            async with gateway.session(privileged=True) as db:
                result = await ebr_service.list(db, {"q": q}, 1, 20)
            return {record.id for record in result.records}

        assert await search(newer.ebr_number.lower()) == {newer.id}
        assert await search("other") == {newer.id}
        assert await search("blue dream") == {older.id, newer.id}
        assert await search("LOUPE") == {older.id}
        assert await search("no such record") == set()

    @pytest.mark.asyncio
    async def test_date_window_bounds_start_date(self, gateway, users, make_batch):
        older, newer = await self.create_two(gateway, users, make_batch)
        async with gateway.session(privileged=True) as db:
            row = await db.get(EbrRecord, newer.id)
            row.start_date = date(2024, 3, 1)

        async def window(**bounds):
            async with gateway.session(privileged=True) as db:
                result = await ebr_service.list(db, bounds, 1, 20)
            return [record.id for record in result.records]

        assert await window(date_from=date(2024, 1, 15), date_to=date(2024, 1, 15)) == [older.id]
        assert await window(date_from=date(2024, 2, 1)) == [newer.id]
        assert await window(date_to=date(2024, 3, 1)) == [newer.id, older.id]
        assert await window(date_to=date(2024, 1, 14)) == []

    @pytest.mark.asyncio
    async def test_batch_and_disposition_filters(self, gateway, users, make_batch):
        older, newer = await self.create_two(gateway, users, make_batch)
        async with gateway.session(privileged=True) as db:
            await ebr_service.reject(db, newer.id, users["qa_manager"].id, "Mould found")

        async with gateway.session(privileged=True) as db:
            by_batch = await ebr_service.list(db, {"batch_id": older.batch_id}, 1, 20)
            failed = await ebr_service.list(db, {"pass_fail_status": "fail"}, 1, 20)
            pending = await ebr_service.list(db, {"pass_fail_status": "pending"}, 1, 20)

        assert [record.id for record in by_batch.records] == [older.id]
        assert [record.id for record in failed.records] == [newer.id]
        assert [record.id for record in pending.records] == [older.id]

    @pytest.mark.asyncio
    async def test_unrecognised_compliance_status_is_an_empty_page(
        self, client, gateway, users, auth_headers, make_batch
    ):
        await self.create_two(gateway, users, make_batch)

        response = await client.get(
            EBR_URL, params={"compliance_status": "archived"}, headers=auth_headers(users["qa_manager"])
        )
        assert response.status_code == 200
        body = response.json()["data"]
        assert body["total"] == 0
        assert body["records"] == []

        response = await client.get(
            EBR_URL, params={"compliance_status": "pending"}, headers=auth_headers(users["qa_manager"])
        )
        assert response.json()["data"]["total"] == 2


class TestEbrApi:
    """End-to-end: create, review, approve, then read back statistics."""

    @pytest.mark.asyncio
    async def test_create_review_and_approve(self, client, gateway, users, auth_headers, make_batch):
        qa = users["qa_manager"]
        headers = auth_headers(qa)
        batch = await make_batch()

        response = await client.post(EBR_URL, json={"batch_id": str(batch.id)}, headers=headers)
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "eBR record created successfully"
        ebr_id = body["data"]["id"]
        assert body["data"]["batch"]["name"] == "Batch A1"

        duplicate = await client.post(EBR_URL, json={"batch_id": str(batch.id)}, headers=headers)
        assert duplicate.status_code == 409
        assert duplicate.json()["success"] is False

        item = await client.post(
            f"{EBR_URL}/{ebr_id}/checklist",
            json={"checklist_item": "Harvest weight recorded", "item_category": "quality", "is_compliant": True},
            headers=headers,
        )
        assert item.status_code == 201

        approve = await client.post(
            f"{EBR_URL}/{ebr_id}/approve",
            json={"approval_reason": "Meets release criteria"},
            headers=headers,
        )
        assert approve.status_code == 200
        data = approve.json()["data"]
        assert data["pass_fail_status"] == "pass"
        assert data["compliance_status"] == "approved"
        assert data["approved_by"] == str(qa.id)
        assert data["approved_by_profile"]["full_name"] == "Qa Manager"

        flip = await client.post(
            f"{EBR_URL}/{ebr_id}/reject",
            json={"rejection_reason": "Second thoughts"},
            headers=headers,
        )
        assert flip.status_code == 409

        stats = await client.get(f"{EBR_URL}/statistics/overview", headers=headers)
        assert stats.json()["data"]["pass_count"] == 1
        assert stats.json()["data"]["compliance_rate"] == 100.0

        by_batch = await client.get(f"{EBR_URL}/batch/{batch.id}", headers=headers)
        assert by_batch.json()["data"]["id"] == ebr_id

        async with gateway.session(privileged=True) as db:
            actions = (
                await db.execute(select(AuditLog.action).where(AuditLog.resource_id == ebr_id))
            ).scalars().all()
        assert list(actions) == ["approve"]

    @pytest.mark.asyncio
    async def test_unknown_batch_is_404(self, client, users, auth_headers):
        response = await client.post(
            EBR_URL, json={"batch_id": str(uuid.uuid4())}, headers=auth_headers(users["admin"])
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Batch not found"

    @pytest.mark.asyncio
    async def test_blank_rejection_reason_is_400(self, client, gateway, users, auth_headers, make_batch):
        headers = auth_headers(users["qa_manager"])
        batch = await make_batch()
        created = await client.post(EBR_URL, json={"batch_id": str(batch.id)}, headers=headers)

        response = await client.post(
            f"{EBR_URL}/{created.json()['data']['id']}/reject",
            json={"rejection_reason": "   "},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"
        assert response.json()["details"][0]["field"] == "rejection_reason"

    @pytest.mark.asyncio
    async def test_no_record_for_batch_is_404(self, client, gateway, users, auth_headers, make_batch):
        batch = await make_batch()
        response = await client.get(f"{EBR_URL}/batch/{batch.id}", headers=auth_headers(users["admin"]))
        assert response.status_code == 404
        assert response.json()["error"] == "No eBR record found for this batch"

    @pytest.mark.asyncio
    async def test_grower_cannot_review(self, client, users, auth_headers):
        response = await client.get(EBR_URL, headers=auth_headers(users["grower"]))
        assert response.status_code == 403
        assert response.json()["error"] == "Insufficient permissions"

    @pytest.mark.asyncio
    async def test_cultivation_lead_cannot_reopen(self, client, gateway, users, auth_headers, make_batch):
        batch = await make_batch()
        lead = auth_headers(users["cultivation_lead"])
        created = await client.post(EBR_URL, json={"batch_id": str(batch.id)}, headers=lead)
        ebr_id = created.json()["data"]["id"]
        await client.post(f"{EBR_URL}/{ebr_id}/approve", headers=lead)

        response = await client.post(f"{EBR_URL}/{ebr_id}/reopen", json={"reason": "Recheck"}, headers=lead)
        assert response.status_code == 403

        response = await client.post(
            f"{EBR_URL}/{ebr_id}/reopen",
            json={"reason": "Recheck"},
            headers=auth_headers(users["qa_manager"]),
        )
        assert response.status_code == 200
        assert response.json()["data"]["pass_fail_status"] == "pending"


class TestOpsListing:
    @pytest.mark.asyncio
    async def test_admin_only_newest_first(self, client, gateway, users, make_batch, auth_headers):
        qa = users["qa_manager"]
        for name in ("Batch Early", "Batch Late"):
            batch = await make_batch(name=name)
            async with gateway.session(privileged=True) as db:
                await ebr_service.create_record(db, batch.id, qa.id)

        denied = await client.get("/api/v1/ops/ebr-records", headers=auth_headers(qa))
        assert denied.status_code == 403

        response = await client.get("/api/v1/ops/ebr-records", headers=auth_headers(users["admin"]))
        assert response.status_code == 200
        rows = response.json()["data"]
        assert [row["batch_name"] for row in rows] == ["Batch Late", "Batch Early"]
        assert set(rows[0]) == {"id", "ebr_number", "batch_name", "created_at"}
