"""
iCanGrow API — QMS Record Tests
=================================

What:  Tests for deviations, CAPAs, SOPs, training records, environmental
       readings and the QMS record register under /api/v1/qms.
Why:   These records are the paper trail an inspector follows from an
       out-of-range reading to the corrective action that closed it out.

What we test:
    ✅ Deviation → CAPA → complete, looked up from both ends
    ✅ Resolving twice is fine, re-resolving a closed deviation is not
    ✅ SOP approval stamps the approver; only QA roles may author SOPs
    ✅ Training needs a real trainee and completes with a score
    ✅ Environmental readings: room lookup, summary averages, tech access
    ✅ QMS register: reference numbers, q search, batch lookup, metrics with overdue
"""

import uuid

import pytest

QMS_URL = "/api/v1/qms"


class TestDeviationsAndCapas:
    @pytest.mark.asyncio
    async def test_deviation_to_capa_flow(self, client, users, auth_headers, make_batch):
        lead = users["cultivation_lead"]
        headers = auth_headers(lead)
        batch = await make_batch()

        deviation = await client.post(
            f"{QMS_URL}/deviations",
            json={"title": "Humidity above 70% in flower room", "severity": "high", "batch_id": str(batch.id)},
            headers=headers,
        )
        assert deviation.status_code == 201
        deviation = deviation.json()["data"]
        assert deviation["status"] == "open"
        assert deviation["reported_by"] == str(lead.id)
        assert deviation["occurred_at"] is not None

        by_batch = await client.get(f"{QMS_URL}/deviations/batch/{batch.id}", headers=headers)
        assert by_batch.json()["data"]["total"] == 1

        capa = await client.post(
            f"{QMS_URL}/capas",
            json={"title": "Service dehumidifier", "deviation_id": deviation["id"], "priority": "high"},
            headers=headers,
        )
        assert capa.status_code == 201
        capa = capa.json()["data"]
        assert capa["action_type"] == "corrective"
        assert capa["status"] == "open"

        done = await client.post(
            f"{QMS_URL}/capas/{capa['id']}/complete",
            json={"effectiveness_review": "Humidity stable for 7 days"},
            headers=headers,
        )
        assert done.status_code == 200
        assert done.json()["message"] == "CAPA completed successfully"
        assert done.json()["data"]["status"] == "completed"
        assert done.json()["data"]["completion_date"] is not None

        again = await client.post(f"{QMS_URL}/capas/{capa['id']}/complete", json={}, headers=headers)
        assert again.status_code == 409

        linked = await client.get(f"{QMS_URL}/capas/deviation/{deviation['id']}", headers=headers)
        assert [record["id"] for record in linked.json()["data"]["records"]] == [capa["id"]]

        resolved = await client.post(
            f"{QMS_URL}/deviations/{deviation['id']}/resolve",
            json={"corrective_action": "Dehumidifier serviced"},
            headers=headers,
        )
        assert resolved.json()["data"]["status"] == "resolved"
        assert resolved.json()["data"]["resolved_at"] is not None
        assert resolved.json()["data"]["corrective_action"] == "Dehumidifier serviced"

    @pytest.mark.asyncio
    async def test_closed_deviation_cannot_be_resolved(self, client, users, auth_headers):
        headers = auth_headers(users["qa_manager"])
        created = await client.post(f"{QMS_URL}/deviations", json={"title": "Label misprint"}, headers=headers)
        deviation_id = created.json()["data"]["id"]

        closed = await client.put(
            f"{QMS_URL}/deviations/{deviation_id}", json={"status": "closed"}, headers=headers
        )
        assert closed.status_code == 200

        response = await client.post(f"{QMS_URL}/deviations/{deviation_id}/resolve", json={}, headers=headers)
        assert response.status_code == 409
        assert response.json()["details"]["current_status"] == "closed"
        assert response.json()["details"]["target_status"] == "resolved"

    @pytest.mark.asyncio
    async def test_capa_for_unknown_deviation(self, client, users, auth_headers):
        response = await client.post(
            f"{QMS_URL}/capas",
            json={"title": "Orphan action", "deviation_id": str(uuid.uuid4())},
            headers=auth_headers(users["qa_manager"]),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid deviation_id: deviation not found"

    @pytest.mark.asyncio
    async def test_grower_cannot_report_deviations(self, client, users, auth_headers):
        response = await client.post(
            f"{QMS_URL}/deviations", json={"title": "Leak"}, headers=auth_headers(users["grower"])
        )
        assert response.status_code == 403


class TestSops:
    @pytest.mark.asyncio
    async def test_approve_and_browse_by_category(self, client, users, auth_headers):
        qa = users["qa_manager"]
        headers = auth_headers(qa)
        for number, title, category in [
            ("SOP-001", "Hand washing", "hygiene"),
            ("SOP-002", "Trim room cleaning", "hygiene"),
            ("SOP-003", "Clone cutting", "cultivation"),
        ]:
            created = await client.post(
                f"{QMS_URL}/sops",
                json={"sop_number": number, "title": title, "category": category},
                headers=headers,
            )
            assert created.status_code == 201
            assert created.json()["data"]["status"] == "draft"
            assert created.json()["data"]["version"] == "1.0"
            if number == "SOP-002":
                sop_id = created.json()["data"]["id"]

        approved = await client.post(f"{QMS_URL}/sops/{sop_id}/approve", headers=headers)
        assert approved.status_code == 200
        assert approved.json()["data"]["status"] == "approved"
        assert approved.json()["data"]["approved_by"] == str(qa.id)
        assert approved.json()["data"]["approved_at"] is not None

        categories = await client.get(f"{QMS_URL}/sops/categories/list", headers=headers)
        assert categories.json()["data"] == ["cultivation", "hygiene"]

        # Only approved SOPs are offered per category
        hygiene = await client.get(f"{QMS_URL}/sops/category/hygiene", headers=headers)
        assert [sop["sop_number"] for sop in hygiene.json()["data"]] == ["SOP-002"]

        trainable = await client.get(f"{QMS_URL}/training/sops/list", headers=headers)
        assert trainable.json()["data"]["total"] == 1

    @pytest.mark.asyncio
    async def test_duplicate_sop_number_conflicts(self, client, users, auth_headers):
        headers = auth_headers(users["admin"])
        body = {"sop_number": "SOP-010", "title": "Waste disposal", "category": "compliance"}
        await client.post(f"{QMS_URL}/sops", json=body, headers=headers)

        response = await client.post(f"{QMS_URL}/sops", json=body, headers=headers)
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_cultivation_lead_reads_but_cannot_author(self, client, users, auth_headers):
        lead = auth_headers(users["cultivation_lead"])
        denied = await client.post(
            f"{QMS_URL}/sops",
            json={"sop_number": "SOP-020", "title": "Feeding schedule", "category": "cultivation"},
            headers=lead,
        )
        assert denied.status_code == 403

        listing = await client.get(f"{QMS_URL}/sops", headers=lead)
        assert listing.status_code == 200


class TestTraining:
    @pytest.mark.asyncio
    async def test_schedule_and_complete(self, client, users, auth_headers):
        headers = auth_headers(users["qa_manager"])
        trainee = users["grower"]

        created = await client.post(
            f"{QMS_URL}/training",
            json={"user_id": str(trainee.id), "training_type": "gmp", "title": "GMP basics"},
            headers=headers,
        )
        assert created.status_code == 201
        record = created.json()["data"]
        assert record["status"] == "scheduled"

        done = await client.post(
            f"{QMS_URL}/training/{record['id']}/complete",
            json={"score": 92.5},
            headers=headers,
        )
        assert done.status_code == 200
        assert done.json()["message"] == "Training marked as completed"
        assert done.json()["data"]["status"] == "completed"
        assert done.json()["data"]["score"] == 92.5
        assert done.json()["data"]["completion_date"] is not None

        mine = await client.get(f"{QMS_URL}/training/user/{trainee.id}", headers=headers)
        assert mine.json()["data"]["total"] == 1

    @pytest.mark.asyncio
    async def test_unknown_trainee_is_rejected(self, client, users, auth_headers):
        response = await client.post(
            f"{QMS_URL}/training",
            json={"user_id": str(uuid.uuid4()), "training_type": "gmp", "title": "GMP basics"},
            headers=auth_headers(users["qa_manager"]),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid user_id: user not found"

    @pytest.mark.asyncio
    async def test_score_out_of_range(self, client, users, auth_headers):
        headers = auth_headers(users["qa_manager"])
        created = await client.post(
            f"{QMS_URL}/training",
            json={"user_id": str(users["grower"].id), "training_type": "safety", "title": "Fire drill"},
            headers=headers,
        )

        response = await client.post(
            f"{QMS_URL}/training/{created.json()['data']['id']}/complete",
            json={"score": 120},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "score"


class TestEnvironment:
    @pytest.mark.asyncio
    async def test_readings_and_summary(self, client, users, auth_headers):
        tech = users["environmental_tech"]
        headers = auth_headers(tech)
        for room, temperature, humidity, reading_status in [
            ("Flower Room 2", 24.0, 55.0, "normal"),
            ("Flower Room 2", 27.0, 71.0, "alert"),
            ("Veg Room 1", 22.5, 60.0, "warning"),
        ]:
            created = await client.post(
                f"{QMS_URL}/environment",
                json={
                    "room_name": room,
                    "temperature": temperature,
                    "humidity": humidity,
                    "status": reading_status,
                },
                headers=headers,
            )
            assert created.status_code == 201
            assert created.json()["data"]["recorded_by"] == str(tech.id)

        flower = await client.get(f"{QMS_URL}/environment/room/flower", headers=headers)
        assert flower.json()["data"]["total"] == 2

        summary = await client.get(f"{QMS_URL}/environment/summary", headers=headers)
        assert summary.status_code == 200
        assert summary.json()["data"] == {
            "average_temperature": 24.5,
            "average_humidity": 62.0,
            "average_co2": None,
            "average_ph": None,
            "total_readings": 3,
            "alerts_count": 2,
        }

        room_summary = await client.get(
            f"{QMS_URL}/environment/summary", params={"room_name": "Veg"}, headers=headers
        )
        assert room_summary.json()["data"]["total_readings"] == 1
        assert room_summary.json()["data"]["alerts_count"] == 1

    @pytest.mark.asyncio
    async def test_humidity_out_of_range(self, client, users, auth_headers):
        response = await client.post(
            f"{QMS_URL}/environment",
            json={"room_name": "Dry Room", "humidity": 140},
            headers=auth_headers(users["environmental_tech"]),
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "humidity"

    @pytest.mark.asyncio
    async def test_environmental_tech_stays_out_of_deviations(self, client, users, auth_headers):
        response = await client.get(
            f"{QMS_URL}/deviations", headers=auth_headers(users["environmental_tech"])
        )
        assert response.status_code == 403


class TestQmsRecords:
    @pytest.mark.asyncio
    async def test_create_search_update_and_batch_lookup(self, client, users, auth_headers, make_batch):
        qa = users["qa_manager"]
        headers = auth_headers(qa)
        batch = await make_batch()

        created = await client.post(
            f"{QMS_URL}/records",
            json={
                "title": "Pre-harvest room inspection",
                "record_type": "inspection",
                "severity": "low",
                "batch_id": str(batch.id),
                "tags": ["harvest"],
            },
            headers=headers,
        )
        assert created.status_code == 201
        assert created.json()["message"] == "QMS record created successfully"
        record = created.json()["data"]
        assert record["reference_number"].startswith("QMS-")
        assert record["status"] == "open"
        assert record["created_by"] == str(qa.id)

        await client.post(
            f"{QMS_URL}/records", json={"title": "Sanitation checklist", "record_type": "checklist"}, headers=headers
        )

        found = await client.get(f"{QMS_URL}/records", params={"q": "room insp"}, headers=headers)
        assert [row["id"] for row in found.json()["data"]["records"]] == [record["id"]]

        by_number = await client.get(
            f"{QMS_URL}/records", params={"q": record["reference_number"].lower()}, headers=headers
        )
        assert by_number.json()["data"]["total"] == 1

        checklists = await client.get(f"{QMS_URL}/records", params={"record_type": "checklist"}, headers=headers)
        assert checklists.json()["data"]["total"] == 1

        updated = await client.put(
            f"{QMS_URL}/records/{record['id']}",
            json={"status": "completed", "completed_date": "2024-02-01"},
            headers=headers,
        )
        assert updated.status_code == 200
        assert updated.json()["message"] == "QMS record updated successfully"
        assert updated.json()["data"]["status"] == "completed"

        by_batch = await client.get(f"{QMS_URL}/records/batch/{batch.id}", headers=headers)
        assert [row["id"] for row in by_batch.json()["data"]] == [record["id"]]

    @pytest.mark.asyncio
    async def test_metrics_count_overdue_open_records(self, client, users, auth_headers):
        headers = auth_headers(users["cultivation_lead"])
        for title, record_type, due, status in [
            ("Late deviation review", "deviation", "2020-01-01", "open"),
            ("Closed audit finding", "audit_finding", "2020-01-01", "closed"),
            ("Future inspection", "inspection", "2999-01-01", "in_progress"),
        ]:
            response = await client.post(
                f"{QMS_URL}/records",
                json={"title": title, "record_type": record_type, "due_date": due, "status": status},
                headers=headers,
            )
            assert response.status_code == 201

        metrics = await client.get(f"{QMS_URL}/metrics", headers=headers)
        assert metrics.status_code == 200
        data = metrics.json()["data"]
        assert data["total_records"] == 3
        assert data["open_records"] == 1
        assert data["completed_records"] == 0
        assert data["overdue_records"] == 1
        assert data["records_by_type"] == {"deviation": 1, "audit_finding": 1, "inspection": 1}
        assert data["records_by_status"]["closed"] == 1
        assert data["recent_activity"][0]["title"] == "Future inspection"

    @pytest.mark.asyncio
    async def test_unknown_record_and_grower_access(self, client, users, auth_headers):
        missing = await client.get(f"{QMS_URL}/records/{uuid.uuid4()}", headers=auth_headers(users["admin"]))
        assert missing.status_code == 404
        assert missing.json()["error"] == "QMS record not found"

        denied = await client.get(f"{QMS_URL}/records", headers=auth_headers(users["grower"]))
        assert denied.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_record_type_is_400(self, client, users, auth_headers):
        response = await client.post(
            f"{QMS_URL}/records",
            json={"title": "Mystery", "record_type": "memo"},
            headers=auth_headers(users["qa_manager"]),
        )
        assert response.status_code == 400
