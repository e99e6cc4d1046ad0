"""
iCanGrow API — Cultivation Tests
==================================

What:  Tests for strains, growth cycles, batches and batch stages
       (/api/v1/erp/* and /api/v1/stages).
Why:   A batch must name a strain its growth cycle actually contains; the
       eBR later snapshots that strain as what was grown.

What we test:
    ✅ strain → cycle → batch, with the strain given by name
    ✅ Cycle without a primary strain → 400
    ✅ Batch with a strain outside its cycle → 400
    ✅ Batch stages run pending → active → completed and no further
"""

import pytest

ERP_URL = "/api/v1/erp"


async def _strain(client, headers, name):
    response = await client.post(f"{ERP_URL}/strains", json={"name": name, "genetics": "Sativa"}, headers=headers)
    assert response.status_code == 201
    return response.json()["data"]


async def _cycle(client, headers, strain_ids, primary=True):
    response = await client.post(
        f"{ERP_URL}/growth_cycles",
        json={
            "name": "Spring run",
            "facility_location": "Greenhouse 1",
            "start_date": "2024-03-01",
            "strains": [
                {"strain_id": strain_id, "is_primary": primary and index == 0}
                for index, strain_id in enumerate(strain_ids)
            ],
        },
        headers=headers,
    )
    return response


class TestBatchCreation:
    @pytest.mark.asyncio
    async def test_batch_resolves_strain_by_name(self, client, users, auth_headers):
        lead = auth_headers(users["cultivation_lead"])
        strain = await _strain(client, lead, "Sour Diesel")
        cycle = await _cycle(client, lead, [strain["id"]])
        assert cycle.status_code == 201
        assert cycle.json()["data"]["status"] == "planning"

        batch = await client.post(
            f"{ERP_URL}/batches",
            json={
                "name": "SD-01",
                "strain": "Sour Diesel",
                "cycle_id": cycle.json()["data"]["id"],
                "room": "Veg Room 1",
                "plant_count": 24,
            },
            headers=auth_headers(users["grower"]),
        )

        assert batch.status_code == 201
        data = batch.json()["data"]
        assert data["strain"] == "Sour Diesel"
        assert data["strain_id"] == strain["id"]
        assert data["current_stage"] == "cloning"
        assert data["status"] == "active"
        assert data["created_by"] == str(users["grower"].id)

        listing = await client.get(
            f"{ERP_URL}/batches", params={"strain": "diesel"}, headers=auth_headers(users["grower"])
        )
        assert listing.json()["data"]["total"] == 1

    @pytest.mark.asyncio
    async def test_cycle_needs_a_primary_strain(self, client, users, auth_headers):
        lead = auth_headers(users["cultivation_lead"])
        strain = await _strain(client, lead, "Northern Lights")

        response = await _cycle(client, lead, [strain["id"]], primary=False)

        assert response.status_code == 400
        assert response.json()["error"] == "At least one strain must be marked as primary"

    @pytest.mark.asyncio
    async def test_strain_outside_cycle_is_rejected(self, client, users, auth_headers):
        lead = auth_headers(users["cultivation_lead"])
        in_cycle = await _strain(client, lead, "Sour Diesel")
        await _strain(client, lead, "Gelato")
        cycle = await _cycle(client, lead, [in_cycle["id"]])

        response = await client.post(
            f"{ERP_URL}/batches",
            json={"name": "G-01", "strain": "Gelato", "cycle_id": cycle.json()["data"]["id"], "room": "Veg Room 2"},
            headers=auth_headers(users["admin"]),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "The selected strain is not part of the specified growth cycle"

    @pytest.mark.asyncio
    async def test_grower_cannot_create_strains(self, client, users, auth_headers):
        response = await client.post(
            f"{ERP_URL}/strains", json={"name": "Gelato"}, headers=auth_headers(users["grower"])
        )
        assert response.status_code == 403


class TestBatchStages:
    @pytest.mark.asyncio
    async def test_stage_lifecycle(self, client, users, auth_headers, make_batch):
        admin = auth_headers(users["admin"])
        batch = await make_batch()
        stage = await client.post(
            "/api/v1/stages",
            json={"name": "drying", "display_name": "Drying", "stage_order": 5, "default_duration_days": 10},
            headers=admin,
        )
        assert stage.status_code == 201

        attached = await client.post(
            f"/api/v1/stages/batch/{batch.id}",
            json={"stages": [{"stage_id": stage.json()["data"]["id"]}]},
            headers=admin,
        )
        assert attached.status_code == 201
        batch_stage = attached.json()["data"][0]
        assert batch_stage["status"] == "pending"
        assert batch_stage["stage"]["display_name"] == "Drying"

        url = f"/api/v1/stages/batch-stages/{batch_stage['id']}"
        early = await client.patch(f"{url}/complete", headers=admin)
        assert early.status_code == 409

        active = await client.patch(f"{url}/activate", headers=admin)
        assert active.json()["data"]["status"] == "active"
        assert active.json()["data"]["started_at"] is not None

        done = await client.patch(f"{url}/complete", headers=admin)
        assert done.json()["data"]["status"] == "completed"

        again = await client.patch(f"{url}/activate", headers=admin)
        assert again.status_code == 409
        assert again.json()["details"]["current_status"] == "completed"
