"""
iCanGrow API — Dispatch & Inventory Tests
===========================================

What:  Tests for DispatchService.confirm, InventoryService stock operations
       and the /api/v1/dispatches and /api/v1/inventory routes.
Why:   Confirming a dispatch is the only place stock leaves the building.
       Quantities must never go negative, and a failed confirmation must
       leave stock exactly as it was.
How:   A client and a packaging-stage lot with 10 units are seeded per test.

What we test:
    ✅ Confirm: available 10 − 4 → 6, reserved += 4, dispatch movement logged
    ✅ Over-dispatch clamps available at 0
    ✅ Confirming twice is a 409; nothing is drawn the second time
    ✅ A transaction that fails after confirm leaves stock untouched
    ✅ Stock adjustment floors at 0; quarantine → release round trip
"""

import uuid

import pytest
import pytest_asyncio
from sqlalchemy import select

from icangrow.exceptions import InvalidTransitionError, ValidationError
from icangrow.models.commerce import Client
from icangrow.models.inventory import InventoryLot, StockLevel, StockMovement
from icangrow.services.commerce_service import dispatch_service
from icangrow.services.inventory_service import inventory_service


@pytest_asyncio.fixture
async def stock(gateway):
    """A client plus one lot holding 10 available units."""
    async with gateway.session(privileged=True) as db:
        client = Client(name="Green Leaf Pharmacy", email="orders@greenleaf.example.com", client_type="pharmacy")
        lot = InventoryLot(
            lot_code="LOT-0001",
            product_name="Blue Dream 3.5g",
            product_type="flower",
            strain="Blue Dream",
            facility="Vault A",
            stage="packaging",
            status="available",
            quantity=10,
        )
        db.add_all([client, lot])
        await db.flush()
        db.add(StockLevel(lot_id=lot.id, facility="Vault A", available_quantity=10, reserved_quantity=0))
    return {"client": client, "lot": lot}


async def _level(gateway, lot_id) -> StockLevel:
    async with gateway.session(privileged=True) as db:
        return (await db.execute(select(StockLevel).where(StockLevel.lot_id == lot_id))).scalar_one()


async def _draft(gateway, stock, actor_id, quantity):
    async with gateway.session(privileged=True) as db:
        return await dispatch_service.create(
            db,
            {
                "client_id": stock["client"].id,
                "origin_facility": "Vault A",
                "items": [{"lot_id": stock["lot"].id, "quantity": quantity}],
            },
            actor_id,
        )


class TestDispatchConfirm:
    @pytest.mark.asyncio
    async def test_confirm_draws_stock(self, gateway, users, stock):
        actor = users["packaging_dispatch"]
        dispatch = await _draft(gateway, stock, actor.id, 4)
        assert dispatch.status == "draft"
        assert dispatch.items[0].available_at_selection == 10

        async with gateway.session(privileged=True) as db:
            confirmed = await dispatch_service.confirm(db, dispatch.id, actor.id)

        assert confirmed.status == "confirmed"
        assert confirmed.confirmed_at is not None
        level = await _level(gateway, stock["lot"].id)
        assert level.available_quantity == 6
        assert level.reserved_quantity == 4

        async with gateway.session(privileged=True) as db:
            movements = await inventory_service.stock_movements(db, stock["lot"].id)
        assert len(movements) == 1
        assert movements[0].movement_type == "dispatch"
        assert movements[0].quantity == 4
        assert movements[0].reason == "Dispatched to Green Leaf Pharmacy"
        assert movements[0].reference_id == dispatch.id

    @pytest.mark.asyncio
    async def test_over_dispatch_clamps_at_zero(self, gateway, users, stock):
        actor = users["packaging_dispatch"]
        dispatch = await _draft(gateway, stock, actor.id, 15)

        async with gateway.session(privileged=True) as db:
            await dispatch_service.confirm(db, dispatch.id, actor.id)

        level = await _level(gateway, stock["lot"].id)
        assert level.available_quantity == 0
        assert level.reserved_quantity == 15

    @pytest.mark.asyncio
    async def test_second_confirm_is_refused(self, gateway, users, stock):
        actor = users["packaging_dispatch"]
        dispatch = await _draft(gateway, stock, actor.id, 4)
        async with gateway.session(privileged=True) as db:
            await dispatch_service.confirm(db, dispatch.id, actor.id)

        with pytest.raises(InvalidTransitionError):
            async with gateway.session(privileged=True) as db:
                await dispatch_service.confirm(db, dispatch.id, actor.id)

        level = await _level(gateway, stock["lot"].id)
        assert level.available_quantity == 6

    @pytest.mark.asyncio
    async def test_failed_transaction_leaves_stock_untouched(self, gateway, users, stock):
        actor = users["packaging_dispatch"]
        dispatch = await _draft(gateway, stock, actor.id, 4)

        with pytest.raises(RuntimeError):
            async with gateway.session(privileged=True) as db:
                await dispatch_service.confirm(db, dispatch.id, actor.id)
                raise RuntimeError("carrier manifest rejected")

        level = await _level(gateway, stock["lot"].id)
        assert level.available_quantity == 10
        assert level.reserved_quantity == 0
        async with gateway.session(privileged=True) as db:
            current = await dispatch_service.get(db, dispatch.id)
            movements = (
                await db.execute(select(StockMovement).where(StockMovement.lot_id == stock["lot"].id))
            ).scalars().all()
        assert current.status == "draft"
        assert movements == []

    @pytest.mark.asyncio
    async def test_unknown_lot_is_rejected(self, gateway, users, stock):
        with pytest.raises(ValidationError):
            async with gateway.session(privileged=True) as db:
                await dispatch_service.create(
                    db,
                    {
                        "client_id": stock["client"].id,
                        "origin_facility": "Vault A",
                        "items": [{"lot_id": uuid.uuid4(), "quantity": 1}],
                    },
                    users["admin"].id,
                )


class TestDispatchApi:
    @pytest.mark.asyncio
    async def test_create_and_confirm(self, client, users, auth_headers, stock, gateway):
        headers = auth_headers(users["packaging_dispatch"])
        created = await client.post(
            "/api/v1/dispatches",
            json={
                "client_id": str(stock["client"].id),
                "origin_facility": "Vault A",
                "carrier": "Route 9 Logistics",
                "items": [{"lot_id": str(stock["lot"].id), "quantity": 3}],
            },
            headers=headers,
        )
        assert created.status_code == 201
        dispatch = created.json()["data"]
        assert dispatch["dispatch_number"].startswith("DSP-")
        assert dispatch["client"]["name"] == "Green Leaf Pharmacy"

        confirmed = await client.patch(f"/api/v1/dispatches/{dispatch['id']}/confirm", headers=headers)
        assert confirmed.status_code == 200
        assert confirmed.json()["message"] == "Dispatch confirmed successfully"
        assert confirmed.json()["data"]["status"] == "confirmed"

        again = await client.patch(f"/api/v1/dispatches/{dispatch['id']}/confirm", headers=headers)
        assert again.status_code == 409

        level = await _level(gateway, stock["lot"].id)
        assert level.available_quantity == 7

    @pytest.mark.asyncio
    async def test_empty_item_list_is_400(self, client, users, auth_headers, stock):
        response = await client.post(
            "/api/v1/dispatches",
            json={"client_id": str(stock["client"].id), "origin_facility": "Vault A", "items": []},
            headers=auth_headers(users["packaging_dispatch"]),
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "items"


class TestInventoryApi:
    @pytest.mark.asyncio
    async def test_adjust_floors_at_zero(self, client, users, auth_headers, stock):
        headers = auth_headers(users["packaging_dispatch"])
        url = f"/api/v1/inventory/lots/{stock['lot'].id}/adjust"

        response = await client.post(url, json={"quantity": -25, "reason": "Damaged in transit"}, headers=headers)

        assert response.status_code == 200
        assert response.json()["data"] == {
            "lot_id": str(stock["lot"].id),
            "previous_quantity": 10,
            "adjustment": -25,
            "new_quantity": 0,
        }

    @pytest.mark.asyncio
    async def test_quarantine_then_release(self, client, users, auth_headers, stock):
        headers = auth_headers(users["qa_manager"])
        url = f"/api/v1/inventory/lots/{stock['lot'].id}/quarantine"

        held = await client.patch(url, json={"action": "quarantine", "reason": "Failed micro test"}, headers=headers)
        assert held.status_code == 200
        assert held.json()["data"]["new_status"] == "quarantine"
        assert held.json()["message"] == "Lot placed in quarantine"

        released = await client.patch(url, json={"action": "release"}, headers=headers)
        assert released.json()["data"]["old_status"] == "quarantine"
        assert released.json()["data"]["new_status"] == "available"

        again = await client.patch(url, json={"action": "release"}, headers=headers)
        assert again.status_code == 409

        movements = await client.get(f"/api/v1/inventory/lots/{stock['lot'].id}/movements", headers=headers)
        assert [m["movement_type"] for m in movements.json()["data"]] == ["release", "quarantine"]

    @pytest.mark.asyncio
    async def test_lot_listing_and_stats(self, client, users, auth_headers, stock):
        headers = auth_headers(users["grower"])

        lots = await client.get("/api/v1/inventory/lots", params={"q": "blue"}, headers=headers)
        assert lots.json()["data"]["total"] == 1
        assert lots.json()["data"]["records"][0]["lot_code"] == "LOT-0001"

        stats = await client.get("/api/v1/inventory/stats", headers=headers)
        assert stats.status_code == 200

    @pytest.mark.asyncio
    async def test_requires_token(self, client, stock):
        response = await client.get("/api/v1/inventory/lots")
        assert response.status_code == 401
        assert response.json()["error"] == "Access token required"
