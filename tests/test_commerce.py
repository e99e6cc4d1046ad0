"""
iCanGrow API — Suppliers, Purchase Orders & Clients Tests
===========================================================

What:  Tests for /api/v1/suppliers, /api/v1/purchase-orders and /api/v1/clients.

What we test:
    ✅ Supplier approval decisions; an archived supplier stays archived
    ✅ PO totals: line totals, subtotal, VAT and grand total
    ✅ PO pending → approved → delivered; delivering twice is a 409
    ✅ Client archive and delete
"""

import uuid

import pytest

SUPPLIER = {
    "name": "Coco Substrates Ltd",
    "email": "sales@coco-substrates.example.com",
    "supplier_type": "growing_media",
    "materials_supplied": ["coco coir", "perlite"],
}


async def _supplier(client, headers):
    response = await client.post("/api/v1/suppliers", json=SUPPLIER, headers=headers)
    assert response.status_code == 201
    return response.json()["data"]


class TestSuppliers:
    @pytest.mark.asyncio
    async def test_approval_and_archive(self, client, users, auth_headers):
        admin = users["admin"]
        headers = auth_headers(admin)
        supplier = await _supplier(client, headers)
        assert supplier["approval_status"] == "pending"
        assert supplier["materials_supplied"] == ["coco coir", "perlite"]

        approved = await client.patch(
            f"/api/v1/suppliers/{supplier['id']}/approve", json={"status": "approved"}, headers=headers
        )
        assert approved.json()["message"] == "Supplier approved successfully"
        assert approved.json()["data"]["approval_status"] == "approved"
        assert approved.json()["data"]["approved_by"] == str(admin.id)

        archived = await client.patch(f"/api/v1/suppliers/{supplier['id']}/archive", headers=headers)
        assert archived.json()["data"]["approval_status"] == "archived"

        response = await client.patch(
            f"/api/v1/suppliers/{supplier['id']}/approve", json={"status": "approved"}, headers=headers
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_invalid_email(self, client, users, auth_headers):
        response = await client.post(
            "/api/v1/suppliers", json={**SUPPLIER, "email": "not-an-email"}, headers=auth_headers(users["admin"])
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "email"


class TestPurchaseOrders:
    @pytest.mark.asyncio
    async def test_totals_and_lifecycle(self, client, users, auth_headers):
        headers = auth_headers(users["admin"])
        supplier = await _supplier(client, headers)

        created = await client.post(
            "/api/v1/purchase-orders",
            json={
                "supplier_id": supplier["id"],
                "vat_percentage": 15,
                "items": [
                    {"product_name": "Coco coir 50L", "qty": 10, "price_per_unit": 12.5},
                    {"product_name": "Perlite 100L", "qty": 3, "price_per_unit": 20},
                ],
            },
            headers=headers,
        )
        assert created.status_code == 201
        order = created.json()["data"]
        assert order["po_number"].startswith("PO-")
        assert order["status"] == "pending"
        assert order["subtotal"] == 185.0
        assert order["vat_amount"] == 27.75
        assert order["total_amount"] == 212.75
        assert sorted(item["total_price"] for item in order["items"]) == [60.0, 125.0]
        assert order["supplier"]["name"] == "Coco Substrates Ltd"

        early = await client.patch(f"/api/v1/purchase-orders/{order['id']}/deliver", headers=headers)
        assert early.status_code == 409

        approved = await client.patch(f"/api/v1/purchase-orders/{order['id']}/approve", headers=headers)
        assert approved.json()["data"]["status"] == "approved"
        assert approved.json()["data"]["approval_date"] is not None

        delivered = await client.patch(f"/api/v1/purchase-orders/{order['id']}/deliver", headers=headers)
        assert delivered.json()["data"]["status"] == "delivered"
        assert delivered.json()["data"]["fulfilled_at"] is not None

        items = await client.get(f"/api/v1/purchase-orders/{order['id']}/items", headers=headers)
        assert {item["status"] for item in items.json()["data"]} == {"received"}
        assert sorted(item["received_qty"] for item in items.json()["data"]) == [3.0, 10.0]

        again = await client.patch(f"/api/v1/purchase-orders/{order['id']}/deliver", headers=headers)
        assert again.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_supplier(self, client, users, auth_headers):
        response = await client.post(
            "/api/v1/purchase-orders",
            json={"supplier_id": str(uuid.uuid4()), "items": [{"product_name": "Trays", "qty": 1}]},
            headers=auth_headers(users["admin"]),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid supplier_id: supplier not found"


class TestClients:
    @pytest.mark.asyncio
    async def test_archive_and_delete(self, client, users, auth_headers):
        headers = auth_headers(users["packaging_dispatch"])
        created = await client.post(
            "/api/v1/clients",
            json={"name": "Northside Dispensary", "email": "buyer@northside.example.com", "client_type": "dispensary"},
            headers=headers,
        )
        assert created.status_code == 201
        client_id = created.json()["data"]["id"]
        assert created.json()["data"]["status"] == "active"

        archived = await client.patch(f"/api/v1/clients/{client_id}/archive", headers=headers)
        assert archived.json()["data"]["status"] == "inactive"

        deleted = await client.delete(f"/api/v1/clients/{client_id}", headers=headers)
        assert deleted.status_code == 200
        assert deleted.json()["message"] == "Client deleted successfully"

        missing = await client.get(f"/api/v1/clients/{client_id}", headers=headers)
        assert missing.status_code == 404
        assert missing.json()["error"] == "Client not found"
