"""
iCanGrow API — Suppliers, Purchasing, Clients & Dispatch
==========================================================

What:  Record services for the supply side (suppliers, purchase orders) and
       the sales side (clients, dispatches).

Dispatch Confirmation:
    One transaction (the request session) covers the whole confirm:

        dispatch FOR UPDATE ─▶ check draft → confirmed
            for each item:
                stock_levels row FOR UPDATE
                available = max(0, available - quantity)
                reserved  = reserved + quantity
                INSERT stock_movements (dispatch)

    Any failure rolls back every stock and movement write, so a dispatch is
    either fully confirmed or untouched. FOR UPDATE is dropped by SQLite.
"""

import logging
import uuid
from datetime import date
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.exceptions import ValidationError
from icangrow.lifecycle import (
    DISPATCH_TRANSITIONS,
    PURCHASE_ORDER_TRANSITIONS,
    SUPPLIER_APPROVAL_TRANSITIONS,
    ClientStatus,
    DispatchStatus,
    PurchaseOrderStatus,
    SupplierApprovalStatus,
)
from icangrow.models.commerce import (
    Client,
    Dispatch,
    DispatchItem,
    PurchaseOrder,
    PurchaseOrderItem,
    Supplier,
)
from icangrow.models.inventory import InventoryLot, StockLevel, StockMovement
from icangrow.models.mixins import utcnow
from icangrow.services.base import RecordService, reference_number, store_errors

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Suppliers
# ══════════════════════════════════════════════════════════════════════════


class SupplierService(RecordService[Supplier]):
    model = Supplier
    resource = "Supplier"
    plural = "suppliers"

    creatable = frozenset({
        "name", "email", "phone", "contact_person", "address", "supplier_type",
        "license_number", "materials_supplied", "payment_terms", "certification_expiry",
        "quality_rating", "delivery_rating", "notes",
    })
    updatable = creatable | {"status"}
    filters = {
        "status": "status",
        "supplier_type": "supplier_type",
        "approval_status": "approval_status",
    }
    search_columns = ("name", "email", "contact_person")

    async def _set_approval(self, db: AsyncSession, supplier_id: uuid.UUID, target: SupplierApprovalStatus) -> Supplier:
        supplier = await self.get(db, supplier_id)
        SUPPLIER_APPROVAL_TRANSITIONS.check(supplier.approval_status, target)
        supplier.approval_status = target.value
        return supplier

    async def approve(
        self, db: AsyncSession, supplier_id: uuid.UUID, status: str, approver_id: uuid.UUID
    ) -> Supplier:
        """Record an approval decision; `status` is "approved" or "rejected"."""
        supplier = await self._set_approval(db, supplier_id, SupplierApprovalStatus(status))
        supplier.approved_by = approver_id
        supplier.approval_date = date.today()
        with store_errors("update supplier approval"):
            await db.flush()
        logger.info("Supplier %s %s by %s", supplier_id, status, approver_id)
        return await self.get(db, supplier_id)

    async def archive(self, db: AsyncSession, supplier_id: uuid.UUID) -> Supplier:
        await self._set_approval(db, supplier_id, SupplierApprovalStatus.ARCHIVED)
        with store_errors("archive supplier"):
            await db.flush()
        return await self.get(db, supplier_id)


# ══════════════════════════════════════════════════════════════════════════
# Purchase Orders
# ══════════════════════════════════════════════════════════════════════════


class PurchaseOrderService(RecordService[PurchaseOrder]):
    model = PurchaseOrder
    resource = "Purchase order"
    plural = "purchase orders"

    updatable = frozenset({
        "priority", "expected_delivery_date", "delivery_address",
        "delivery_instructions", "payment_terms", "notes", "status",
    })
    filters = {"status": "status", "supplier_id": "supplier_id", "priority": "priority"}
    search_columns = ("po_number",)
    transitions = PURCHASE_ORDER_TRANSITIONS

    async def create(self, db, data, actor_id=None):
        """
        Insert the order and its line items; totals are computed here:

            total_price  = qty × price_per_unit (per item)
            subtotal     = Σ total_price
            vat_amount   = subtotal × vat_percentage / 100
            total_amount = subtotal + vat_amount
        """
        if not await supplier_service.exists(db, data["supplier_id"]):
            raise ValidationError("Invalid supplier_id: supplier not found", field="supplier_id")

        items = [
            PurchaseOrderItem(
                product_name=item["product_name"],
                qty=item["qty"],
                price_per_unit=item.get("price_per_unit") or 0,
                total_price=round(item["qty"] * (item.get("price_per_unit") or 0), 2),
            )
            for item in data["items"]
        ]
        subtotal = round(sum(item.total_price for item in items), 2)
        vat_percentage = data.get("vat_percentage") or 0
        vat_amount = round(subtotal * vat_percentage / 100, 2)

        order = PurchaseOrder(
            po_number=reference_number("PO"),
            supplier_id=data["supplier_id"],
            status=PurchaseOrderStatus.PENDING.value,
            priority=data.get("priority") or "medium",
            expected_delivery_date=data.get("expected_delivery_date"),
            delivery_address=data.get("delivery_address"),
            delivery_instructions=data.get("delivery_instructions"),
            payment_terms=data.get("payment_terms"),
            subtotal=subtotal,
            vat_percentage=vat_percentage,
            vat_amount=vat_amount,
            total_amount=round(subtotal + vat_amount, 2),
            notes=data.get("notes"),
            created_by=actor_id,
        )
        with store_errors("create purchase order"):
            db.add(order)
            await db.flush()
            for item in items:
                item.po_id = order.id
            db.add_all(items)
            await db.flush()
        logger.info("Purchase order %s created with %d items", order.po_number, len(items))
        return await self.get(db, order.id)

    async def get_items(self, db: AsyncSession, po_id: uuid.UUID) -> List[PurchaseOrderItem]:
        order = await self.get(db, po_id)
        return list(order.items)

    async def approve(self, db: AsyncSession, po_id: uuid.UUID, approver_id: uuid.UUID) -> PurchaseOrder:
        order = await self.get(db, po_id)
        self.transition(order, PurchaseOrderStatus.APPROVED)
        order.approved_by = approver_id
        order.approval_date = utcnow()
        with store_errors("approve purchase order"):
            await db.flush()
        logger.info("Purchase order %s approved by %s", order.po_number, approver_id)
        return await self.get(db, po_id)

    async def mark_delivered(self, db: AsyncSession, po_id: uuid.UUID) -> PurchaseOrder:
        order = await self.get(db, po_id)
        self.transition(order, PurchaseOrderStatus.DELIVERED)
        order.fulfilled_at = utcnow()
        for item in order.items:
            item.status = "received"
            if item.received_qty is None:
                item.received_qty = item.qty
        with store_errors("mark purchase order delivered"):
            await db.flush()
        return await self.get(db, po_id)


# ══════════════════════════════════════════════════════════════════════════
# Clients
# ══════════════════════════════════════════════════════════════════════════


class ClientService(RecordService[Client]):
    model = Client
    resource = "Client"
    plural = "clients"

    creatable = frozenset({
        "name", "email", "company", "phone", "address", "client_type",
        "license_number", "status", "notes",
    })
    updatable = creatable
    filters = {"status": "status", "client_type": "client_type"}
    search_columns = ("name", "email", "license_number")

    async def archive(self, db: AsyncSession, client_id: uuid.UUID) -> Client:
        client = await self.get(db, client_id)
        client.status = ClientStatus.INACTIVE.value
        with store_errors("archive client"):
            await db.flush()
        return await self.get(db, client_id)


# ══════════════════════════════════════════════════════════════════════════
# Dispatches
# ══════════════════════════════════════════════════════════════════════════


class DispatchService(RecordService[Dispatch]):
    model = Dispatch
    resource = "Dispatch"
    plural = "dispatches"

    filters = {"status": "status", "client_id": "client_id"}
    search_columns = ("dispatch_number", "carrier", "driver_name")
    transitions = DISPATCH_TRANSITIONS

    async def create(self, db, data, actor_id=None):
        """
        Create a draft dispatch. Each item records the lot's available stock at
        the time it was picked (available_at_selection).

        Raises:
            ValidationError: unknown client or lot
        """
        if not await client_service.exists(db, data["client_id"]):
            raise ValidationError("Invalid client_id: client not found", field="client_id")

        lot_ids = {item["lot_id"] for item in data["items"]}
        with store_errors("fetch dispatch lots"):
            lots = {
                lot.id: lot
                for lot in (
                    await db.execute(select(InventoryLot).where(InventoryLot.id.in_(lot_ids)))
                ).scalars()
            }
        missing = lot_ids - set(lots)
        if missing:
            raise ValidationError(
                "One or more inventory lots were not found",
                field="items",
                context={"lot_ids": sorted(str(lot_id) for lot_id in missing)},
            )

        dispatch = Dispatch(
            dispatch_number=reference_number("DSP"),
            client_id=data["client_id"],
            status=DispatchStatus.DRAFT.value,
            origin_facility=data["origin_facility"],
            carrier=data.get("carrier"),
            driver_name=data.get("driver_name"),
            license_plate=data.get("license_plate"),
            vehicle_info=data.get("vehicle_info"),
            notes=data.get("notes"),
            created_by=actor_id,
        )
        with store_errors("create dispatch"):
            db.add(dispatch)
            await db.flush()
            for item in data["items"]:
                lot = lots[item["lot_id"]]
                level = lot.stock_level
                db.add(
                    DispatchItem(
                        dispatch_id=dispatch.id,
                        lot_id=lot.id,
                        quantity=item["quantity"],
                        unit_of_measure="units",
                        available_at_selection=level.available_quantity if level else 0,
                    )
                )
            await db.flush()
        logger.info("Dispatch %s created with %d items", dispatch.dispatch_number, len(data["items"]))
        return await self.get(db, dispatch.id)

    async def confirm(self, db: AsyncSession, dispatch_id: uuid.UUID, actor_id: uuid.UUID) -> Dispatch:
        """
        Confirm a draft dispatch and draw its items out of stock atomically.

        Raises:
            InvalidTransitionError: the dispatch is not a draft
        """
        dispatch = await self.get(db, dispatch_id, for_update=True)
        self.transition(dispatch, DispatchStatus.CONFIRMED)
        dispatch.confirmed_at = utcnow()

        client = dispatch.client
        recipient = (client.company or client.name) if client else None
        reason = f"Dispatched to {recipient or 'Unknown Client'}"

        with store_errors("confirm dispatch"):
            for item in dispatch.items:
                level = (
                    await db.execute(
                        select(StockLevel).where(StockLevel.lot_id == item.lot_id).with_for_update()
                    )
                ).scalar_one_or_none()
                if level is not None:
                    level.available_quantity = max(0, level.available_quantity - item.quantity)
                    level.reserved_quantity = (level.reserved_quantity or 0) + item.quantity
                db.add(
                    StockMovement(
                        lot_id=item.lot_id,
                        movement_type="dispatch",
                        quantity=item.quantity,
                        unit_of_measure=item.unit_of_measure,
                        from_facility=dispatch.origin_facility,
                        reason=reason,
                        reference_type="dispatch",
                        reference_id=dispatch.id,
                        performed_by=actor_id,
                    )
                )
            await db.flush()

        logger.info("Dispatch %s confirmed (%d items)", dispatch.dispatch_number, len(dispatch.items))
        return await self.get(db, dispatch_id)

    async def mark_delivered(self, db: AsyncSession, dispatch_id: uuid.UUID) -> Dispatch:
        dispatch = await self.get(db, dispatch_id)
        self.transition(dispatch, DispatchStatus.DELIVERED)
        dispatch.delivered_at = utcnow()
        with store_errors("mark dispatch delivered"):
            await db.flush()
        return await self.get(db, dispatch_id)


supplier_service = SupplierService()
purchase_order_service = PurchaseOrderService()
client_service = ClientService()
dispatch_service = DispatchService()
