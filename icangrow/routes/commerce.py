"""
iCanGrow API — Commerce Routes
================================

/api/v1/suppliers, /purchase-orders, /clients and /dispatches.
Open to any active user; lifecycle moves (approve, deliver, confirm,
archive) are PATCH sub-resources.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from icangrow.dependencies import get_current_user, get_privileged_session
from icangrow.lifecycle import (
    ClientStatus,
    DispatchStatus,
    Priority,
    PurchaseOrderStatus,
    SupplierApprovalStatus,
)
from icangrow.routes.common import API_PREFIX, ERROR_RESPONSES, Pagination, ok, paged
from icangrow.schemas.auth import CurrentUser
from icangrow.schemas.commerce import (
    ClientCreate,
    ClientResponse,
    ClientUpdate,
    DispatchCreate,
    DispatchResponse,
    PurchaseOrderCreate,
    PurchaseOrderItemResponse,
    PurchaseOrderResponse,
    PurchaseOrderUpdate,
    SupplierApprove,
    SupplierCreate,
    SupplierResponse,
    SupplierUpdate,
)
from icangrow.schemas.common import Envelope, Page
from icangrow.services.commerce_service import (
    client_service,
    dispatch_service,
    purchase_order_service,
    supplier_service,
)

router = APIRouter(prefix=API_PREFIX, responses=ERROR_RESPONSES)


# ══════════════════════════════════════════════════════════════════════════
# Suppliers
# ══════════════════════════════════════════════════════════════════════════


@router.get("/suppliers", response_model=Envelope[Page[SupplierResponse]], tags=["Suppliers"], summary="List suppliers")
async def list_suppliers(
    status_filter: Optional[str] = Query(default=None, alias="status", max_length=20),
    supplier_type: Optional[str] = Query(default=None, max_length=50),
    approval_status: Optional[SupplierApprovalStatus] = Query(default=None),
    q: Optional[str] = Query(default=None, max_length=200),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {
        "status": status_filter,
        "supplier_type": supplier_type,
        "approval_status": approval_status.value if approval_status else None,
        "q": q,
    }
    return paged(await supplier_service.list(db, filters, pagination.page, pagination.limit))


@router.post(
    "/suppliers",
    response_model=Envelope[SupplierResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["Suppliers"],
    summary="Register a supplier (pending approval)",
)
async def create_supplier(
    body: SupplierCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await supplier_service.create(db, body.model_dump(), user.id), "Supplier created successfully")


@router.get(
    "/suppliers/{supplier_id}",
    response_model=Envelope[SupplierResponse],
    tags=["Suppliers"],
    summary="Get a supplier",
)
async def get_supplier(
    supplier_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await supplier_service.get(db, supplier_id))


@router.put(
    "/suppliers/{supplier_id}",
    response_model=Envelope[SupplierResponse],
    tags=["Suppliers"],
    summary="Update a supplier",
)
async def update_supplier(
    supplier_id: uuid.UUID,
    body: SupplierUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    supplier = await supplier_service.update(db, supplier_id, body.model_dump(exclude_unset=True))
    return ok(supplier, "Supplier updated successfully")


@router.patch(
    "/suppliers/{supplier_id}/approve",
    response_model=Envelope[SupplierResponse],
    tags=["Suppliers"],
    summary="Approve or reject a supplier",
)
async def approve_supplier(
    supplier_id: uuid.UUID,
    body: SupplierApprove,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    supplier = await supplier_service.approve(db, supplier_id, body.status, user.id)
    return ok(supplier, f"Supplier {body.status} successfully")


@router.patch(
    "/suppliers/{supplier_id}/archive",
    response_model=Envelope[SupplierResponse],
    tags=["Suppliers"],
    summary="Archive a supplier",
)
async def archive_supplier(
    supplier_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await supplier_service.archive(db, supplier_id), "Supplier archived successfully")


# ══════════════════════════════════════════════════════════════════════════
# Purchase Orders
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/purchase-orders",
    response_model=Envelope[Page[PurchaseOrderResponse]],
    tags=["Purchase Orders"],
    summary="List purchase orders",
)
async def list_purchase_orders(
    status_filter: Optional[PurchaseOrderStatus] = Query(default=None, alias="status"),
    supplier_id: Optional[uuid.UUID] = Query(default=None),
    priority: Optional[Priority] = Query(default=None),
    q: Optional[str] = Query(default=None, max_length=200),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {
        "status": status_filter.value if status_filter else None,
        "supplier_id": supplier_id,
        "priority": priority.value if priority else None,
        "q": q,
    }
    return paged(await purchase_order_service.list(db, filters, pagination.page, pagination.limit))


@router.post(
    "/purchase-orders",
    response_model=Envelope[PurchaseOrderResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["Purchase Orders"],
    summary="Raise a purchase order with its line items",
)
async def create_purchase_order(
    body: PurchaseOrderCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    order = await purchase_order_service.create(db, body.model_dump(), user.id)
    return ok(order, "Purchase order created successfully")


@router.get(
    "/purchase-orders/{po_id}",
    response_model=Envelope[PurchaseOrderResponse],
    tags=["Purchase Orders"],
    summary="Get a purchase order",
)
async def get_purchase_order(
    po_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await purchase_order_service.get(db, po_id))


@router.put(
    "/purchase-orders/{po_id}",
    response_model=Envelope[PurchaseOrderResponse],
    tags=["Purchase Orders"],
    summary="Update or cancel a purchase order",
)
async def update_purchase_order(
    po_id: uuid.UUID,
    body: PurchaseOrderUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    order = await purchase_order_service.update(db, po_id, body.model_dump(exclude_unset=True))
    return ok(order, "Purchase order updated successfully")


@router.get(
    "/purchase-orders/{po_id}/items",
    response_model=Envelope[List[PurchaseOrderItemResponse]],
    tags=["Purchase Orders"],
    summary="Line items of a purchase order",
)
async def list_purchase_order_items(
    po_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await purchase_order_service.get_items(db, po_id))


@router.patch(
    "/purchase-orders/{po_id}/approve",
    response_model=Envelope[PurchaseOrderResponse],
    tags=["Purchase Orders"],
    summary="Approve a pending purchase order",
)
async def approve_purchase_order(
    po_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    order = await purchase_order_service.approve(db, po_id, user.id)
    return ok(order, "Purchase order approved successfully")


@router.patch(
    "/purchase-orders/{po_id}/deliver",
    response_model=Envelope[PurchaseOrderResponse],
    tags=["Purchase Orders"],
    summary="Mark an approved purchase order delivered",
)
async def deliver_purchase_order(
    po_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    order = await purchase_order_service.mark_delivered(db, po_id)
    return ok(order, "Purchase order marked as delivered")


# ══════════════════════════════════════════════════════════════════════════
# Clients
# ══════════════════════════════════════════════════════════════════════════


@router.get("/clients", response_model=Envelope[Page[ClientResponse]], tags=["Clients"], summary="List clients")
async def list_clients(
    status_filter: Optional[ClientStatus] = Query(default=None, alias="status"),
    client_type: Optional[str] = Query(default=None, max_length=50),
    q: Optional[str] = Query(default=None, max_length=200),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {
        "status": status_filter.value if status_filter else None,
        "client_type": client_type,
        "q": q,
    }
    return paged(await client_service.list(db, filters, pagination.page, pagination.limit))


@router.post(
    "/clients",
    response_model=Envelope[ClientResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["Clients"],
    summary="Create a client",
)
async def create_client(
    body: ClientCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await client_service.create(db, body.model_dump(), user.id), "Client created successfully")


@router.get("/clients/{client_id}", response_model=Envelope[ClientResponse], tags=["Clients"], summary="Get a client")
async def get_client(
    client_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await client_service.get(db, client_id))


@router.put("/clients/{client_id}", response_model=Envelope[ClientResponse], tags=["Clients"], summary="Update a client")
async def update_client(
    client_id: uuid.UUID,
    body: ClientUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    client = await client_service.update(db, client_id, body.model_dump(exclude_unset=True))
    return ok(client, "Client updated successfully")


@router.delete("/clients/{client_id}", response_model=Envelope[None], tags=["Clients"], summary="Delete a client")
async def delete_client(
    client_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    await client_service.delete(db, client_id)
    return ok(message="Client deleted successfully")


@router.patch(
    "/clients/{client_id}/archive",
    response_model=Envelope[ClientResponse],
    tags=["Clients"],
    summary="Archive (deactivate) a client",
)
async def archive_client(
    client_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await client_service.archive(db, client_id), "Client archived successfully")


# ══════════════════════════════════════════════════════════════════════════
# Dispatches
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/dispatches",
    response_model=Envelope[Page[DispatchResponse]],
    tags=["Dispatches"],
    summary="List dispatches",
)
async def list_dispatches(
    status_filter: Optional[DispatchStatus] = Query(default=None, alias="status"),
    client_id: Optional[uuid.UUID] = Query(default=None),
    q: Optional[str] = Query(default=None, max_length=200),
    pagination: Pagination = Depends(),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    filters = {
        "status": status_filter.value if status_filter else None,
        "client_id": client_id,
        "q": q,
    }
    return paged(await dispatch_service.list(db, filters, pagination.page, pagination.limit))


@router.post(
    "/dispatches",
    response_model=Envelope[DispatchResponse],
    status_code=status.HTTP_201_CREATED,
    tags=["Dispatches"],
    summary="Create a draft dispatch",
)
async def create_dispatch(
    body: DispatchCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    dispatch = await dispatch_service.create(db, body.model_dump(), user.id)
    return ok(dispatch, "Dispatch created successfully")


@router.get(
    "/dispatches/{dispatch_id}",
    response_model=Envelope[DispatchResponse],
    tags=["Dispatches"],
    summary="Get a dispatch",
)
async def get_dispatch(
    dispatch_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    return ok(await dispatch_service.get(db, dispatch_id))


@router.patch(
    "/dispatches/{dispatch_id}/confirm",
    response_model=Envelope[DispatchResponse],
    tags=["Dispatches"],
    summary="Confirm a draft dispatch and draw down stock",
)
async def confirm_dispatch(
    dispatch_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    dispatch = await dispatch_service.confirm(db, dispatch_id, user.id)
    return ok(dispatch, "Dispatch confirmed successfully")


@router.patch(
    "/dispatches/{dispatch_id}/deliver",
    response_model=Envelope[DispatchResponse],
    tags=["Dispatches"],
    summary="Mark a confirmed dispatch delivered",
)
async def deliver_dispatch(
    dispatch_id: uuid.UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_privileged_session),
):
    dispatch = await dispatch_service.mark_delivered(db, dispatch_id)
    return ok(dispatch, "Dispatch marked as delivered")
