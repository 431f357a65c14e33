"""
Order API router.

Diners place orders anonymously through a table's QR slug; everything else
is for the restaurant's owner and rostered staff.
"""

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from dinein.api.presenters import hydrate_orders, order_to_dict, payment_to_dict, to_money
from dinein.db.dependencies import (
    Principal,
    get_current_user,
    get_gateway,
    get_notifier,
    get_sqlalchemy_session,
)
from dinein.db.models import DiningTable, Order
from dinein.errors import NotFound, ValidationFailed, api_response
from dinein.services.menu_resolution import CartLine, resolve_cart
from dinein.services.order_ledger import amend_order, create_order, get_restaurant_order
from dinein.services.order_state import authorize_restaurant_staff, transition
from dinein.services.restaurants import get_restaurant_by_slug

logger = logging.getLogger(__name__)


class OrderedItem(BaseModel):
    foodItemId: int
    variantName: Optional[str] = None
    quantity: Any = None


class CreateOrderRequest(BaseModel):
    orderedItems: List[OrderedItem]
    paymentMethod: str = "cash"
    notes: Optional[str] = None


class AmendOrderRequest(BaseModel):
    orderedItems: List[OrderedItem]
    notes: Optional[str] = None


class StatusRequest(BaseModel):
    status: str


SORT_COLUMNS = {
    "created_at": Order.created_at,
    "final_amount": Order.final_amount,
    "status": Order.status,
}


def _cart(items: List[OrderedItem]) -> List[CartLine]:
    return [
        CartLine(food_item_id=i.foodItemId, quantity=i.quantity, variant_name=i.variantName)
        for i in items
    ]


def _table_by_qr(session: Session, restaurant_id: int, qr_slug: str) -> DiningTable:
    table = session.query(DiningTable).filter(
        DiningTable.restaurant_id == restaurant_id, DiningTable.qr_slug == qr_slug
    ).first()
    if table is None:
        raise NotFound("Table not found")
    return table


router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("/{slug}/{qr_slug}", status_code=201)
async def create_order_endpoint(
    slug: str,
    qr_slug: str,
    request: CreateOrderRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_sqlalchemy_session),
    gateway=Depends(get_gateway),
    notifier=Depends(get_notifier),
):
    """
    Place an order from a table.

    Prices are taken from the menu, never from the request. For online
    payments the response carries the gateway order the client must pay.
    """
    restaurant = get_restaurant_by_slug(session, slug)
    table = _table_by_qr(session, restaurant.id, qr_slug)
    resolved = resolve_cart(session, restaurant.id, _cart(request.orderedItems))

    order, payment, handle = await create_order(
        session, restaurant, table, resolved, request.paymentMethod, notes=request.notes, gateway=gateway
    )

    background_tasks.add_task(
        notifier.send,
        restaurant.owner.email,
        "order_created",
        {"order_id": order.id, "table_name": table.table_name, "amount": to_money(order.final_amount)},
    )

    data = {
        "order": order_to_dict(order),
        "payment": payment_to_dict(payment),
        "gatewayOrder": handle.to_dict() if handle else None,
    }
    return api_response(201, data, "Order created successfully")


@router.get("/{slug}")
async def list_orders(
    slug: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: str = Query("created_at"),
    sort_type: str = Query("desc"),
    status: Optional[str] = Query(None),
    current_user: Principal = Depends(get_current_user),
    session: Session = Depends(get_sqlalchemy_session),
):
    """
    Paginated orders of a restaurant for its owner and staff.

    - **sort_by**: created_at, final_amount or status
    - **sort_type**: asc or desc
    """
    restaurant = get_restaurant_by_slug(session, slug)
    authorize_restaurant_staff(restaurant, current_user)
    if sort_by not in SORT_COLUMNS:
        raise ValidationFailed(f"sort_by must be one of {', '.join(SORT_COLUMNS)}")
    if sort_type not in ("asc", "desc"):
        raise ValidationFailed("sort_type must be asc or desc")

    filters = [Order.restaurant_id == restaurant.id]
    if status:
        filters.append(Order.status == status)

    total = session.execute(select(func.count(Order.id)).where(*filters)).scalar_one()
    column = SORT_COLUMNS[sort_by]
    stmt = (
        select(Order)
        .options(selectinload(Order.lines), selectinload(Order.payment_attempts))
        .where(*filters)
        .order_by(column.asc() if sort_type == "asc" else column.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    orders = session.execute(stmt).scalars().all()

    data = {
        "orders": hydrate_orders(session, restaurant, orders),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": (total + limit - 1) // limit,
        },
    }
    return api_response(200, data, "Orders fetched successfully")


@router.get("/{slug}/table/{qr_slug}")
async def get_order_by_table(
    slug: str,
    qr_slug: str,
    current_user: Principal = Depends(get_current_user),
    session: Session = Depends(get_sqlalchemy_session),
):
    """The table's active order, if any."""
    restaurant = get_restaurant_by_slug(session, slug)
    authorize_restaurant_staff(restaurant, current_user)
    table = _table_by_qr(session, restaurant.id, qr_slug)
    if not table.is_occupied or table.current_order_id is None:
        raise NotFound("No active order for this table")
    order = get_restaurant_order(session, restaurant, table.current_order_id)
    return api_response(200, hydrate_orders(session, restaurant, [order])[0], "Order fetched successfully")


@router.get("/{slug}/{order_id}")
async def get_order(slug: str, order_id: int, session: Session = Depends(get_sqlalchemy_session)):
    """Public order detail, used by the diner to follow their order."""
    restaurant = get_restaurant_by_slug(session, slug)
    order = get_restaurant_order(session, restaurant, order_id)
    return api_response(200, hydrate_orders(session, restaurant, [order])[0], "Order fetched successfully")


@router.patch("/{slug}/{order_id}")
async def amend_order_endpoint(
    slug: str,
    order_id: int,
    request: AmendOrderRequest,
    current_user: Principal = Depends(get_current_user),
    session: Session = Depends(get_sqlalchemy_session),
):
    """Replace the items of a pending, unpaid order."""
    restaurant = get_restaurant_by_slug(session, slug)
    authorize_restaurant_staff(restaurant, current_user)
    order = get_restaurant_order(session, restaurant, order_id)
    order = amend_order(session, order, _cart(request.orderedItems), notes=request.notes)
    return api_response(200, order_to_dict(order), "Order updated successfully")


@router.patch("/{slug}/{order_id}/status")
async def update_order_status(
    slug: str,
    order_id: int,
    request: StatusRequest,
    current_user: Principal = Depends(get_current_user),
    session: Session = Depends(get_sqlalchemy_session),
):
    """Advance or cancel an order; the first staff member to move it claims it."""
    restaurant = get_restaurant_by_slug(session, slug)
    authorize_restaurant_staff(restaurant, current_user)
    order = get_restaurant_order(session, restaurant, order_id)
    order = transition(session, order, request.status, current_user.id)
    return api_response(200, order_to_dict(order), "Order status updated successfully")
