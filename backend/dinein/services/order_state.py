"""
Order status state machine.

    pending -> preparing -> ready -> served -> completed

Steps may be skipped but never reversed; ``cancelled`` is reachable from any
non-terminal status. The first staff member to move an order claims it and
is the only one who may move it again.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from dinein.db.dependencies import Principal
from dinein.db.models import DiningTable, Order, Restaurant
from dinein.errors import (
    AlreadyInState,
    Forbidden,
    InvalidTransition,
    NotClaimOwner,
    TerminalState,
    ValidationFailed,
)
from dinein.services.guards import TERMINAL_ORDER_STATUSES
from dinein.services.payments import settle_cash_payment
from dinein.utils.time_utils import utc_now_naive

logger = logging.getLogger(__name__)


STATUS_RANK = {
    "pending": 0,
    "preparing": 1,
    "ready": 2,
    "served": 3,
    "completed": 4,
}
VALID_STATUSES = tuple(STATUS_RANK) + ("cancelled",)


def authorize_restaurant_staff(restaurant: Restaurant, principal: Principal) -> None:
    """Only the restaurant's owner or a rostered staff member may act on its orders."""
    if principal.role == "owner" and restaurant.owner_id == principal.id:
        return
    if principal.role == "staff" and any(member.id == principal.id for member in restaurant.staff):
        return
    raise Forbidden("You are not authorized to manage orders of this restaurant")


def check_transition(order: Order, requested_status: str, actor_id: int) -> None:
    """Raise the first rule ``requested_status`` breaks; return None if allowed."""
    if requested_status not in VALID_STATUSES:
        raise ValidationFailed(f"Invalid order status: {requested_status}")
    if order.status == requested_status:
        raise AlreadyInState(f"Order is already {requested_status}")
    if order.kitchen_staff_id is not None and order.kitchen_staff_id != actor_id:
        raise NotClaimOwner()
    if order.status in TERMINAL_ORDER_STATUSES:
        raise TerminalState()
    if requested_status != "cancelled" and STATUS_RANK[requested_status] < STATUS_RANK[order.status]:
        raise InvalidTransition(f"Cannot move order from {order.status} back to {requested_status}")


def release_table(session: Session, order: Order) -> bool:
    """Free the order's table if it is still held by this order."""
    result = session.execute(
        update(DiningTable)
        .where(DiningTable.id == order.table_id)
        .where(DiningTable.current_order_id == order.id)
        .values(is_occupied=False, current_order_id=None)
        .execution_options(synchronize_session="fetch")
    )
    released = result.rowcount > 0
    if released:
        logger.info("Table %s released by order %s", order.table_id, order.id)
    return released


def transition(
    session: Session,
    order: Order,
    requested_status: str,
    actor_id: int,
    now: Optional[datetime] = None,
) -> Order:
    """
    Move ``order`` to ``requested_status`` on behalf of ``actor_id`` and commit.

    Order, payment and table writes are committed together; any failure
    rolls all of them back.
    """
    check_transition(order, requested_status, actor_id)
    now = now or utc_now_naive()
    previous = order.status

    try:
        order.status = requested_status
        order.kitchen_staff_id = actor_id
        order.updated_at = now
        if requested_status == "completed":
            order.is_paid = True
            settle_cash_payment(order, actor_id, now)
        if requested_status in TERMINAL_ORDER_STATUSES:
            release_table(session, order)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info("Order %s moved %s -> %s by user %s", order.id, previous, requested_status, actor_id)
    return order
