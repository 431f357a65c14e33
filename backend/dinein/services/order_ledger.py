"""
Order creation and amendment.

An order, its line snapshot, its first payment attempt and the table claim
are written in one transaction. The table is claimed with a conditional
update so two diners racing for the same table cannot both succeed.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from dinein import config
from dinein.db.models import DiningTable, Order, OrderLine, Payment, Restaurant
from dinein.errors import NotFound, OrderLocked, TableOccupied, ValidationFailed
from dinein.services.entitlements import can_accept_orders
from dinein.services.guards import ensure_mutable
from dinein.services.menu_resolution import CartLine, ResolvedLine, resolve_cart
from dinein.services.payments import (
    GatewayHandle,
    PaymentGateway,
    attach_gateway_order,
    begin_payment,
    latest_payment,
)
from dinein.utils.time_utils import utc_now_naive

logger = logging.getLogger(__name__)


@dataclass
class Totals:
    subtotal: int
    tax_amount: int
    discount_amount: int = 0
    tip_amount: int = 0

    @property
    def total_amount(self) -> int:
        return self.subtotal + self.tax_amount - self.discount_amount + self.tip_amount


def compute_totals(lines: Iterable[ResolvedLine], restaurant: Restaurant) -> Totals:
    """Subtotal and tax in minor units; tax is 0 when prices already include it."""
    subtotal = sum(line.price * line.quantity for line in lines)
    if restaurant.is_tax_included_in_price or not restaurant.tax_rate:
        tax_amount = 0
    else:
        tax_amount = int(round(subtotal * restaurant.tax_rate / 100))
    return Totals(subtotal=subtotal, tax_amount=tax_amount)


def _line_rows(lines: Iterable[ResolvedLine]) -> List[OrderLine]:
    return [
        OrderLine(
            food_item_id=line.food_item_id,
            variant_name=line.variant_name,
            quantity=line.quantity,
            price=line.price,
        )
        for line in lines
    ]


def check_order_preconditions(session: Session, restaurant: Restaurant, table: Optional[DiningTable]) -> None:
    """Checks that must pass before any order write."""
    if not restaurant.is_currently_open:
        raise ValidationFailed("Restaurant is currently closed and not accepting orders")
    if table is None or table.restaurant_id != restaurant.id:
        raise NotFound("Table not found")
    if table.is_occupied:
        raise TableOccupied()
    can_accept_orders(session, restaurant)


def _claim_table(session: Session, table: DiningTable, order: Order) -> None:
    result = session.execute(
        update(DiningTable)
        .where(DiningTable.id == table.id)
        .where(DiningTable.is_occupied.is_(False))
        .values(is_occupied=True, current_order_id=order.id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise TableOccupied()


async def create_order(
    session: Session,
    restaurant: Restaurant,
    table: DiningTable,
    resolved_lines: List[ResolvedLine],
    payment_method: str,
    notes: Optional[str] = None,
    gateway: Optional[PaymentGateway] = None,
    currency: str = config.CURRENCY,
    now: Optional[datetime] = None,
) -> Tuple[Order, Payment, Optional[GatewayHandle]]:
    """
    Place an order for ``table`` and open its first payment attempt.

    An online payment's gateway order is opened first, before any write.
    The order, the table claim and the payment are then written and
    committed with no await in between, so no write transaction is held
    open across a suspension. ``TableOccupied`` is raised when another
    order claimed the table after the precondition check (an already
    opened gateway order is then left unpaid), and ``GatewayError`` when
    the online payment could not be opened; both leave no trace in the
    database.
    """
    if payment_method not in ("cash", "online"):
        raise ValidationFailed("Payment method must be cash or online")
    if not resolved_lines:
        raise ValidationFailed("Order must contain at least one food item")

    check_order_preconditions(session, restaurant, table)

    now = now or utc_now_naive()
    totals = compute_totals(resolved_lines, restaurant)

    handle = await begin_payment(
        payment_method,
        totals.total_amount,
        gateway,
        currency,
        notes={"restaurant_id": str(restaurant.id), "table_id": str(table.id)},
    )

    try:
        order = Order(
            restaurant_id=restaurant.id,
            table_id=table.id,
            status="pending",
            subtotal=totals.subtotal,
            discount_amount=totals.discount_amount,
            tax_amount=totals.tax_amount,
            final_amount=totals.total_amount,
            payment_method=payment_method,
            is_paid=False,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        order.lines = _line_rows(resolved_lines)
        session.add(order)
        session.flush()

        _claim_table(session, table, order)

        payment = Payment(
            method=payment_method,
            status="pending",
            subtotal=totals.subtotal,
            tax_amount=totals.tax_amount,
            discount_amount=totals.discount_amount,
            tip_amount=totals.tip_amount,
            total_amount=totals.total_amount,
            created_at=now,
            updated_at=now,
        )
        attach_gateway_order(payment, handle)
        order.payment_attempts.append(payment)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(table)
    logger.info(
        "Order %s created at table %s of %s (%s, total %s)",
        order.id, table.table_name, restaurant.slug, payment_method, totals.total_amount,
    )
    return order, payment, handle


def amend_order(
    session: Session,
    order: Order,
    requested_lines: Iterable[CartLine],
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Order:
    """
    Replace the line snapshot of a pending, unpaid order and recompute totals.

    Orders with an open gateway payment are locked: the remote amount can no
    longer follow the new total.
    """
    ensure_mutable(order, "lines", "subtotal", "final_amount")
    if order.status != "pending":
        raise OrderLocked("Only pending orders can be modified")
    if order.is_paid:
        raise OrderLocked("Paid orders cannot be modified")

    payment = latest_payment(order)
    if payment is not None:
        if payment.gateway_order_id is not None:
            raise OrderLocked("Order has an online payment in progress and cannot be modified")
        ensure_mutable(payment, "subtotal", "total_amount")

    restaurant = session.get(Restaurant, order.restaurant_id)
    resolved = resolve_cart(session, order.restaurant_id, requested_lines)
    totals = compute_totals(resolved, restaurant)
    now = now or utc_now_naive()

    try:
        order.lines = _line_rows(resolved)
        order.subtotal = totals.subtotal
        order.tax_amount = totals.tax_amount
        order.discount_amount = totals.discount_amount
        order.final_amount = totals.total_amount
        if notes is not None:
            order.notes = notes
        order.updated_at = now
        if payment is not None:
            payment.subtotal = totals.subtotal
            payment.tax_amount = totals.tax_amount
            payment.discount_amount = totals.discount_amount
            payment.total_amount = totals.total_amount
            payment.updated_at = now
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info("Order %s amended (total %s)", order.id, totals.total_amount)
    return order


def get_restaurant_order(session: Session, restaurant: Restaurant, order_id: int) -> Order:
    """Order of this restaurant; ids of other tenants are reported as not found."""
    order = session.get(Order, order_id)
    if order is None or order.restaurant_id != restaurant.id:
        raise NotFound("Order not found")
    return order
