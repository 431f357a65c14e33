"""
Row -> JSON helpers shared by the routers.

Money leaves the API in decimal currency units; order reads are hydrated
with an application-level join (orders, then their tables and food items in
one batch each).
"""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from dinein.db.models import DiningTable, FoodItem, Order, Payment, Restaurant, Subscription, User
from dinein.utils.time_utils import iso


def to_cents(amount: Optional[float]) -> Optional[int]:
    """Decimal currency units -> integer minor units."""
    if amount is None:
        return None
    return int(round(amount * 100))


def to_money(cents: Optional[int]) -> Optional[float]:
    """Integer minor units -> decimal currency units."""
    if cents is None:
        return None
    return round(cents / 100, 2)


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "restaurantIds": user.restaurant_ids,
    }


def subscription_to_dict(subscription: Subscription) -> dict:
    return {
        "userId": subscription.user_id,
        "plan": subscription.plan,
        "isTrial": subscription.is_trial,
        "trialExpiresAt": iso(subscription.trial_expires_at),
        "subscriptionStartDate": iso(subscription.subscription_start_date),
        "subscriptionEndDate": iso(subscription.subscription_end_date),
        "isSubscriptionActive": subscription.is_subscription_active,
    }


def restaurant_to_dict(restaurant: Restaurant) -> dict:
    return {
        "id": restaurant.id,
        "restaurantName": restaurant.restaurant_name,
        "slug": restaurant.slug,
        "ownerId": restaurant.owner_id,
        "description": restaurant.description,
        "address": restaurant.address,
        "isCurrentlyOpen": restaurant.is_currently_open,
        "categories": restaurant.categories or [],
        "openingTime": restaurant.opening_time,
        "closingTime": restaurant.closing_time,
        "taxRate": restaurant.tax_rate,
        "taxLabel": restaurant.tax_label,
        "isTaxIncludedInPrice": restaurant.is_tax_included_in_price,
    }


def table_to_dict(table: DiningTable) -> dict:
    return {
        "id": table.id,
        "restaurantId": table.restaurant_id,
        "tableName": table.table_name,
        "qrSlug": table.qr_slug,
        "seatCount": table.seat_count,
        "isOccupied": table.is_occupied,
        "currentOrderId": table.current_order_id,
    }


def food_item_to_dict(item: FoodItem) -> dict:
    return {
        "id": item.id,
        "restaurantId": item.restaurant_id,
        "foodName": item.food_name,
        "price": to_money(item.price),
        "discountedPrice": to_money(item.discounted_price),
        "hasVariants": item.has_variants,
        "variants": [
            {
                "variantName": v.variant_name,
                "price": to_money(v.price),
                "discountedPrice": to_money(v.discounted_price),
                "description": v.description,
                "isAvailable": v.is_available,
            }
            for v in item.variants
        ],
        "category": item.category,
        "foodType": item.food_type,
        "description": item.description,
        "tags": item.tags or [],
        "imageUrls": item.image_urls or [],
        "isAvailable": item.is_available,
    }


def payment_to_dict(payment: Payment) -> dict:
    return {
        "id": payment.id,
        "orderId": payment.order_id,
        "method": payment.method,
        "status": payment.status,
        "subtotal": to_money(payment.subtotal),
        "taxAmount": to_money(payment.tax_amount),
        "discountAmount": to_money(payment.discount_amount),
        "tipAmount": to_money(payment.tip_amount),
        "totalAmount": to_money(payment.total_amount),
        "paymentGateway": payment.payment_gateway,
        "gatewayOrderId": payment.gateway_order_id,
        "gatewayPaymentId": payment.gateway_payment_id,
        "paidAt": iso(payment.paid_at),
    }


def order_to_dict(order: Order) -> dict:
    return {
        "id": order.id,
        "restaurantId": order.restaurant_id,
        "tableId": order.table_id,
        "status": order.status,
        "orderedItems": [
            {
                "foodItemId": line.food_item_id,
                "variantName": line.variant_name,
                "quantity": line.quantity,
                "price": to_money(line.price),
            }
            for line in order.lines
        ],
        "subtotal": to_money(order.subtotal),
        "discountAmount": to_money(order.discount_amount),
        "taxAmount": to_money(order.tax_amount),
        "finalAmount": to_money(order.final_amount),
        "paymentMethod": order.payment_method,
        "isPaid": order.is_paid,
        "notes": order.notes,
        "kitchenStaffId": order.kitchen_staff_id,
        "paymentAttempts": [p.id for p in order.payment_attempts],
        "createdAt": iso(order.created_at),
        "updatedAt": iso(order.updated_at),
    }


def hydrate_orders(session: Session, restaurant: Restaurant, orders: Iterable[Order]) -> List[dict]:
    """Orders with their restaurant, table and food item details attached."""
    orders = list(orders)
    table_ids = {o.table_id for o in orders}
    food_ids = {line.food_item_id for o in orders for line in o.lines}

    tables: Dict[int, DiningTable] = {}
    if table_ids:
        tables = {t.id: t for t in session.execute(
            select(DiningTable).where(DiningTable.id.in_(table_ids))
        ).scalars()}
    foods: Dict[int, FoodItem] = {}
    if food_ids:
        foods = {f.id: f for f in session.execute(
            select(FoodItem).where(FoodItem.id.in_(food_ids))
        ).scalars()}

    restaurant_info = {
        "restaurantName": restaurant.restaurant_name,
        "slug": restaurant.slug,
        "address": restaurant.address,
        "taxLabel": restaurant.tax_label,
    }

    hydrated = []
    for order in orders:
        data = order_to_dict(order)
        data["restaurant"] = restaurant_info
        table = tables.get(order.table_id)
        data["table"] = {"tableName": table.table_name, "qrSlug": table.qr_slug} if table else None
        for line in data["orderedItems"]:
            food = foods.get(line["foodItemId"])
            if food is not None:
                line["foodName"] = food.food_name
                line["foodType"] = food.food_type
                line["imageUrls"] = food.image_urls or []
        hydrated.append(data)
    return hydrated
