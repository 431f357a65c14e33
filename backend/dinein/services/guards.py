"""Mutation guards for orders and payments, checked before every write."""

from dinein.db.models import Order, Payment
from dinein.errors import OrderLocked

TERMINAL_ORDER_STATUSES = frozenset({"completed", "cancelled"})
SETTLED_PAYMENT_STATUSES = frozenset({"paid", "failed"})

# Frozen once the order is terminal
ORDER_LOCKED_FIELDS = frozenset({
    "lines", "subtotal", "tax_amount", "discount_amount", "final_amount", "payment_method",
})

# Frozen once the payment is settled
PAYMENT_LOCKED_FIELDS = frozenset({
    "method", "status", "subtotal", "tax_amount", "discount_amount", "tip_amount", "total_amount",
})


def can_mutate(entity, field: str) -> bool:
    """Whether ``field`` of an Order or Payment may still be written."""
    if isinstance(entity, Order):
        if field in ORDER_LOCKED_FIELDS:
            return entity.status not in TERMINAL_ORDER_STATUSES
        return True
    if isinstance(entity, Payment):
        if field in PAYMENT_LOCKED_FIELDS:
            return entity.status not in SETTLED_PAYMENT_STATUSES
        if field in ("payment_gateway", "gateway_order_id"):
            return getattr(entity, field) is None
        return True
    raise TypeError(f"No mutation rules for {type(entity).__name__}")


def ensure_mutable(entity, *fields: str) -> None:
    """Raise ``OrderLocked`` naming the first field that may not change."""
    for field in fields:
        if not can_mutate(entity, field):
            kind = type(entity).__name__.lower()
            raise OrderLocked(f"Cannot modify {field} of a {entity.status} {kind}")
