"""
Payment attempt coordination.

Cash payments are recorded without any outside call. Online payments open an
order on the payment gateway (amount in minor currency units) before the
diner's order is written, so a gateway failure leaves nothing behind and no
write transaction waits on the network. Gateway callbacks are verified with an
HMAC-SHA256 signature and applied at most once.
"""

import hashlib
import hmac
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

import httpx
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from dinein import config
from dinein.db.models import Order, Payment
from dinein.errors import Conflict, GatewayError, NotFound, OrderLocked, ValidationFailed
from dinein.services.guards import ensure_mutable
from dinein.utils.time_utils import utc_now_naive

logger = logging.getLogger(__name__)


def verify_gateway_signature(payload: str, signature: str, secret: str) -> bool:
    """Constant-time check of a hex HMAC-SHA256 ``signature`` over ``payload``."""
    if not signature or not secret:
        return False
    expected = hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


class PaymentGateway(ABC):
    """Remote payment gateway as seen by the ordering core."""

    name: str = "gateway"
    key_id: str = ""

    @abstractmethod
    async def create_order(
        self, amount_minor: int, currency: str, receipt: str, notes: Dict[str, str]
    ) -> Dict[str, Any]:
        """Create a remote order; the response carries the gateway order ``id``."""
        ...

    @abstractmethod
    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Check the signature the gateway attached to a payment callback."""
        ...


class RazorpayGateway(PaymentGateway):
    """Razorpay-style orders API over httpx."""

    name = "razorpay"

    def __init__(
        self,
        key_id: str = config.GATEWAY_KEY_ID,
        key_secret: str = config.GATEWAY_KEY_SECRET,
        base_url: str = config.GATEWAY_BASE_URL,
        timeout: float = config.GATEWAY_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.key_id = key_id
        self._key_secret = key_secret
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def create_order(
        self, amount_minor: int, currency: str, receipt: str, notes: Dict[str, str]
    ) -> Dict[str, Any]:
        response = await self._client.post(
            "/orders",
            json={"amount": amount_minor, "currency": currency, "receipt": receipt, "notes": notes},
            auth=(self.key_id, self._key_secret),
        )
        response.raise_for_status()
        return response.json()

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        return verify_gateway_signature(f"{order_id}|{payment_id}", signature, self._key_secret)

    async def aclose(self) -> None:
        await self._client.aclose()


@dataclass
class GatewayHandle:
    """What a diner's client needs to open the gateway checkout."""
    gateway: str
    gateway_order_id: str
    amount: int
    currency: str
    key_id: str

    def to_dict(self) -> dict:
        return {
            "gateway": self.gateway,
            "gatewayOrderId": self.gateway_order_id,
            "amount": self.amount,
            "currency": self.currency,
            "keyId": self.key_id,
        }


def new_receipt() -> str:
    """Gateway receipt for an order that has no database id yet."""
    return f"rcpt_{uuid.uuid4().hex[:20]}"


async def begin_payment(
    payment_method: str,
    amount: int,
    gateway: Optional[PaymentGateway],
    currency: str = config.CURRENCY,
    receipt: Optional[str] = None,
    notes: Optional[Dict[str, str]] = None,
) -> Optional[GatewayHandle]:
    """
    Open the gateway side of a payment attempt before anything is written.

    Cash: nothing to do. Online: create a gateway order for ``amount`` minor
    units and return its handle. Raises ``GatewayError`` when the request
    fails or no gateway order id comes back. No database work happens here,
    so no write transaction is held open while the gateway is awaited.
    """
    if payment_method == "cash":
        return None

    if gateway is None:
        raise GatewayError("Online payments are not configured for this service")

    receipt = receipt or new_receipt()
    try:
        remote = await gateway.create_order(amount, currency, receipt=receipt, notes=notes or {})
    except httpx.HTTPError as e:
        logger.warning("Gateway order creation failed for receipt %s: %s", receipt, e)
        raise GatewayError(f"Payment gateway request failed: {e}")

    gateway_order_id = (remote or {}).get("id")
    if not gateway_order_id:
        logger.warning("Gateway returned no order id for receipt %s", receipt)
        raise GatewayError()

    logger.info("Opened gateway order %s (receipt %s)", gateway_order_id, receipt)
    return GatewayHandle(
        gateway=gateway.name,
        gateway_order_id=gateway_order_id,
        amount=amount,
        currency=currency,
        key_id=gateway.key_id,
    )


def attach_gateway_order(payment: Payment, handle: Optional[GatewayHandle]) -> None:
    """Store the gateway order reference on a payment that has none yet."""
    if handle is None:
        return
    ensure_mutable(payment, "payment_gateway", "gateway_order_id")
    payment.payment_gateway = handle.gateway
    payment.gateway_order_id = handle.gateway_order_id


def confirm_gateway_payment(
    session: Session,
    gateway_order_id: str,
    gateway_payment_id: str,
    signature: str,
    gateway: PaymentGateway,
    now: Optional[datetime] = None,
) -> Tuple[Payment, bool]:
    """
    Apply a verified gateway callback.

    Returns ``(payment, applied)``; ``applied`` is False when the same
    gateway payment id was already recorded, so duplicate deliveries have no
    further effect. Does not commit.
    """
    if not gateway.verify_signature(gateway_order_id, gateway_payment_id, signature):
        raise ValidationFailed("Invalid payment signature")

    payment = session.execute(
        select(Payment).where(Payment.gateway_order_id == gateway_order_id)
    ).scalar_one_or_none()
    if payment is None:
        raise NotFound("Payment not found")

    if payment.status == "paid":
        if payment.gateway_payment_id == gateway_payment_id:
            return payment, False
        raise Conflict("Payment was already settled with a different gateway payment")
    if payment.status == "failed":
        raise Conflict("Payment is already marked as failed")

    taken = session.execute(
        select(Payment.id)
        .where(Payment.gateway_payment_id == gateway_payment_id)
        .where(Payment.id != payment.id)
    ).first()
    if taken:
        raise Conflict("Gateway payment id is already attached to another payment")

    now = now or utc_now_naive()
    result = session.execute(
        update(Payment)
        .where(Payment.id == payment.id)
        .where(Payment.status == "pending")
        .values(
            status="paid",
            gateway_payment_id=gateway_payment_id,
            gateway_signature=signature,
            paid_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    session.refresh(payment)
    if result.rowcount == 0:
        # A concurrent delivery settled it first
        if payment.gateway_payment_id == gateway_payment_id:
            return payment, False
        raise Conflict("Payment was already settled with a different gateway payment")

    order = session.get(Order, payment.order_id)
    order.is_paid = True
    session.flush()
    logger.info("Payment %s settled by gateway payment %s", payment.id, gateway_payment_id)
    return payment, True


def latest_payment(order: Order) -> Optional[Payment]:
    return order.payment_attempts[-1] if order.payment_attempts else None


def settle_cash_payment(order: Order, staff_id: int, now: Optional[datetime] = None) -> Optional[Payment]:
    """Mark the order's pending cash payment paid; no-op for anything else."""
    payment = latest_payment(order)
    if payment is None or payment.method != "cash" or payment.status != "pending":
        return None
    ensure_mutable(payment, "status")
    payment.status = "paid"
    payment.kitchen_staff_id = staff_id
    payment.paid_at = now or utc_now_naive()
    return payment


def mark_cash_paid(session: Session, order: Order, staff_id: int, now: Optional[datetime] = None) -> Payment:
    """
    Staff confirmation that a cash order was paid at the table.

    Idempotent: a cash payment that is already paid is returned unchanged.
    Does not commit.
    """
    if order.status == "cancelled":
        raise OrderLocked("Cancelled orders cannot be marked as paid")
    payment = latest_payment(order)
    if payment is None:
        raise NotFound("No payment found for this order")
    if payment.method != "cash":
        raise Conflict("Only cash payments can be confirmed by staff")
    if payment.status == "paid":
        return payment
    if payment.status == "failed":
        raise Conflict("Payment is already marked as failed")

    settle_cash_payment(order, staff_id, now)
    order.is_paid = True
    session.flush()
    logger.info("Cash payment %s confirmed by user %s", payment.id, staff_id)
    return payment
