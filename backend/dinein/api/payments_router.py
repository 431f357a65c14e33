"""Payment callbacks and staff payment confirmation."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from dinein.api.presenters import payment_to_dict
from dinein.db.dependencies import Principal, get_current_user, get_gateway, get_sqlalchemy_session
from dinein.errors import UpstreamFailure, api_response
from dinein.services.order_ledger import get_restaurant_order
from dinein.services.order_state import authorize_restaurant_staff
from dinein.services.payments import confirm_gateway_payment, mark_cash_paid
from dinein.services.restaurants import get_restaurant_by_slug


class VerifyPaymentRequest(BaseModel):
    gatewayOrderId: str
    gatewayPaymentId: str
    signature: str


router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("/verify")
async def verify_payment(
    request: VerifyPaymentRequest,
    session: Session = Depends(get_sqlalchemy_session),
    gateway=Depends(get_gateway),
):
    """
    Gateway callback for a completed online payment.

    Safe to deliver more than once: a repeated payment id is acknowledged
    without changing anything.
    """
    if gateway is None:
        raise UpstreamFailure("Online payments are not configured for this service")
    try:
        payment, applied = confirm_gateway_payment(
            session, request.gatewayOrderId, request.gatewayPaymentId, request.signature, gateway
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    data = payment_to_dict(payment)
    data["applied"] = applied
    message = "Payment verified successfully" if applied else "Payment already verified"
    return api_response(200, data, message)


@router.post("/{slug}/{order_id}/cash")
async def confirm_cash_payment(
    slug: str,
    order_id: int,
    current_user: Principal = Depends(get_current_user),
    session: Session = Depends(get_sqlalchemy_session),
):
    """Staff confirms a cash order was paid; the order status is left as is."""
    restaurant = get_restaurant_by_slug(session, slug)
    authorize_restaurant_staff(restaurant, current_user)
    order = get_restaurant_order(session, restaurant, order_id)
    try:
        payment = mark_cash_paid(session, order, current_user.id)
        session.commit()
    except Exception:
        session.rollback()
        raise
    return api_response(200, payment_to_dict(payment), "Cash payment confirmed")
