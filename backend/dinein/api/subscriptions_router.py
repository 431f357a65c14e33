"""Subscription status and admin plan management."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from dinein.api.presenters import subscription_to_dict
from dinein.db.dependencies import (
    Principal,
    get_notifier,
    get_sqlalchemy_session,
    require_admin,
    require_owner,
)
from dinein.db.models import PLANS, Subscription, SubscriptionHistory, User
from dinein.errors import NotFound, ValidationFailed, api_response
from dinein.services.entitlements import get_subscription, reconcile_subscription
from dinein.utils.time_utils import iso, to_utc_naive, utc_now_naive

logger = logging.getLogger(__name__)


class PlanChangeRequest(BaseModel):
    plan: str
    subscriptionEndDate: Optional[datetime] = None
    durationDays: Optional[int] = None


router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


@router.get("/me")
async def get_my_subscription(
    current_user: Principal = Depends(require_owner),
    session: Session = Depends(get_sqlalchemy_session),
):
    """Current subscription; a lapsed one is marked inactive on the way."""
    subscription = get_subscription(session, current_user.id)
    if subscription is None:
        raise NotFound("No subscription found")
    state = reconcile_subscription(session, subscription)
    data = subscription_to_dict(subscription)
    data["reason"] = state.reason
    return api_response(200, data, "Subscription fetched successfully")


@router.put("/{user_id}")
async def change_plan(
    user_id: int,
    request: PlanChangeRequest,
    background_tasks: BackgroundTasks,
    current_user: Principal = Depends(require_admin),
    session: Session = Depends(get_sqlalchemy_session),
    notifier=Depends(get_notifier),
):
    """
    Grant ``plan`` to an owner until ``subscriptionEndDate`` (or for
    ``durationDays``, default 30). The grant is appended to the history.
    """
    if request.plan not in PLANS:
        raise ValidationFailed(f"Plan must be one of {', '.join(PLANS)}")
    user = session.get(User, user_id)
    if user is None or user.role != "owner":
        raise NotFound("Owner not found")

    now = utc_now_naive()
    if request.subscriptionEndDate is not None:
        end_date = to_utc_naive(request.subscriptionEndDate)
    else:
        end_date = now + timedelta(days=request.durationDays or 30)
    if end_date <= now:
        raise ValidationFailed("Subscription end date must be in the future")

    try:
        subscription = get_subscription(session, user_id)
        if subscription is None:
            subscription = Subscription(user_id=user_id, created_at=now)
            session.add(subscription)
        subscription.plan = request.plan
        subscription.is_trial = False
        subscription.subscription_start_date = now
        subscription.subscription_end_date = end_date
        subscription.is_subscription_active = True
        subscription.updated_at = now
        session.add(SubscriptionHistory(
            user_id=user_id,
            plan=request.plan,
            is_trial=False,
            subscription_start_date=now,
            subscription_end_date=end_date,
            created_at=now,
        ))
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info("Admin %s set plan of user %s to %s until %s", current_user.id, user_id, request.plan, end_date)
    background_tasks.add_task(
        notifier.send,
        user.email,
        "subscription_changed",
        {"plan": request.plan, "subscription_end_date": iso(end_date)},
    )
    return api_response(200, subscription_to_dict(subscription), "Subscription updated successfully")
