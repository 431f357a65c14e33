"""
Subscription entitlement checks.

Capacity-limited actions (creating restaurants, tables and food items, and
accepting diner orders) are gated on the acting owner's subscription. A
subscription's ``is_subscription_active`` flag is derived from its dates;
when a lapsed subscription is observed the flag is flipped to ``False`` and
committed on the spot ("lazy reconciliation"), independently of whatever the
calling request goes on to do.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from dinein import config
from dinein.db.models import DiningTable, FoodItem, Restaurant, Subscription
from dinein.errors import QuotaExceeded, SubscriptionInactive
from dinein.utils.time_utils import utc_now_naive

logger = logging.getLogger(__name__)


RESOURCE_KINDS = ("restaurants", "tables", "food_items")

_RESOURCE_LABELS = {
    "restaurants": "restaurants",
    "tables": "tables per restaurant",
    "food_items": "food items per restaurant",
}

_OWNER_MESSAGES = {
    "missing": "No active subscription found. Please subscribe to continue using the service",
    "inactive": "No active subscription found. Please subscribe to continue using the service",
    "expired": "Your subscription has expired. Please renew to continue using the service",
    "trial_expired": "Your trial period has expired. Please subscribe to continue using the service",
    "not_started": "Your subscription is not active. Please subscribe to continue using the service",
}

_RESTAURANT_MESSAGES = {
    "missing": (
        "This restaurant does not have an active subscription. We cannot process your order "
        "at this time. Please contact the restaurant owner for more information"
    ),
    "inactive": (
        "This restaurant does not have an active subscription. We cannot process your order "
        "at this time. Please contact the restaurant owner for more information"
    ),
    "expired": "This restaurant's subscription has expired. Please contact the restaurant owner to renew the subscription",
    "trial_expired": "This restaurant's trial period has expired. Please contact the restaurant owner to subscribe",
    "not_started": "This restaurant's subscription is not active. Please contact the restaurant owner to subscribe",
}


@dataclass(frozen=True)
class SubscriptionState:
    active: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class Allow:
    limit: Optional[int]


@dataclass(frozen=True)
class Deny:
    reason: str
    message: str


QuotaDecision = Union[Allow, Deny]


def derive_active(subscription: Subscription, now: datetime) -> bool:
    """True while the trial or the paid period is still running."""
    if subscription.is_trial and subscription.trial_expires_at and subscription.trial_expires_at > now:
        return True
    if subscription.subscription_end_date and subscription.subscription_end_date > now:
        return True
    return False


def _lapse_reason(subscription: Subscription, now: datetime) -> str:
    if subscription.subscription_end_date and subscription.subscription_end_date <= now:
        return "expired"
    if subscription.is_trial and subscription.trial_expires_at and subscription.trial_expires_at <= now:
        return "trial_expired"
    return "not_started"


def _commit_reconciliation(session: Session) -> None:
    """Commit a self-healing write; a failure here never changes the outcome."""
    try:
        session.commit()
    except Exception:
        logger.exception("Failed to persist subscription reconciliation")
        session.rollback()


def reconcile_subscription(
    session: Session,
    subscription: Optional[Subscription],
    now: Optional[datetime] = None,
) -> SubscriptionState:
    """
    Recompute whether ``subscription`` is active and persist a lapse.

    Only a stored ``True`` that is no longer backed by the dates is written
    (as ``False``); calling this twice on the same lapsed subscription writes
    once.
    """
    now = now or utc_now_naive()
    if subscription is None:
        return SubscriptionState(False, "missing")
    if not subscription.is_subscription_active:
        return SubscriptionState(False, "inactive")
    if derive_active(subscription, now):
        return SubscriptionState(True)

    reason = _lapse_reason(subscription, now)
    subscription.is_subscription_active = False
    _commit_reconciliation(session)
    logger.info("Subscription of user %s deactivated (%s)", subscription.user_id, reason)
    return SubscriptionState(False, reason)


def get_subscription(session: Session, user_id: int) -> Optional[Subscription]:
    return session.execute(
        select(Subscription).where(Subscription.user_id == user_id)
    ).scalar_one_or_none()


def ensure_active_subscription(
    session: Session,
    user_id: int,
    now: Optional[datetime] = None,
) -> Subscription:
    """Return the caller's active subscription or raise ``SubscriptionInactive``."""
    subscription = get_subscription(session, user_id)
    state = reconcile_subscription(session, subscription, now)
    if not state.active:
        logger.warning("Denied user %s: subscription %s", user_id, state.reason)
        raise SubscriptionInactive(_OWNER_MESSAGES[state.reason])
    return subscription


def plan_limit(plan: Optional[str], resource_kind: str) -> Optional[int]:
    """Capacity of ``resource_kind`` for ``plan``; trials without a plan get starter limits."""
    if resource_kind not in RESOURCE_KINDS:
        raise ValueError(f"Unknown resource kind: {resource_kind}")
    limits = config.PLAN_LIMITS.get(plan or "starter", config.PLAN_LIMITS["starter"])
    return limits[resource_kind]


def check_quota(
    subscription: Optional[Subscription],
    resource_kind: str,
    current_count: int,
) -> QuotaDecision:
    """Pure quota decision for creating one more ``resource_kind``."""
    if subscription is None:
        return Deny("missing", _OWNER_MESSAGES["missing"])
    if not subscription.is_subscription_active:
        return Deny("inactive", _OWNER_MESSAGES["inactive"])

    limit = plan_limit(subscription.plan, resource_kind)
    if limit is not None and current_count >= limit:
        return Deny(
            "quota_exceeded",
            f"Your plan allows to create max {limit} {_RESOURCE_LABELS[resource_kind]}",
        )
    return Allow(limit)


def count_resources(session: Session, resource_kind: str, scope_id: int) -> int:
    """Current count: restaurants per owner id, tables/food items per restaurant id."""
    if resource_kind == "restaurants":
        stmt = select(func.count(Restaurant.id)).where(Restaurant.owner_id == scope_id)
    elif resource_kind == "tables":
        stmt = select(func.count(DiningTable.id)).where(DiningTable.restaurant_id == scope_id)
    elif resource_kind == "food_items":
        stmt = select(func.count(FoodItem.id)).where(FoodItem.restaurant_id == scope_id)
    else:
        raise ValueError(f"Unknown resource kind: {resource_kind}")
    return session.execute(stmt).scalar_one()


def enforce_quota(
    session: Session,
    owner_id: int,
    resource_kind: str,
    scope_id: int,
    now: Optional[datetime] = None,
) -> Subscription:
    """Active-subscription check followed by the plan quota; raises on deny."""
    subscription = ensure_active_subscription(session, owner_id, now)
    decision = check_quota(subscription, resource_kind, count_resources(session, resource_kind, scope_id))
    if isinstance(decision, Deny):
        logger.warning("Quota denied for user %s on %s: %s", owner_id, resource_kind, decision.message)
        raise QuotaExceeded(decision.message)
    return subscription


def _close_restaurant_and_deny(session: Session, restaurant: Restaurant, reason: str, message: str):
    if restaurant.is_currently_open:
        restaurant.is_currently_open = False
        _commit_reconciliation(session)
        logger.info("Restaurant %s force-closed (owner subscription %s)", restaurant.slug, reason)
    raise SubscriptionInactive(message)


def can_accept_orders(
    session: Session,
    restaurant: Restaurant,
    now: Optional[datetime] = None,
) -> Subscription:
    """
    Check that the restaurant owner's subscription allows taking orders.

    On failure the restaurant is force-closed before the denial is raised.
    """
    subscription = get_subscription(session, restaurant.owner_id)
    state = reconcile_subscription(session, subscription, now)
    if not state.active:
        _close_restaurant_and_deny(session, restaurant, state.reason, _RESTAURANT_MESSAGES[state.reason])
    return subscription


def can_toggle_opening_status(
    session: Session,
    restaurant: Restaurant,
    now: Optional[datetime] = None,
) -> Subscription:
    """Same gate as ``can_accept_orders`` worded for the owner opening the restaurant."""
    subscription = get_subscription(session, restaurant.owner_id)
    state = reconcile_subscription(session, subscription, now)
    if not state.active:
        _close_restaurant_and_deny(session, restaurant, state.reason, _OWNER_MESSAGES[state.reason])
    return subscription
