"""Restaurant lookups and owner-side restaurant management."""

import logging
import re
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dinein.db.dependencies import Principal
from dinein.db.models import Restaurant, User
from dinein.errors import Conflict, NotFound, ValidationFailed
from dinein.services.entitlements import can_toggle_opening_status, enforce_quota

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9-]{3,8}$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def get_restaurant_by_slug(session: Session, slug: str) -> Restaurant:
    restaurant = session.query(Restaurant).filter(Restaurant.slug == slug).first()
    if restaurant is None:
        raise NotFound("Restaurant not found")
    return restaurant


def get_owned_restaurant(session: Session, slug: str, principal: Principal) -> Restaurant:
    """Restaurant by slug, only if ``principal`` owns it."""
    restaurant = session.query(Restaurant).filter(
        Restaurant.slug == slug, Restaurant.owner_id == principal.id
    ).first()
    if restaurant is None:
        raise NotFound("Restaurant not found or you are not the owner")
    return restaurant


def create_restaurant(
    session: Session,
    owner_id: int,
    restaurant_name: str,
    slug: str,
    description: Optional[str] = None,
    address: Optional[str] = None,
    categories: Optional[List[str]] = None,
    opening_time: Optional[str] = None,
    closing_time: Optional[str] = None,
) -> Restaurant:
    """Create a closed restaurant for ``owner_id`` within the plan's quota and commit."""
    restaurant_name = (restaurant_name or "").strip()
    slug = (slug or "").strip().lower()
    if not restaurant_name or not slug:
        raise ValidationFailed("Restaurant name and slug both are required")
    if not SLUG_PATTERN.match(slug):
        raise ValidationFailed("Slug must be 3-8 characters of lowercase letters, digits or hyphens")
    for value in (opening_time, closing_time):
        if value is not None and not TIME_PATTERN.match(value):
            raise ValidationFailed("Opening and closing times must use HH:MM")

    enforce_quota(session, owner_id, "restaurants", owner_id)

    if session.query(Restaurant.id).filter(Restaurant.slug == slug).first():
        raise Conflict("Restaurant with this slug already exists")

    restaurant = Restaurant(
        restaurant_name=restaurant_name,
        slug=slug,
        owner_id=owner_id,
        description=description,
        address=address,
        categories=list(dict.fromkeys(c.strip() for c in (categories or []) if c.strip())),
        opening_time=opening_time,
        closing_time=closing_time,
        is_currently_open=False,
    )
    session.add(restaurant)
    try:
        session.commit()
    except IntegrityError:
        # lost a race for the slug after the check above
        session.rollback()
        logger.warning("Slug %s was taken concurrently", slug)
        raise Conflict("Restaurant with this slug already exists")
    logger.info("Restaurant %s created by user %s", slug, owner_id)
    return restaurant


def set_opening_status(session: Session, restaurant: Restaurant, is_open: bool) -> Restaurant:
    """Open or close; opening requires the owner's subscription to be active."""
    if is_open:
        can_toggle_opening_status(session, restaurant)
    restaurant.is_currently_open = is_open
    session.commit()
    logger.info("Restaurant %s is now %s", restaurant.slug, "open" if is_open else "closed")
    return restaurant


def update_tax(
    session: Session,
    restaurant: Restaurant,
    tax_rate: float,
    tax_label: Optional[str] = None,
    is_tax_included_in_price: bool = False,
) -> Restaurant:
    if tax_rate < 0 or tax_rate > 100:
        raise ValidationFailed("Tax rate must be between 0 and 100")
    restaurant.tax_rate = tax_rate
    restaurant.tax_label = tax_label
    restaurant.is_tax_included_in_price = is_tax_included_in_price
    session.commit()
    return restaurant


def add_staff(session: Session, restaurant: Restaurant, email: str) -> User:
    """Put an existing staff account on the restaurant's roster."""
    user = session.query(User).filter(User.email == email.strip().lower()).first()
    if user is None:
        raise NotFound("User not found")
    if user.role != "staff":
        raise ValidationFailed("Only staff accounts can be added to a restaurant")
    if user in restaurant.staff:
        raise Conflict("User is already a staff member of this restaurant")
    restaurant.staff.append(user)
    session.commit()
    logger.info("User %s added to staff of %s", user.id, restaurant.slug)
    return user
