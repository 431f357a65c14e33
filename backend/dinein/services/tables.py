"""Table creation with collision-retried QR slugs."""

import logging
import secrets
import string
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dinein import config
from dinein.db.models import DiningTable, Restaurant
from dinein.errors import Conflict
from dinein.services.entitlements import enforce_quota

logger = logging.getLogger(__name__)

_SLUG_ALPHABET = string.ascii_lowercase + string.digits


def generate_qr_slug(restaurant_id: int) -> str:
    """``<last 4 of the restaurant id>-<4 random chars>``, e.g. ``0012-x7k2``."""
    suffix = "".join(secrets.choice(_SLUG_ALPHABET) for _ in range(4))
    return f"{str(restaurant_id).zfill(4)[-4:]}-{suffix}"


def create_table(
    session: Session,
    restaurant: Restaurant,
    owner_id: int,
    table_name: str,
    seat_count: int = 1,
    slug_factory: Optional[Callable[[int], str]] = None,
) -> DiningTable:
    """
    Create a table under ``restaurant`` and commit.

    Each attempt is its own transaction; a unique violation on the QR slug
    rolls back just that attempt. After ``QR_SLUG_MAX_ATTEMPTS`` collisions a
    retryable ``Conflict`` is raised.
    """
    enforce_quota(session, owner_id, "tables", restaurant.id)

    name_taken = session.query(DiningTable.id).filter(
        DiningTable.restaurant_id == restaurant.id,
        DiningTable.table_name == table_name,
    ).first()
    if name_taken:
        raise Conflict(f"Table {table_name} already exists in this restaurant")

    slug_factory = slug_factory or generate_qr_slug
    for attempt in range(1, config.QR_SLUG_MAX_ATTEMPTS + 1):
        table = DiningTable(
            restaurant_id=restaurant.id,
            table_name=table_name,
            qr_slug=slug_factory(restaurant.id),
            seat_count=seat_count,
            is_occupied=False,
        )
        session.add(table)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            logger.warning("QR slug collision for restaurant %s (attempt %s)", restaurant.slug, attempt)
            continue
        logger.info("Table %s created for %s with QR slug %s", table_name, restaurant.slug, table.qr_slug)
        return table

    raise Conflict("Failed to generate a unique QR code for the table, please try again")
