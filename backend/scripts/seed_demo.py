"""
Seed a demo tenant: owner, staff member, restaurant, menu and tables.

Idempotent: rows that already exist (matched by email, slug, food name or
table name) are left untouched.

Usage:
    python -m scripts.seed_demo [--database-url sqlite:///dinein.db] [--password demo1234]

Environment:
    APP_DATABASE_URL: Database connection (default: sqlite:///dinein.db)
"""

import argparse
import logging
import os
import sys
from datetime import timedelta
from typing import Dict

from sqlalchemy.orm import Session

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dinein.db.dependencies import hash_password
from dinein.db.models import (
    DiningTable, FoodItem, FoodVariant, Restaurant, Subscription, SubscriptionHistory, User,
)
from dinein.services.tables import generate_qr_slug
from dinein.storage.sqlalchemy_adapter import SQLAlchemyStorage
from dinein.utils.time_utils import utc_now_naive

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


DEMO_OWNER_EMAIL = "owner@demo.dinein"
DEMO_STAFF_EMAIL = "staff@demo.dinein"
DEMO_SLUG = "demo"

# (name, type, category, price cents, variants [(name, price, discounted)])
DEMO_MENU = [
    ("Margherita Pizza", "veg", "Pizza", 20000, [("Regular", 20000, None), ("Large", 25000, 22000)]),
    ("Chicken Tikka", "non-veg", "Starters", 18000, []),
    ("Paneer Butter Masala", "veg", "Mains", 22000, []),
    ("Masala Chai", "veg", "Drinks", 4000, []),
]
DEMO_TABLES = ["T1", "T2", "T3"]


def _get_or_create_user(session: Session, email: str, role: str, password: str, stats: Dict[str, int]) -> User:
    user = session.query(User).filter(User.email == email).first()
    if user is None:
        user = User(email=email, password_hash=hash_password(password), role=role, first_name="Demo")
        session.add(user)
        session.flush()
        stats["users_created"] += 1
    return user


def seed_demo(session: Session, password: str = "demo1234") -> Dict[str, int]:
    """
    Create the demo rows that are missing and commit.

    Returns counts of what was created.
    """
    stats = {"users_created": 0, "restaurants_created": 0, "food_items_created": 0, "tables_created": 0}
    now = utc_now_naive()

    owner = _get_or_create_user(session, DEMO_OWNER_EMAIL, "owner", password, stats)
    staff = _get_or_create_user(session, DEMO_STAFF_EMAIL, "staff", password, stats)

    if session.query(Subscription).filter(Subscription.user_id == owner.id).first() is None:
        end = now + timedelta(days=365)
        session.add(Subscription(
            user_id=owner.id, plan="pro", is_trial=False, subscription_start_date=now,
            subscription_end_date=end, is_subscription_active=True,
        ))
        session.add(SubscriptionHistory(
            user_id=owner.id, plan="pro", subscription_start_date=now, subscription_end_date=end,
        ))

    restaurant = session.query(Restaurant).filter(Restaurant.slug == DEMO_SLUG).first()
    if restaurant is None:
        restaurant = Restaurant(
            restaurant_name="DineIn Demo Kitchen",
            slug=DEMO_SLUG,
            owner_id=owner.id,
            is_currently_open=True,
            categories=sorted({category for _, _, category, _, _ in DEMO_MENU}),
            tax_rate=5,
            tax_label="GST",
        )
        session.add(restaurant)
        session.flush()
        stats["restaurants_created"] += 1
    if staff not in restaurant.staff:
        restaurant.staff.append(staff)

    for name, food_type, category, price, variants in DEMO_MENU:
        exists = session.query(FoodItem.id).filter(
            FoodItem.restaurant_id == restaurant.id, FoodItem.food_name == name
        ).first()
        if exists:
            continue
        item = FoodItem(
            restaurant_id=restaurant.id, food_name=name, price=price, food_type=food_type,
            category=category, has_variants=bool(variants), tags=[], image_urls=[],
        )
        item.variants = [
            FoodVariant(variant_name=v_name, price=v_price, discounted_price=v_discounted)
            for v_name, v_price, v_discounted in variants
        ]
        session.add(item)
        stats["food_items_created"] += 1

    for table_name in DEMO_TABLES:
        exists = session.query(DiningTable.id).filter(
            DiningTable.restaurant_id == restaurant.id, DiningTable.table_name == table_name
        ).first()
        if exists:
            continue
        session.add(DiningTable(
            restaurant_id=restaurant.id, table_name=table_name,
            qr_slug=generate_qr_slug(restaurant.id), seat_count=4,
        ))
        stats["tables_created"] += 1

    session.commit()
    return stats


def main():
    """Command-line interface for demo seeding."""
    parser = argparse.ArgumentParser(description="Seed a demo restaurant into the database idempotently")
    parser.add_argument(
        '--database-url',
        help='Database URL (default: env var APP_DATABASE_URL or sqlite:///dinein.db)',
        default=None
    )
    parser.add_argument('--password', help='Password for the demo accounts', default='demo1234')
    args = parser.parse_args()

    db_url = args.database_url or os.getenv('APP_DATABASE_URL', 'sqlite:///dinein.db')
    logger.info("Using database: %s", db_url)

    storage = SQLAlchemyStorage(db_url, use_alembic=False)
    try:
        with storage.session_scope() as session:
            stats = seed_demo(session, password=args.password)
        logger.info("Seed results: %s", stats)
        return 0
    except Exception as e:
        logger.error("Seeding failed: %s", e, exc_info=True)
        return 1
    finally:
        storage.close()


if __name__ == '__main__':
    sys.exit(main())
