import os
import sys
from datetime import timedelta
from typing import Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from dinein.db.dependencies import create_access_token, hash_password
from dinein.db.models import (
    DiningTable, FoodItem, FoodVariant, Restaurant, Subscription, User,
)
from dinein.main import create_app
from dinein.services.payments import PaymentGateway, verify_gateway_signature
from dinein.storage.sqlalchemy_adapter import SQLAlchemyStorage
from dinein.utils.time_utils import utc_now_naive


GATEWAY_SECRET = "test_gateway_secret"


class FakeGateway(PaymentGateway):
    """In-process gateway: records calls, can be told to fail."""

    name = "fakepay"
    key_id = "key_test"

    def __init__(self):
        self.calls: List[Dict] = []
        self.fail_with: Optional[Exception] = None
        self.return_no_id = False

    async def create_order(self, amount_minor, currency, receipt, notes):
        self.calls.append({"amount": amount_minor, "currency": currency, "receipt": receipt, "notes": notes})
        if self.fail_with is not None:
            raise self.fail_with
        if self.return_no_id:
            return {"status": "created"}
        return {"id": f"gw_order_{len(self.calls)}", "amount": amount_minor, "currency": currency}

    def verify_signature(self, order_id, payment_id, signature):
        return verify_gateway_signature(f"{order_id}|{payment_id}", signature, GATEWAY_SECRET)


class RecordingNotifier:
    def __init__(self):
        self.sent: List[Dict] = []

    async def send(self, to_address, template_kind, params):
        self.sent.append({"to": to_address, "kind": template_kind, "params": params})
        return {"success": True, "message": "recorded"}


class DataFactory:
    """Direct-to-database builders for test fixtures (prices in cents)."""

    def __init__(self, session):
        self.session = session
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    def owner(self, email=None, plan=None, trial_days=7, end_days=None, active=True) -> User:
        now = utc_now_naive()
        user = User(
            email=email or f"owner{self._next()}@example.com",
            password_hash=hash_password("password123"),
            role="owner",
        )
        self.session.add(user)
        self.session.flush()
        self.session.add(Subscription(
            user_id=user.id,
            plan=plan,
            is_trial=end_days is None,
            trial_expires_at=now + timedelta(days=trial_days) if end_days is None else None,
            subscription_start_date=now if end_days is not None else None,
            subscription_end_date=now + timedelta(days=end_days) if end_days is not None else None,
            is_subscription_active=active,
        ))
        self.session.commit()
        return user

    def user(self, role="staff", email=None) -> User:
        user = User(
            email=email or f"{role}{self._next()}@example.com",
            password_hash=hash_password("password123"),
            role=role,
        )
        self.session.add(user)
        self.session.commit()
        return user

    def restaurant(self, owner, slug=None, tax_rate=5, tax_included=False, is_open=True, staff=()) -> Restaurant:
        restaurant = Restaurant(
            restaurant_name="Test Restaurant",
            slug=slug or f"r{self._next()}",
            owner_id=owner.id,
            is_currently_open=is_open,
            categories=[],
            tax_rate=tax_rate,
            is_tax_included_in_price=tax_included,
        )
        restaurant.staff.extend(staff)
        self.session.add(restaurant)
        self.session.commit()
        return restaurant

    def food_item(self, restaurant, name="Pizza", price=20000, discounted_price=None, variants=(), available=True) -> FoodItem:
        item = FoodItem(
            restaurant_id=restaurant.id,
            food_name=name,
            price=price,
            discounted_price=discounted_price,
            has_variants=bool(variants),
            food_type="veg",
            tags=[],
            image_urls=[],
            is_available=available,
        )
        item.variants = [
            FoodVariant(
                variant_name=v["name"],
                price=v["price"],
                discounted_price=v.get("discounted_price"),
                is_available=v.get("available", True),
            )
            for v in variants
        ]
        self.session.add(item)
        self.session.commit()
        return item

    def table(self, restaurant, name=None, qr_slug=None) -> DiningTable:
        n = self._next()
        table = DiningTable(
            restaurant_id=restaurant.id,
            table_name=name or f"T{n}",
            qr_slug=qr_slug or f"qr-{n}",
            seat_count=4,
            is_occupied=False,
        )
        self.session.add(table)
        self.session.commit()
        return table

    def pizza_scenario(self, **owner_kwargs):
        """Restaurant with 5% tax, a Pizza (200, Large 250/220) and one free table."""
        owner = self.owner(**owner_kwargs)
        restaurant = self.restaurant(owner, tax_rate=5)
        pizza = self.food_item(
            restaurant,
            name="Pizza",
            price=20000,
            variants=[{"name": "Large", "price": 25000, "discounted_price": 22000}],
        )
        table = self.table(restaurant, name="T1", qr_slug="t1-qr")
        return owner, restaurant, pizza, table


@pytest.fixture
def storage(tmp_path):
    db_path = tmp_path / "dinein.db"
    storage = SQLAlchemyStorage(f"sqlite:///{db_path}", use_alembic=False)
    yield storage
    storage.close()


@pytest.fixture
def session(storage):
    session = storage._get_session()
    yield session
    session.close()


@pytest.fixture
def factory(session):
    return DataFactory(session)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def app(storage, gateway, notifier):
    return create_app(storage=storage, gateway=gateway, notifier=notifier)


@pytest_asyncio.fixture
async def async_client(app):
    """Create async HTTP client for testing."""
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers():
    def _headers(user) -> Dict[str, str]:
        token = create_access_token({"sub": str(user.id), "role": user.role})
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def fresh_session(storage):
    """A second, independent session on the same database."""
    sessions = []

    def _open():
        s = storage._get_session()
        sessions.append(s)
        return s

    yield _open
    for s in sessions:
        s.close()
