"""
Canonical relational database models for DineIn.

These models represent the full relational schema and are used by Alembic
for migration generation. Money columns are stored as integer minor units
(cents/paise) for accuracy; the API converts to decimal currency units.
"""

from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Float, JSON, ForeignKey, Index, Text,
    Table, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


USER_ROLES = ("owner", "staff", "admin")
PLANS = ("starter", "medium", "pro")
FOOD_TYPES = ("veg", "non-veg")
ORDER_STATUSES = ("pending", "preparing", "ready", "served", "completed", "cancelled")
PAYMENT_METHODS = ("cash", "online")
PAYMENT_STATUSES = ("pending", "paid", "failed")


restaurant_staff = Table(
    "restaurant_staff",
    Base.metadata,
    Column("restaurant_id", Integer, ForeignKey("restaurants.id"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id"), primary_key=True),
)


class User(Base):
    """Restaurant owners, kitchen staff and platform admins."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="owner")  # owner, staff, admin
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    subscription = relationship("Subscription", back_populates="user", uselist=False)
    owned_restaurants = relationship("Restaurant", back_populates="owner")
    staffed_restaurants = relationship(
        "Restaurant", secondary=restaurant_staff, back_populates="staff"
    )

    @property
    def restaurant_ids(self) -> list:
        if self.role == "owner":
            return [r.id for r in self.owned_restaurants]
        if self.role == "staff":
            return [r.id for r in self.staffed_restaurants]
        return []

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class Subscription(Base):
    """One subscription per user; drives every capacity-limited action."""

    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True, index=True)
    plan = Column(String(20), nullable=True)  # starter, medium, pro
    is_trial = Column(Boolean, default=True, nullable=False)
    trial_expires_at = Column(DateTime, nullable=True)
    subscription_start_date = Column(DateTime, nullable=True)
    subscription_end_date = Column(DateTime, nullable=True)
    is_subscription_active = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="subscription")

    def __repr__(self):
        return f"<Subscription(user_id={self.user_id}, plan={self.plan}, active={self.is_subscription_active})>"


class SubscriptionHistory(Base):
    """Append-only log of trials and plan grants."""

    __tablename__ = "subscription_history"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    plan = Column(String(20), nullable=True)
    is_trial = Column(Boolean, default=False, nullable=False)
    trial_expires_at = Column(DateTime, nullable=True)
    subscription_start_date = Column(DateTime, nullable=True)
    subscription_end_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Restaurant(Base):
    """A tenant: everything else is scoped under its id."""

    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True)
    restaurant_name = Column(String(255), nullable=False)
    slug = Column(String(8), unique=True, nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    description = Column(Text, nullable=True)
    address = Column(String(500), nullable=True)
    is_currently_open = Column(Boolean, default=False, nullable=False)
    categories = Column(JSON, default=list, nullable=False)
    opening_time = Column(String(5), nullable=True)  # "09:00"
    closing_time = Column(String(5), nullable=True)
    tax_rate = Column(Float, default=0, nullable=False)  # percent, e.g. 5
    tax_label = Column(String(20), nullable=True)  # GST, VAT
    is_tax_included_in_price = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    owner = relationship("User", back_populates="owned_restaurants")
    staff = relationship("User", secondary=restaurant_staff, back_populates="staffed_restaurants")

    def __repr__(self):
        return f"<Restaurant(id={self.id}, slug={self.slug})>"


class FoodItem(Base):
    """Menu entry of one restaurant, optionally sold as variants."""

    __tablename__ = "food_items"

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    food_name = Column(String(255), nullable=False)
    price = Column(Integer, nullable=False)  # cents
    discounted_price = Column(Integer, nullable=True)  # cents
    has_variants = Column(Boolean, default=False, nullable=False)
    category = Column(String(100), nullable=True)
    food_type = Column(String(10), nullable=False)  # veg, non-veg
    description = Column(Text, nullable=True)
    tags = Column(JSON, default=list, nullable=False)
    image_urls = Column(JSON, default=list, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("restaurant_id", "food_name", name="uq_food_items_restaurant_name"),
    )

    variants = relationship(
        "FoodVariant", back_populates="food_item", cascade="all, delete-orphan",
        order_by="FoodVariant.id",
    )

    def __repr__(self):
        return f"<FoodItem(id={self.id}, name={self.food_name}, price={self.price})>"


class FoodVariant(Base):
    """Size/flavour variant of a food item (at most six per item)."""

    __tablename__ = "food_variants"

    id = Column(Integer, primary_key=True, index=True)
    food_item_id = Column(Integer, ForeignKey("food_items.id"), nullable=False, index=True)
    variant_name = Column(String(100), nullable=False)
    price = Column(Integer, nullable=False)  # cents
    discounted_price = Column(Integer, nullable=True)  # cents
    description = Column(Text, nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("food_item_id", "variant_name", name="uq_food_variants_item_name"),
    )

    food_item = relationship("FoodItem", back_populates="variants")


class DiningTable(Base):
    """A physical table reached through its QR slug."""

    __tablename__ = "tables"

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    table_name = Column(String(50), nullable=False)
    qr_slug = Column(String(50), nullable=False)
    seat_count = Column(Integer, default=1, nullable=False)
    is_occupied = Column(Boolean, default=False, nullable=False)
    current_order_id = Column(
        Integer,
        ForeignKey("orders.id", use_alter=True, name="fk_tables_current_order"),
        nullable=True,
    )
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("restaurant_id", "qr_slug", name="uq_tables_restaurant_qr_slug"),
        UniqueConstraint("restaurant_id", "table_name", name="uq_tables_restaurant_name"),
    )

    def __repr__(self):
        return f"<DiningTable(id={self.id}, qr_slug={self.qr_slug}, occupied={self.is_occupied})>"


class Order(Base):
    """Diner order for a table; never deleted."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=False, index=True)
    status = Column(String(20), default="pending", nullable=False)
    subtotal = Column(Integer, nullable=False)  # cents, before tax/discount
    discount_amount = Column(Integer, default=0, nullable=False)
    tax_amount = Column(Integer, default=0, nullable=False)
    final_amount = Column(Integer, nullable=False)
    payment_method = Column(String(10), nullable=False)  # cash, online
    is_paid = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)
    kitchen_staff_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("idx_orders_restaurant_status", "restaurant_id", "status"),
    )

    table = relationship("DiningTable", foreign_keys=[table_id])
    lines = relationship(
        "OrderLine", back_populates="order", cascade="all, delete-orphan", order_by="OrderLine.id"
    )
    payment_attempts = relationship("Payment", back_populates="order", order_by="Payment.id")

    def __repr__(self):
        return f"<Order(id={self.id}, table_id={self.table_id}, status={self.status})>"


class OrderLine(Base):
    """Price snapshot of one cart line, captured when the order is placed."""

    __tablename__ = "order_lines"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    food_item_id = Column(Integer, ForeignKey("food_items.id"), nullable=False, index=True)
    variant_name = Column(String(100), nullable=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)  # unit price in cents

    order = relationship("Order", back_populates="lines")


class Payment(Base):
    """One payment attempt for an order."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    method = Column(String(10), nullable=False)  # cash, online
    status = Column(String(10), default="pending", nullable=False)  # pending, paid, failed
    subtotal = Column(Integer, nullable=False)
    tax_amount = Column(Integer, default=0, nullable=False)
    discount_amount = Column(Integer, default=0, nullable=False)
    tip_amount = Column(Integer, default=0, nullable=False)
    total_amount = Column(Integer, nullable=False)
    payment_gateway = Column(String(50), nullable=True)
    gateway_order_id = Column(String(100), nullable=True, index=True)
    gateway_payment_id = Column(String(100), nullable=True, unique=True)
    gateway_signature = Column(String(255), nullable=True)
    kitchen_staff_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    order = relationship("Order", back_populates="payment_attempts")

    def __repr__(self):
        return f"<Payment(id={self.id}, order_id={self.order_id}, method={self.method}, status={self.status})>"
