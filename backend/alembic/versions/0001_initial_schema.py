"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-16 09:00:00
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("plan", sa.String(20), nullable=True),
        sa.Column("is_trial", sa.Boolean(), nullable=False),
        sa.Column("trial_expires_at", sa.DateTime(), nullable=True),
        sa.Column("subscription_start_date", sa.DateTime(), nullable=True),
        sa.Column("subscription_end_date", sa.DateTime(), nullable=True),
        sa.Column("is_subscription_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_subscriptions_id", "subscriptions", ["id"])
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"], unique=True)

    op.create_table(
        "subscription_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("plan", sa.String(20), nullable=True),
        sa.Column("is_trial", sa.Boolean(), nullable=False),
        sa.Column("trial_expires_at", sa.DateTime(), nullable=True),
        sa.Column("subscription_start_date", sa.DateTime(), nullable=True),
        sa.Column("subscription_end_date", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_subscription_history_id", "subscription_history", ["id"])
    op.create_index("ix_subscription_history_user_id", "subscription_history", ["user_id"])

    op.create_table(
        "restaurants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("restaurant_name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(8), nullable=False),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("is_currently_open", sa.Boolean(), nullable=False),
        sa.Column("categories", sa.JSON(), nullable=False),
        sa.Column("opening_time", sa.String(5), nullable=True),
        sa.Column("closing_time", sa.String(5), nullable=True),
        sa.Column("tax_rate", sa.Float(), nullable=False),
        sa.Column("tax_label", sa.String(20), nullable=True),
        sa.Column("is_tax_included_in_price", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_restaurants_id", "restaurants", ["id"])
    op.create_index("ix_restaurants_slug", "restaurants", ["slug"], unique=True)
    op.create_index("ix_restaurants_owner_id", "restaurants", ["owner_id"])

    op.create_table(
        "restaurant_staff",
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurants.id"), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), primary_key=True),
    )

    op.create_table(
        "food_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurants.id"), nullable=False),
        sa.Column("food_name", sa.String(255), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("discounted_price", sa.Integer(), nullable=True),
        sa.Column("has_variants", sa.Boolean(), nullable=False),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("food_type", sa.String(10), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("image_urls", sa.JSON(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("restaurant_id", "food_name", name="uq_food_items_restaurant_name"),
    )
    op.create_index("ix_food_items_id", "food_items", ["id"])
    op.create_index("ix_food_items_restaurant_id", "food_items", ["restaurant_id"])

    op.create_table(
        "food_variants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("food_item_id", sa.Integer(), sa.ForeignKey("food_items.id"), nullable=False),
        sa.Column("variant_name", sa.String(100), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("discounted_price", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("food_item_id", "variant_name", name="uq_food_variants_item_name"),
    )
    op.create_index("ix_food_variants_id", "food_variants", ["id"])
    op.create_index("ix_food_variants_food_item_id", "food_variants", ["food_item_id"])

    # current_order_id gets its foreign key once orders exists
    op.create_table(
        "tables",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurants.id"), nullable=False),
        sa.Column("table_name", sa.String(50), nullable=False),
        sa.Column("qr_slug", sa.String(50), nullable=False),
        sa.Column("seat_count", sa.Integer(), nullable=False),
        sa.Column("is_occupied", sa.Boolean(), nullable=False),
        sa.Column("current_order_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("restaurant_id", "qr_slug", name="uq_tables_restaurant_qr_slug"),
        sa.UniqueConstraint("restaurant_id", "table_name", name="uq_tables_restaurant_name"),
    )
    op.create_index("ix_tables_id", "tables", ["id"])
    op.create_index("ix_tables_restaurant_id", "tables", ["restaurant_id"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurants.id"), nullable=False),
        sa.Column("table_id", sa.Integer(), sa.ForeignKey("tables.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("subtotal", sa.Integer(), nullable=False),
        sa.Column("discount_amount", sa.Integer(), nullable=False),
        sa.Column("tax_amount", sa.Integer(), nullable=False),
        sa.Column("final_amount", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(10), nullable=False),
        sa.Column("is_paid", sa.Boolean(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("kitchen_staff_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_orders_id", "orders", ["id"])
    op.create_index("ix_orders_restaurant_id", "orders", ["restaurant_id"])
    op.create_index("ix_orders_table_id", "orders", ["table_id"])
    op.create_index("ix_orders_kitchen_staff_id", "orders", ["kitchen_staff_id"])
    op.create_index("ix_orders_created_at", "orders", ["created_at"])
    op.create_index("idx_orders_restaurant_status", "orders", ["restaurant_id", "status"])

    if op.get_bind().dialect.name != "sqlite":
        op.create_foreign_key("fk_tables_current_order", "tables", "orders", ["current_order_id"], ["id"])

    op.create_table(
        "order_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False),
        sa.Column("food_item_id", sa.Integer(), sa.ForeignKey("food_items.id"), nullable=False),
        sa.Column("variant_name", sa.String(100), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
    )
    op.create_index("ix_order_lines_id", "order_lines", ["id"])
    op.create_index("ix_order_lines_order_id", "order_lines", ["order_id"])
    op.create_index("ix_order_lines_food_item_id", "order_lines", ["food_item_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False),
        sa.Column("method", sa.String(10), nullable=False),
        sa.Column("status", sa.String(10), nullable=False),
        sa.Column("subtotal", sa.Integer(), nullable=False),
        sa.Column("tax_amount", sa.Integer(), nullable=False),
        sa.Column("discount_amount", sa.Integer(), nullable=False),
        sa.Column("tip_amount", sa.Integer(), nullable=False),
        sa.Column("total_amount", sa.Integer(), nullable=False),
        sa.Column("payment_gateway", sa.String(50), nullable=True),
        sa.Column("gateway_order_id", sa.String(100), nullable=True),
        sa.Column("gateway_payment_id", sa.String(100), nullable=True, unique=True),
        sa.Column("gateway_signature", sa.String(255), nullable=True),
        sa.Column("kitchen_staff_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_payments_id", "payments", ["id"])
    op.create_index("ix_payments_order_id", "payments", ["order_id"])
    op.create_index("ix_payments_gateway_order_id", "payments", ["gateway_order_id"])


def downgrade() -> None:
    op.drop_table("payments")
    op.drop_table("order_lines")
    if op.get_bind().dialect.name != "sqlite":
        op.drop_constraint("fk_tables_current_order", "tables", type_="foreignkey")
    op.drop_table("orders")
    op.drop_table("tables")
    op.drop_table("food_variants")
    op.drop_table("food_items")
    op.drop_table("restaurant_staff")
    op.drop_table("restaurants")
    op.drop_table("subscription_history")
    op.drop_table("subscriptions")
    op.drop_table("users")
