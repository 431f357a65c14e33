"""
Test suite for database initialization and migrations.

Verifies that init_db builds the same schema through create_all and through
the Alembic migration chain.
"""

import pytest
from sqlalchemy import create_engine, inspect

from dinein.db import init_db, Base


EXPECTED_TABLES = {
    "users",
    "subscriptions",
    "subscription_history",
    "restaurants",
    "restaurant_staff",
    "food_items",
    "food_variants",
    "tables",
    "orders",
    "order_lines",
    "payments",
}


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'schema.db'}")
    yield engine
    engine.dispose()


class TestInitDBFallback:
    """init_db with create_all (use_alembic=False)."""

    def test_creates_all_tables(self, engine):
        init_db(engine, use_alembic=False, base=Base)
        assert EXPECTED_TABLES.issubset(set(inspect(engine).get_table_names()))

    def test_is_idempotent(self, engine):
        init_db(engine, use_alembic=False)
        init_db(engine, use_alembic=False)
        assert "orders" in inspect(engine).get_table_names()


class TestAlembicInitialization:
    """init_db running the migration chain."""

    def test_upgrade_head_creates_schema(self, engine):
        init_db(engine, use_alembic=True)
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        assert EXPECTED_TABLES.issubset(tables)
        assert "alembic_version" in tables

        order_columns = {col["name"] for col in inspector.get_columns("orders")}
        assert {"id", "restaurant_id", "table_id", "status", "is_paid", "final_amount"}.issubset(order_columns)

        table_columns = {col["name"] for col in inspector.get_columns("tables")}
        assert {"qr_slug", "is_occupied", "current_order_id"}.issubset(table_columns)

    def test_upgrade_twice_is_noop(self, engine):
        init_db(engine, use_alembic=True)
        init_db(engine, use_alembic=True)
        assert EXPECTED_TABLES.issubset(set(inspect(engine).get_table_names()))

    def test_upgrade_from_another_working_directory(self, engine, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        init_db(engine, use_alembic=True)
        assert "payments" in inspect(engine).get_table_names()
