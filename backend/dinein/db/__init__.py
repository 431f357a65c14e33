"""
Schema bootstrap for the DineIn database.

``SQLAlchemyStorage`` calls ``init_db`` once per engine. Tests and the demo
seed script use the ``create_all`` path; deployments set ``USE_ALEMBIC=true``
so the schema follows ``backend/alembic/versions``.
"""

import logging
import os
from typing import Optional, Any
from sqlalchemy.engine import Engine

from dinein.db.models import Base

logger = logging.getLogger(__name__)

# backend/, which holds alembic.ini and the alembic/ script directory
BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def _alembic_config():
    from alembic.config import Config

    alembic_ini = os.path.join(BACKEND_DIR, "alembic.ini")
    if not os.path.exists(alembic_ini):
        raise RuntimeError(f"alembic.ini not found at {alembic_ini}")
    config = Config(alembic_ini)
    # absolute, so the app can start from any working directory
    config.set_main_option("script_location", os.path.join(BACKEND_DIR, "alembic"))
    return config


def init_db(engine: Engine, use_alembic: bool = True, base: Optional[Any] = None) -> None:
    """
    Bring the schema of ``engine`` up to date.

    With ``use_alembic`` the migration chain is upgraded to head over a
    connection borrowed from ``engine`` (``alembic/env.py`` picks it up from
    ``config.attributes``), so a SQLite file handed in by a test is migrated
    in place instead of whatever APP_DATABASE_URL points at. Otherwise the
    missing tables of ``base`` (the DineIn models by default) are created;
    existing tables and rows are left alone.

    Raises:
        RuntimeError: if alembic.ini is missing or a migration/create fails
    """
    if base is None:
        base = Base

    if not use_alembic:
        logger.info("Creating missing DineIn tables")
        try:
            base.metadata.create_all(engine)
        except Exception as e:
            raise RuntimeError(f"Failed to create database tables: {e}")
        return

    from alembic import command

    config = _alembic_config()
    try:
        with engine.begin() as connection:
            config.attributes["connection"] = connection
            command.upgrade(config, "head")
    except Exception as e:
        raise RuntimeError(f"Alembic migration failed: {e}")
    logger.info("DineIn schema migrated to head")


__all__ = ["Base", "init_db"]
