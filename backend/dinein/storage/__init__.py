"""Storage layer for DineIn."""

from .sqlalchemy_adapter import SQLAlchemyStorage

__all__ = ["SQLAlchemyStorage"]
