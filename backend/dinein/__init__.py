"""DineIn: multi-tenant QR table ordering backend."""

__version__ = "0.1.0"
