"""Environment-backed configuration for the DineIn backend."""

import logging
import os


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


ENVIRONMENT = os.getenv("ENVIRONMENT", "dev").lower()
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("APP_DATABASE_URL", "sqlite:///dinein.db")
USE_ALEMBIC = _env_bool("USE_ALEMBIC")

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480"))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Payment gateway (Razorpay-style orders API)
GATEWAY_NAME = os.getenv("GATEWAY_NAME", "razorpay")
GATEWAY_BASE_URL = os.getenv("GATEWAY_BASE_URL", "https://api.razorpay.com/v1")
GATEWAY_KEY_ID = os.getenv("GATEWAY_KEY_ID", "")
GATEWAY_KEY_SECRET = os.getenv("GATEWAY_KEY_SECRET", "")
GATEWAY_TIMEOUT_SECONDS = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10"))
CURRENCY = os.getenv("CURRENCY", "INR")

# Outbound email; notifications are only logged when SMTP_HOST is empty
SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_USE_TLS = _env_bool("SMTP_USE_TLS", "true")
MAIL_FROM = os.getenv("MAIL_FROM", "no-reply@dinein.local")

TRIAL_DAYS = int(os.getenv("TRIAL_DAYS", "7"))

# Table QR slugs are random; give up after this many unique-constraint collisions
QR_SLUG_MAX_ATTEMPTS = 5

# Per-plan capacity. None means unlimited.
PLAN_LIMITS = {
    "starter": {"restaurants": 1, "tables": 4, "food_items": 10},
    "medium": {"restaurants": 2, "tables": 10, "food_items": 25},
    "pro": {"restaurants": 4, "tables": None, "food_items": None},
}


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging for the API process and scripts."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
