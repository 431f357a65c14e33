"""
Best-effort email notifications.

Sends never raise: failures are logged and reported in the returned
``{"success": ..., "message": ...}`` dict. Nothing the API returns or
persists depends on a notification going out.
"""

import logging
from email.message import EmailMessage
from typing import Dict

import aiosmtplib

from dinein import config

logger = logging.getLogger(__name__)


TEMPLATES = {
    "signup": (
        "Welcome to DineIn",
        "Hi {name},\n\nYour account is ready. Your free trial runs until {trial_expires_at}.\n",
    ),
    "order_created": (
        "New order #{order_id}",
        "A new order #{order_id} was placed at table {table_name} for {amount}.\n",
    ),
    "subscription_changed": (
        "Your DineIn plan was updated",
        "Your plan is now {plan}, active until {subscription_end_date}.\n",
    ),
}


def render(template_kind: str, params: Dict[str, str]) -> EmailMessage:
    subject, body = TEMPLATES[template_kind]
    message = EmailMessage()
    message["From"] = config.MAIL_FROM
    message["Subject"] = subject.format(**params)
    message.set_content(body.format(**params))
    return message


class LoggingNotifier:
    """Used when no SMTP server is configured: the message is only logged."""

    async def send(self, to_address: str, template_kind: str, params: Dict[str, str]) -> dict:
        message = render(template_kind, params)
        logger.info("Notification to %s: %s", to_address, message["Subject"])
        return {"success": True, "message": "logged"}


class SmtpNotifier:
    """Async SMTP delivery via aiosmtplib."""

    def __init__(
        self,
        host: str = config.SMTP_HOST,
        port: int = config.SMTP_PORT,
        username: str = config.SMTP_USERNAME,
        password: str = config.SMTP_PASSWORD,
        use_tls: bool = config.SMTP_USE_TLS,
    ):
        self.host = host
        self.port = port
        self.username = username or None
        self.password = password or None
        self.use_tls = use_tls

    async def send(self, to_address: str, template_kind: str, params: Dict[str, str]) -> dict:
        try:
            message = render(template_kind, params)
            message["To"] = to_address
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                start_tls=self.use_tls,
            )
        except Exception as e:
            logger.warning("Failed to send %s email to %s: %s", template_kind, to_address, e)
            return {"success": False, "message": str(e)}
        return {"success": True, "message": "sent"}


def build_notifier():
    """SMTP notifier when SMTP_HOST is set, logging notifier otherwise."""
    if config.SMTP_HOST:
        return SmtpNotifier()
    return LoggingNotifier()
