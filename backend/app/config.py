"""
Application configuration.

Settings are read from the environment (and a local .env file) exactly once,
at process start, and the resulting Settings object is passed explicitly to
every component that needs it.

Environment variables
---------------------
APP_MODE                 "production" enables real customer mail; anything
                         else is debug mode (customer mail goes to the
                         operator inbox and BCC is disabled).
SHOP_FROM_EMAIL          From header for every outbound email.
SHOP_INBOX_EMAIL         Shop inbox: BCC on customer mail and operator alerts
                         in production.
DEBUG_INBOX_EMAIL        Operator inbox used in debug mode.
SHOPIFY_AUTH             "<store-domain>:<admin-access-token>"
SHOPIFY_API_VERSION      Admin API version (default: 2024-01).
SHOPIFY_WEBHOOK_SECRET   Shared secret for X-Shopify-Hmac-Sha256 checks.
                         Empty disables verification.
SMTP_CONNECTION          JSON object: {"host", "port", "secure",
                         "auth": {"user", "pass"}}
"""

import json
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, ValidationError


DEFAULT_FROM_EMAIL = '"Momentus Shop" <info@momentus.shop>'
DEFAULT_SHOP_INBOX = "info@momentus.shop"
DEFAULT_API_VERSION = "2024-01"


class SmtpSettings(BaseModel):
    """Mail transport connection parameters."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int = 587
    # True means implicit TLS (port 465); False upgrades with STARTTLS
    secure: bool = False
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: float = 30.0


class Settings(BaseModel):
    """Process-wide configuration, immutable once built."""

    model_config = ConfigDict(frozen=True)

    debug: bool = True
    from_email: str = DEFAULT_FROM_EMAIL
    shop_inbox_email: str = DEFAULT_SHOP_INBOX
    debug_inbox_email: Optional[str] = None

    store_domain: str
    access_token: str
    shopify_api_version: str = DEFAULT_API_VERSION
    webhook_secret: str = ""

    smtp: SmtpSettings

    http_timeout: float = 30.0

    @property
    def operator_email(self) -> str:
        """Inbox that receives operator alerts (and all mail in debug mode)."""
        if self.debug:
            return self.debug_inbox_email or self.shop_inbox_email
        return self.shop_inbox_email

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build Settings from environment variables.

        Raises:
            ValueError: when a required variable is missing or malformed.
        """
        load_dotenv()

        shopify_auth = os.getenv("SHOPIFY_AUTH", "")
        store_domain, sep, access_token = shopify_auth.partition(":")
        if not sep or not store_domain or not access_token:
            raise ValueError("SHOPIFY_AUTH must be set as '<store-domain>:<access-token>'")

        raw_smtp = os.getenv("SMTP_CONNECTION")
        if not raw_smtp:
            raise ValueError("SMTP_CONNECTION must be set in environment variables")

        try:
            return cls(
                debug=os.getenv("APP_MODE") != "production",
                from_email=os.getenv("SHOP_FROM_EMAIL") or DEFAULT_FROM_EMAIL,
                shop_inbox_email=os.getenv("SHOP_INBOX_EMAIL") or DEFAULT_SHOP_INBOX,
                debug_inbox_email=os.getenv("DEBUG_INBOX_EMAIL") or None,
                store_domain=store_domain.strip(),
                access_token=access_token.strip(),
                shopify_api_version=os.getenv("SHOPIFY_API_VERSION") or DEFAULT_API_VERSION,
                webhook_secret=os.getenv("SHOPIFY_WEBHOOK_SECRET", ""),
                smtp=parse_smtp_connection(raw_smtp),
            )
        except ValidationError as e:
            raise ValueError(f"Invalid configuration: {e}") from e


def parse_smtp_connection(raw: str) -> SmtpSettings:
    """
    Parse the SMTP_CONNECTION JSON blob.

    Accepts the nodemailer-style shape used by the shop's other tooling:
    {"host": "...", "port": 465, "secure": true, "auth": {"user": "...", "pass": "..."}}
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"SMTP_CONNECTION is not valid JSON: {e}") from e

    if not isinstance(data, dict) or not data.get("host"):
        raise ValueError("SMTP_CONNECTION must be a JSON object with a 'host'")

    auth = data.get("auth") or {}
    return SmtpSettings(
        host=data["host"],
        port=int(data.get("port", 587)),
        secure=bool(data.get("secure", False)),
        username=auth.get("user"),
        password=auth.get("pass"),
        timeout=float(data.get("timeout", 30.0)),
    )
