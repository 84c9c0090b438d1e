"""
Operator alert emails.

Every failure the webhook detects is reported to a human by email instead of
a non-2xx response. Subjects follow the shop's existing
"[ALERTA] Order <number>: ..." convention so the inbox filters keep working.
"""

import json
import logging
from typing import Any, Optional, Protocol

from app.config import Settings
from app.models.order import MailMessage, MailResult

logger = logging.getLogger(__name__)

ALERT_PREFIX = "[ALERTA]"


class Mailer(Protocol):
    async def send(self, message: MailMessage) -> MailResult: ...


def alert_subject(order_number: str, summary: str) -> str:
    return f"{ALERT_PREFIX} Order {order_number}: {summary}"


def format_payload(payload: Any) -> str:
    """Pretty-print a diagnostic payload for an alert body."""
    return json.dumps(payload, indent=1, ensure_ascii=False, default=str)


async def send_operator_alert(
    mailer: Mailer,
    settings: Settings,
    order_number: str,
    summary: str,
    text: Optional[str] = None,
) -> bool:
    """
    Send one alert to the operator inbox.

    Returns True when the alert was delivered. A failed alert is logged and
    otherwise ignored: there is nobody left to tell.
    """
    subject = alert_subject(order_number, summary)
    logger.warning(subject)

    try:
        result = await mailer.send(
            MailMessage(
                from_addr=settings.from_email,
                to=settings.operator_email,
                subject=subject,
                text=text or "",
            )
        )
    except Exception:
        logger.exception(f"Failed to send operator alert {subject!r}")
        return False

    if not result.delivered:
        logger.error(f"Operator alert {subject!r} was not delivered: {result.error}")
        return False
    return True
