"""
Webhook authentication.

Shopify signs every webhook with X-Shopify-Hmac-Sha256: the base64-encoded
HMAC-SHA256 of the raw request body, keyed with the app's webhook secret.

Verification is enforced only when SHOPIFY_WEBHOOK_SECRET is configured;
without it every delivery is accepted (a warning is logged at startup).
"""

import base64
import hashlib
import hmac
import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request

from app.config import Settings
from app.deps import get_settings

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Shopify-Hmac-Sha256"


def compute_signature(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_signature(secret: str, body: bytes, signature: Optional[str]) -> bool:
    """Constant-time comparison of the provided signature against the body."""
    if not signature:
        return False
    return hmac.compare_digest(compute_signature(secret, body), signature.strip())


async def verify_shopify_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> None:
    """
    FastAPI dependency guarding the webhook endpoint.

    Raises:
        HTTPException: 401 when a secret is configured and the signature is
            missing or does not match.
    """
    if not settings.webhook_secret:
        return

    body = await request.body()
    if not verify_signature(settings.webhook_secret, body, request.headers.get(SIGNATURE_HEADER)):
        logger.warning("Rejected webhook with missing or invalid HMAC signature")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")
