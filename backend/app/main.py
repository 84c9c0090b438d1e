"""
Momentus order webhook API
FastAPI application reconciling Shopify order updates: image delivery
emails, reminder tags and fulfillment.
"""

import logging

from fastapi import FastAPI

from app.config import Settings
from app.routers import order_webhook
from app.services.mailer import SmtpMailer
from app.services.shopify_client import ShopifyOrderClient

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Momentus Order Webhook",
    description="Delivers personalized order images and fulfills Shopify orders",
    version="0.1.0",
)

app.include_router(order_webhook.router, prefix="/api/webhooks", tags=["webhooks"])


def configure(target: FastAPI, settings: Settings) -> None:
    """Attach settings and the collaborators built from them to the app."""
    target.state.settings = settings
    target.state.order_client = ShopifyOrderClient.from_settings(settings)
    target.state.mailer = SmtpMailer(settings.smtp, http_timeout=settings.http_timeout)


@app.on_event("startup")
async def load_settings() -> None:
    """
    Build the configuration once per process.

    Skipped when settings were attached beforehand (tests, embedding).
    """
    if getattr(app.state, "settings", None) is None:
        configure(app, Settings.from_env())

    settings: Settings = app.state.settings
    logger.info(
        "Order webhook ready (mode: %s, store: %s, alerts to: %s)",
        "debug" if settings.debug else "production",
        settings.store_domain,
        settings.operator_email,
    )
    if not settings.webhook_secret:
        logger.warning(
            "SHOPIFY_WEBHOOK_SECRET is not configured, webhook signatures are not verified"
        )


@app.get("/")
async def root():
    return {"message": "Momentus Order Webhook", "version": "0.1.0"}


@app.get("/health")
async def health():
    return {"status": "ok"}
