"""
Dependency providers.

The Settings object and the collaborators built from it are created once in
the application lifespan and kept on app.state; endpoints receive them
through these providers so tests can swap them with dependency_overrides.
"""

from fastapi import Request

from app.config import Settings
from app.services.mailer import SmtpMailer
from app.services.shopify_client import ShopifyOrderClient


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_order_client(request: Request) -> ShopifyOrderClient:
    return request.app.state.order_client


def get_mailer(request: Request) -> SmtpMailer:
    return request.app.state.mailer
