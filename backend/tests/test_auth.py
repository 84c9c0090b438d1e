"""
Unit tests for webhook authentication.
Tests Shopify HMAC signature computation and the endpoint dependency.
"""

import base64
import hashlib
import hmac

import pytest
from fastapi import HTTPException
from unittest.mock import AsyncMock, Mock

from app.auth import (
    SIGNATURE_HEADER,
    compute_signature,
    verify_shopify_webhook,
    verify_signature,
)
from app.config import Settings, SmtpSettings

SECRET = "shopify-test-secret"
BODY = b'{"admin_graphql_api_id": "gid://shopify/Order/1"}'


def _expected(body: bytes, secret: str = SECRET) -> str:
    return base64.b64encode(hmac.new(secret.encode(), body, hashlib.sha256).digest()).decode()


def _settings(secret: str = SECRET) -> Settings:
    return Settings(
        store_domain="test.myshopify.com",
        access_token="shpat_test",
        webhook_secret=secret,
        smtp=SmtpSettings(host="smtp.example.com"),
    )


def _request(body: bytes, signature: str | None) -> Mock:
    """Mock Request exposing body() and headers like Starlette's."""
    request = Mock()
    request.body = AsyncMock(return_value=body)
    request.headers = {SIGNATURE_HEADER: signature} if signature is not None else {}
    return request


class TestVerifySignature:
    """Test HMAC-SHA256 signature checks."""

    def test_compute_signature_matches_shopify_scheme(self):
        assert compute_signature(SECRET, BODY) == _expected(BODY)

    def test_valid_signature(self):
        assert verify_signature(SECRET, BODY, _expected(BODY)) is True

    def test_invalid_signature(self):
        assert verify_signature(SECRET, BODY, "invalid-signature") is False

    def test_tampered_body(self):
        sig = _expected(BODY)
        assert verify_signature(SECRET, BODY + b" ", sig) is False

    def test_wrong_secret(self):
        assert verify_signature(SECRET, BODY, _expected(BODY, "other")) is False

    def test_missing_signature(self):
        assert verify_signature(SECRET, BODY, None) is False
        assert verify_signature(SECRET, BODY, "") is False


class TestVerifyShopifyWebhook:
    """Test the FastAPI dependency."""

    @pytest.mark.asyncio
    async def test_valid_signature_passes(self):
        await verify_shopify_webhook(_request(BODY, _expected(BODY)), _settings())

    @pytest.mark.asyncio
    async def test_invalid_signature_raises_401(self):
        with pytest.raises(HTTPException) as exc_info:
            await verify_shopify_webhook(_request(BODY, "nope"), _settings())

        assert exc_info.value.status_code == 401
        assert "signature" in str(exc_info.value.detail).lower()

    @pytest.mark.asyncio
    async def test_missing_header_raises_401(self):
        with pytest.raises(HTTPException) as exc_info:
            await verify_shopify_webhook(_request(BODY, None), _settings())

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_no_secret_configured_accepts_everything(self):
        request = _request(BODY, None)

        await verify_shopify_webhook(request, _settings(secret=""))

        request.body.assert_not_awaited()
