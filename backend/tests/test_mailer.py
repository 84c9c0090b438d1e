"""
Unit tests for the SMTP mailer.
SMTP is mocked (aiosmtplib.send) and URL attachments are served by
httpx.MockTransport.
"""

import aiosmtplib
import httpx
import pytest
from unittest.mock import AsyncMock, patch

from app.config import SmtpSettings
from app.models.order import MailAttachment, MailMessage
from app.services.mailer import SmtpMailer

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"


def _image_transport(status_code: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, content=PNG_BYTES if status_code == 200 else b"")
    return httpx.MockTransport(handler)


def _mailer(status_code: int = 200) -> SmtpMailer:
    return SmtpMailer(
        SmtpSettings(host="smtp.example.com", port=465, secure=True, username="u", password="p"),
        transport=_image_transport(status_code),
    )


def _message(**overrides) -> MailMessage:
    fields = dict(
        from_addr='"Momentus Shop" <info@momentus.shop>',
        to="customer@example.com",
        bcc="info@momentus.shop",
        subject="Momentus - Encomenda #1001",
        text="Olá",
        html="<p>Olá</p>",
        attachments=[
            MailAttachment(filename="#1001.png", path="https://x/ord-A.png", content_type="image/png"),
        ],
    )
    fields.update(overrides)
    return MailMessage(**fields)


class TestBuildMime:
    @pytest.mark.asyncio
    async def test_headers_and_parts(self):
        mime = await _mailer().build_mime(_message())

        assert mime["To"] == "customer@example.com"
        assert mime["Bcc"] == "info@momentus.shop"
        assert mime["Subject"] == "Momentus - Encomenda #1001"
        assert mime["Message-ID"].endswith("@momentus.shop>")

        attachments = list(mime.iter_attachments())
        assert len(attachments) == 1
        assert attachments[0].get_filename() == "#1001.png"
        assert attachments[0].get_content_type() == "image/png"
        assert attachments[0].get_content() == PNG_BYTES

    @pytest.mark.asyncio
    async def test_inline_content_and_no_bcc(self):
        message = _message(
            bcc=None,
            html=None,
            attachments=[MailAttachment(filename="logo.png", content=b"logo")],
        )
        mime = await _mailer().build_mime(message)

        assert mime["Bcc"] is None
        attachment = next(mime.iter_attachments())
        # content type guessed from the filename
        assert attachment.get_content_type() == "image/png"
        assert attachment.get_content() == b"logo"


class TestSend:
    @pytest.mark.asyncio
    async def test_success_returns_message_id(self):
        mailer = _mailer()
        with patch("app.services.mailer.aiosmtplib.send", new_callable=AsyncMock) as mock_send:
            result = await mailer.send(_message())

        assert result.delivered is True
        assert result.delivery_id.startswith("<")
        kwargs = mock_send.await_args.kwargs
        assert kwargs["hostname"] == "smtp.example.com"
        assert kwargs["port"] == 465
        assert kwargs["use_tls"] is True
        assert kwargs["username"] == "u"

    @pytest.mark.asyncio
    async def test_smtp_error_returns_failed_result(self):
        mailer = _mailer()
        with patch(
            "app.services.mailer.aiosmtplib.send",
            new_callable=AsyncMock,
            side_effect=aiosmtplib.SMTPException("boom"),
        ):
            result = await mailer.send(_message())

        assert result.delivered is False
        assert "boom" in result.error

    @pytest.mark.asyncio
    async def test_attachment_download_failure_returns_failed_result(self):
        mailer = _mailer(status_code=404)
        with patch("app.services.mailer.aiosmtplib.send", new_callable=AsyncMock) as mock_send:
            result = await mailer.send(_message())

        assert result.delivered is False
        mock_send.assert_not_awaited()
