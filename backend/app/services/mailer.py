"""
SMTP mail transport.

Sends MailMessage objects with aiosmtplib. URL attachments (the generated
order images) are downloaded with httpx right before sending.

send() never raises for delivery problems: the returned MailResult has an
empty delivery_id and an error string instead, which is what callers treat
as a failed send.
"""

import email.message
import email.policy
import email.utils
import logging
import mimetypes
from typing import Optional

import aiosmtplib
import httpx

from app.config import SmtpSettings
from app.models.order import MailAttachment, MailMessage, MailResult

logger = logging.getLogger(__name__)


class SmtpMailer:
    """Mail collaborator backed by an SMTP server."""

    def __init__(
        self,
        smtp: SmtpSettings,
        http_timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.smtp = smtp
        self.http_timeout = http_timeout
        # Injected in tests (httpx.MockTransport)
        self._transport = transport

    async def send(self, message: MailMessage) -> MailResult:
        try:
            mime = await self.build_mime(message)
            await aiosmtplib.send(
                mime,
                hostname=self.smtp.host,
                port=self.smtp.port,
                username=self.smtp.username,
                password=self.smtp.password,
                use_tls=self.smtp.secure,
                timeout=self.smtp.timeout,
            )
        except (aiosmtplib.SMTPException, httpx.HTTPError, OSError) as e:
            logger.error(f"Failed to send email to {message.to!r}: {e}")
            return MailResult(error=str(e))

        return MailResult(delivery_id=mime["Message-ID"])

    async def build_mime(self, message: MailMessage) -> email.message.EmailMessage:
        """Build the MIME message, downloading URL attachments."""
        mime = email.message.EmailMessage(policy=email.policy.default)
        mime["From"] = message.from_addr
        mime["To"] = message.to
        if message.bcc:
            mime["Bcc"] = message.bcc
        mime["Subject"] = message.subject
        mime["Message-ID"] = email.utils.make_msgid(domain=_sender_domain(message.from_addr))

        mime.set_content(message.text or "", charset="utf-8")
        if message.html:
            mime.add_alternative(message.html, subtype="html", charset="utf-8")

        for attachment in message.attachments:
            content = await self._attachment_bytes(attachment)
            maintype, subtype = _content_type(attachment).split("/", 1)
            mime.add_attachment(
                content,
                maintype=maintype,
                subtype=subtype,
                filename=attachment.filename,
            )

        return mime

    async def _attachment_bytes(self, attachment: MailAttachment) -> bytes:
        if attachment.content is not None:
            return attachment.content
        if not attachment.path:
            raise ValueError(f"Attachment {attachment.filename!r} has neither content nor path")

        async with httpx.AsyncClient(
            timeout=self.http_timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            response = await client.get(attachment.path)
            response.raise_for_status()
            return response.content


def _content_type(attachment: MailAttachment) -> str:
    if attachment.content_type and attachment.content_type != "application/octet-stream":
        return attachment.content_type
    guessed, _ = mimetypes.guess_type(attachment.filename)
    return guessed or "application/octet-stream"


def _sender_domain(from_addr: str) -> Optional[str]:
    _, addr = email.utils.parseaddr(from_addr)
    if "@" in addr:
        return addr.rsplit("@", 1)[1]
    return None
