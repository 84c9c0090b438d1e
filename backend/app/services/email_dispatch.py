"""
Per-item customer email dispatch.

Sends one email per attachment that has a file but no `sent:img:` marker,
in note-attribute order. The first failed send stops the whole pass: one
operator alert goes out and the caller drops every marker collected so far,
so no tags are written this cycle.

Known gap: items sent earlier in an aborted pass lose their marker and will
be emailed again on the next delivery of the webhook. The alert lists them
so the operator can tell.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from app.config import Settings
from app.models.order import MailAttachment, MailMessage, OrderSnapshot
from app.services.alerts import Mailer, format_payload, send_operator_alert
from app.services.attachments import AttachmentResolver, ResolvedAttachment
from app.services.email_templates import get_template
from app.services.tag_codec import SentImageMarker

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    sent: list[SentImageMarker] = field(default_factory=list)
    delivery_ids: list[str] = field(default_factory=list)
    aborted: bool = False
    failed_item: Optional[ResolvedAttachment] = None


def build_customer_email(
    snapshot: OrderSnapshot,
    item: ResolvedAttachment,
    total: int,
    settings: Settings,
) -> MailMessage:
    """Build the localized email carrying one order image."""
    template = get_template(snapshot.locale)

    subject = f"{template.subject} {snapshot.order_number}"
    if settings.debug:
        subject = f"{subject} (to: {snapshot.contact_email})"
    if total > 1:
        subject = f"{subject} ({item.index + 1}/{total})"

    file_suffix = f"_{item.index + 1}" if total > 1 else ""

    # Debug mode keeps every customer email inside the operator inbox
    to = settings.operator_email if settings.debug else snapshot.contact_email
    bcc = None if settings.debug else settings.shop_inbox_email

    return MailMessage(
        from_addr=settings.from_email,
        to=to,
        bcc=bcc,
        subject=subject,
        text=template.text,
        html=template.html,
        attachments=[
            *template.attachments,
            MailAttachment(
                filename=f"{snapshot.order_number}{file_suffix}.png",
                path=item.file_ref,
                content_type="image/png",
            ),
        ],
    )


async def dispatch_emails(
    snapshot: OrderSnapshot,
    attachments: AttachmentResolver,
    mailer: Mailer,
    settings: Settings,
) -> DispatchResult:
    result = DispatchResult()

    logger.info(
        f'Send "{snapshot.order_number}" email to "{snapshot.contact_email}" '
        f'(locale: "{snapshot.customer_locale}" :: tags: "{", ".join(snapshot.tags)}")'
    )

    for item in attachments.unsent():
        message = build_customer_email(snapshot, item, attachments.total, settings)
        sent = await mailer.send(message)

        if not sent.delivered:
            logger.error(
                f"Error sending email for order {snapshot.order_number} "
                f"item {item.short_name!r}: {sent.error}"
            )
            await send_operator_alert(
                mailer,
                settings,
                snapshot.order_number,
                "Houve um erro no envio do email",
                format_payload({
                    "item": {
                        "position": item.index + 1,
                        "name": item.name,
                        "file": item.file_ref,
                        "short_name": item.short_name,
                    },
                    "error": sent.error,
                    "sent_in_this_pass": [m.short_name for m in result.sent],
                }),
            )
            result.aborted = True
            result.failed_item = item
            return result

        result.sent.append(SentImageMarker(item.short_name))
        result.delivery_ids.append(sent.delivery_id)
        logger.info(f"Email sent: {sent.delivery_id}")

    return result
