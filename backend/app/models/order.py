"""
Pydantic models for the order-update webhook.

Models:
  OrderWebhookPayload   subset of Shopify's orders/updated JSON we act on
  OrderSnapshot         normalized, immutable view of one delivery
  UserError             field-level error from an Admin API mutation
  OrderMutationResult   combined result of one remote mutation
  MailAttachment        file attached to an outbound email
  MailMessage           outbound email
  MailResult            outcome of a send (delivery_id empty on failure)
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.services.tag_codec import split_tags


# ---------------------------------------------------------------------------
# Inbound webhook payload
# ---------------------------------------------------------------------------

class LineItem(BaseModel):
    model_config = {"extra": "ignore"}

    quantity: int = 0


class NoteAttribute(BaseModel):
    """A single note attribute; `value` holds the generated image URL."""
    model_config = {"extra": "ignore"}

    name: str = ""
    value: Optional[str] = None


class OrderWebhookPayload(BaseModel):
    """
    Subset of the orders/updated webhook body.

    Shopify sends many more fields; only the ones the reconciliation needs
    are modeled, everything else is ignored.
    """
    model_config = {"extra": "ignore"}

    admin_graphql_api_id: str
    contact_email: Optional[str] = None
    name: str = ""
    line_items: list[LineItem] = []
    note_attributes: Optional[list[NoteAttribute]] = None
    tags: Optional[str] = ""
    customer_locale: Optional[str] = None
    financial_status: Optional[str] = None


# ---------------------------------------------------------------------------
# Normalized snapshot
# ---------------------------------------------------------------------------

# customer_locale -> template key; anything not listed falls back to English
_LOCALE_KEYS = {
    "pt-PT": "pt",
    "pt": "pt",
}
DEFAULT_LOCALE = "en"


def normalize_locale(customer_locale: Optional[str]) -> str:
    """Map a Shopify customer_locale to one of the supported template keys."""
    if not customer_locale:
        return DEFAULT_LOCALE
    return _LOCALE_KEYS.get(customer_locale.strip(), DEFAULT_LOCALE)


class Attachment(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    file_ref: Optional[str] = None


class OrderSnapshot(BaseModel):
    """
    One order as seen by a single webhook delivery.

    Built fresh from the inbound event on every invocation; never cached.
    """
    model_config = ConfigDict(frozen=True)

    order_id: str
    order_number: str
    contact_email: str = ""
    locale: str = DEFAULT_LOCALE
    customer_locale: str = ""
    line_item_count: int = 0
    attachments: tuple[Attachment, ...] = ()
    tags: tuple[str, ...] = ()
    payment_status: str = ""

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"

    @classmethod
    def from_payload(cls, payload: OrderWebhookPayload) -> "OrderSnapshot":
        attachments = tuple(
            Attachment(
                name=note.name,
                file_ref=(note.value or "").strip() or None,
            )
            for note in payload.note_attributes or []
        )

        # Duplicates are dropped, first-seen order kept
        tags = dict.fromkeys(split_tags(payload.tags))

        return cls(
            order_id=payload.admin_graphql_api_id,
            order_number=payload.name,
            contact_email=payload.contact_email or "",
            locale=normalize_locale(payload.customer_locale),
            customer_locale=payload.customer_locale or "",
            line_item_count=sum(item.quantity for item in payload.line_items),
            attachments=attachments,
            tags=tuple(tags),
            payment_status=payload.financial_status or "",
        )


# ---------------------------------------------------------------------------
# Remote order-management results
# ---------------------------------------------------------------------------

class UserError(BaseModel):
    model_config = {"extra": "ignore"}

    field: Optional[list[str]] = None
    message: str = ""


class OrderMutationResult(BaseModel):
    """
    Result of one Admin API mutation request.

    order_user_errors        orderUpdate.userErrors
    fulfillment_user_errors  fulfillmentCreateV2.userErrors (combined call only)
    errors                   top-level GraphQL or transport errors
    data                     raw `data` payload, kept for operator alerts
    """

    order_user_errors: list[UserError] = []
    fulfillment_user_errors: list[UserError] = []
    errors: list[dict[str, Any]] = []
    data: Optional[dict[str, Any]] = None

    @property
    def has_errors(self) -> bool:
        return bool(
            self.order_user_errors
            or self.fulfillment_user_errors
            or self.errors
        )


# ---------------------------------------------------------------------------
# Mail
# ---------------------------------------------------------------------------

class MailAttachment(BaseModel):
    """
    An email attachment.

    Either `content` (raw bytes) or `path` (a URL the mailer downloads at
    send time) must be provided.
    """

    filename: str
    content: Optional[bytes] = None
    path: Optional[str] = None
    content_type: str = "application/octet-stream"


class MailMessage(BaseModel):
    from_addr: str
    to: str
    bcc: Optional[str] = None
    subject: str
    text: str = ""
    html: Optional[str] = None
    attachments: list[MailAttachment] = Field(default_factory=list)


class MailResult(BaseModel):
    delivery_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return bool(self.delivery_id)
