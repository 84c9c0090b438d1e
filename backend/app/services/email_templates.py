"""
Localized customer email templates.

One template per supported locale key ("pt", "en"). The per-order image is
added by the dispatcher; `attachments` here holds files common to every
message of that locale.
"""

from dataclasses import dataclass, field

from app.models.order import DEFAULT_LOCALE, MailAttachment


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    text: str
    html: str
    attachments: list[MailAttachment] = field(default_factory=list)


_TEMPLATES: dict[str, EmailTemplate] = {
    "pt": EmailTemplate(
        subject="Momentus - Encomenda",
        text=(
            "Olá,\n\n"
            "Obrigado pela sua encomenda! Em anexo segue a sua imagem personalizada.\n\n"
            "Qualquer questão, basta responder a este email.\n\n"
            "Momentus Shop"
        ),
        html=(
            "<p>Olá,</p>"
            "<p>Obrigado pela sua encomenda! Em anexo segue a sua imagem personalizada.</p>"
            "<p>Qualquer questão, basta responder a este email.</p>"
            "<p>Momentus Shop</p>"
        ),
    ),
    "en": EmailTemplate(
        subject="Momentus - Order",
        text=(
            "Hello,\n\n"
            "Thank you for your order! Your personalized image is attached.\n\n"
            "If you have any questions, just reply to this email.\n\n"
            "Momentus Shop"
        ),
        html=(
            "<p>Hello,</p>"
            "<p>Thank you for your order! Your personalized image is attached.</p>"
            "<p>If you have any questions, just reply to this email.</p>"
            "<p>Momentus Shop</p>"
        ),
    ),
}


def get_template(locale: str) -> EmailTemplate:
    """Return the template for a locale key, falling back to English."""
    return _TEMPLATES.get(locale) or _TEMPLATES[DEFAULT_LOCALE]


def supported_locales() -> list[str]:
    return sorted(_TEMPLATES)
