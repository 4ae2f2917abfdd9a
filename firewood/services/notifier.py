# firewood/services/notifier.py
"""
Order emails.

Services never send mail themselves. After a successful commit they
return `NotificationIntent`s; the router hands those to an
`OrderNotifier` through FastAPI background tasks, so a slow or broken
SMTP server can never fail or roll back the order write.
"""

import enum
import logging
import uuid
from dataclasses import dataclass, field
from functools import lru_cache
from html import escape
from typing import Callable

from firewood.core.config import Settings, get_settings
from firewood.core.email_client import send_email
from firewood.models.order import FulfillmentStatus, Order, OrderItem
from firewood.services.order_ref import order_reference
from firewood.services.pricing import format_pence

logger = logging.getLogger(__name__)

BUSINESS_NAME = "Verrington Firewood"

# Fulfillment states the customer hears about
CUSTOMER_NOTIFIED_STATUSES = frozenset(
    {
        FulfillmentStatus.PAID,
        FulfillmentStatus.OFD,
        FulfillmentStatus.DELIVERED,
        FulfillmentStatus.CANCELLED,
    }
)

_STATUS_COPY: dict[FulfillmentStatus, tuple[str, str]] = {
    FulfillmentStatus.PAID: ("Payment received", "Payment received"),
    FulfillmentStatus.OFD: ("Out for delivery today", "Out for delivery"),
    FulfillmentStatus.DELIVERED: ("Delivered", "Delivered"),
    FulfillmentStatus.CANCELLED: ("Order cancelled", "Order cancelled"),
}


class NotificationKind(str, enum.Enum):
    ADMIN_NEW_ORDER = "admin_new_order"
    CUSTOMER_CONFIRMATION = "customer_confirmation"
    CUSTOMER_STATUS_UPDATE = "customer_status_update"


@dataclass(frozen=True)
class NotificationLine:
    name: str
    quantity: int
    price_pence: int | None = None


@dataclass(frozen=True)
class NotificationIntent:
    """
    Everything needed to render one email, captured at commit time.
    """

    kind: NotificationKind
    to: str
    order_id: uuid.UUID
    reference: str
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_email: str | None = None
    postcode: str | None = None
    address: str | None = None
    status: FulfillmentStatus | None = None
    total_pence: int | None = None
    created_at: str | None = None
    lines: tuple[NotificationLine, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Intent builders
# ---------------------------------------------------------------------------


def _address(order: Order) -> str | None:
    parts = [
        order.address_line1,
        order.address_line2,
        order.town,
        order.county,
        order.postcode,
    ]
    joined = ", ".join(p for p in parts if p)
    return joined or None


def intents_for_new_order(
    order: Order,
    items: list[OrderItem],
    settings: Settings | None = None,
) -> list[NotificationIntent]:
    """
    Staff notice (when ADMIN_NOTIFY_TO is set) plus customer confirmation
    (when SEND_CUSTOMER_EMAIL is on and the customer gave an email).
    """
    settings = settings or get_settings()
    reference = order_reference(order.id, order.order_number)
    lines = tuple(
        NotificationLine(name=it.name, quantity=it.quantity, price_pence=it.price_pence)
        for it in items
    )
    common = dict(
        order_id=order.id,
        reference=reference,
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        customer_email=order.customer_email,
        postcode=order.postcode,
        address=_address(order),
        status=order.status,
        total_pence=order.total_pence,
        created_at=order.created_at.isoformat() if order.created_at else None,
        lines=lines,
    )

    intents: list[NotificationIntent] = []

    if settings.ADMIN_NOTIFY_TO:
        intents.append(
            NotificationIntent(
                kind=NotificationKind.ADMIN_NEW_ORDER,
                to=settings.ADMIN_NOTIFY_TO,
                **common,
            )
        )
    else:
        logger.warning("ADMIN_NOTIFY_TO not set; no staff email for %s", reference)

    if settings.SEND_CUSTOMER_EMAIL and order.customer_email:
        intents.append(
            NotificationIntent(
                kind=NotificationKind.CUSTOMER_CONFIRMATION,
                to=order.customer_email,
                **common,
            )
        )

    return intents


def intent_for_status_change(order: Order) -> NotificationIntent | None:
    """
    Customer notice for a fulfillment change, or None when the new status
    is not customer-facing or there is no address to write to.
    """
    if order.status not in CUSTOMER_NOTIFIED_STATUSES:
        return None
    if not order.customer_email:
        return None

    return NotificationIntent(
        kind=NotificationKind.CUSTOMER_STATUS_UPDATE,
        to=order.customer_email,
        order_id=order.id,
        reference=order_reference(order.id, order.order_number),
        customer_name=order.customer_name,
        postcode=order.postcode,
        status=order.status,
    )


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _email_shell(title: str, body_html: str, preheader: str = "") -> str:
    return f"""<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width,initial-scale=1" />
  <title>{escape(title)}</title>
</head>
<body style="margin:0;padding:0;background:#f6f7f9;font-family:Arial,Helvetica,sans-serif;">
  <div style="display:none;max-height:0;overflow:hidden;">{escape(preheader)}</div>
  <table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="padding:24px 0;">
    <tr><td align="center">
      <table role="presentation" width="600" cellpadding="0" cellspacing="0"
             style="max-width:600px;width:100%;background:#ffffff;border:1px solid #e8eaee;border-radius:14px;">
        <tr><td style="padding:18px 20px;background:#111;color:#fff;">
          <div style="font-size:14px;opacity:0.9;">{BUSINESS_NAME}</div>
          <div style="font-size:20px;font-weight:800;margin-top:4px;">{escape(title)}</div>
        </td></tr>
        <tr><td style="padding:18px 20px;color:#111;">{body_html}</td></tr>
        <tr><td style="padding:14px 20px;background:#fafafa;color:#555;font-size:12px;">
          Keeping You Warm All Year Round. If you have any questions, reply to this email.
        </td></tr>
      </table>
    </td></tr>
  </table>
</body>
</html>"""


def _kv_row(label: str, value: str | None) -> str:
    return (
        "<tr>"
        f'<td style="padding:8px 0;color:#666;font-size:12px;width:140px;">{escape(label)}</td>'
        f'<td style="padding:8px 0;font-size:13px;font-weight:600;">{escape(value or "—")}</td>'
        "</tr>"
    )


def _items_html(lines: tuple[NotificationLine, ...], total: str) -> str:
    rows = "".join(
        "<tr>"
        f'<td style="padding:8px 0;border-top:1px solid #eee;">{escape(line.name)}</td>'
        f'<td style="padding:8px 0;border-top:1px solid #eee;text-align:right;">x{line.quantity}</td>'
        "</tr>"
        for line in lines
    )
    return (
        '<table width="100%" cellpadding="0" cellspacing="0">'
        f"{rows}"
        '<tr><td style="padding-top:12px;font-weight:700;">Total</td>'
        f'<td style="padding-top:12px;text-align:right;font-weight:700;">{escape(total)}</td></tr>'
        "</table>"
    )


def render(intent: NotificationIntent, app_base_url: str) -> tuple[str, str, str | None]:
    """
    Returns (subject, text_body, html_body).
    """
    total = format_pence(intent.total_pence)
    greeting_name = intent.customer_name or "there"

    if intent.kind is NotificationKind.ADMIN_NEW_ORDER:
        admin_url = f"{app_base_url}/admin/orders/{intent.order_id}"
        subject = (
            f"New order {intent.reference}"
            + (f" ({intent.postcode})" if intent.postcode else "")
        )
        lines_text = "\n".join(
            f"- {line.name} x{line.quantity} @ {format_pence(line.price_pence)}"
            for line in intent.lines
        )
        text = (
            "New order received\n\n"
            f"Order: {intent.reference}\n"
            f"Created: {intent.created_at or '—'}\n"
            f"Status: {intent.status.value if intent.status else 'NEW'}\n\n"
            "Customer:\n"
            f"- Name: {intent.customer_name or '—'}\n"
            f"- Phone: {intent.customer_phone or '—'}\n"
            f"- Email: {intent.customer_email or '—'}\n"
            f"- Address: {intent.address or '—'}\n\n"
            f"Items:\n{lines_text}\n\n"
            f"Total: {total}\n\n"
            f"Admin:\n{admin_url}\n"
        )
        body = (
            '<table width="100%" cellpadding="0" cellspacing="0">'
            + _kv_row("Order", intent.reference)
            + _kv_row("Created", intent.created_at)
            + _kv_row("Customer", intent.customer_name)
            + _kv_row("Phone", intent.customer_phone)
            + _kv_row("Email", intent.customer_email)
            + _kv_row("Address", intent.address)
            + "</table>"
            + '<div style="margin-top:14px;font-weight:800;">Items</div>'
            + _items_html(intent.lines, total)
            + f'<p style="margin-top:16px;"><a href="{escape(admin_url)}">Open in Admin</a></p>'
        )
        html = _email_shell("New order received", body, preheader=subject)
        return subject, text, html

    if intent.kind is NotificationKind.CUSTOMER_CONFIRMATION:
        subject = f"We've received your order ({intent.reference})"
        lines_text = "\n".join(f"- {line.name} x{line.quantity}" for line in intent.lines)
        text = (
            f"Hi {greeting_name},\n\n"
            f"Thanks for your order with {BUSINESS_NAME}.\n\n"
            f"Order reference: {intent.reference}\n"
            f"Postcode: {intent.postcode or '—'}\n\n"
            f"Items:\n{lines_text}\n\n"
            f"Total: {total}\n\n"
            "We'll be in touch shortly to confirm delivery timing.\n\n"
            f"{BUSINESS_NAME}\n"
        )
        body = (
            f"<p>Hi {escape(greeting_name)},</p>"
            f"<p>Thanks for your order with <b>{BUSINESS_NAME}</b>. "
            "We'll be in touch shortly to confirm delivery timing.</p>"
            '<table width="100%" cellpadding="0" cellspacing="0">'
            + _kv_row("Order ref", intent.reference)
            + _kv_row("Postcode", intent.postcode)
            + "</table>"
            + '<h3 style="margin-top:16px;">Items</h3>'
            + _items_html(intent.lines, total)
        )
        html = _email_shell("Order received", body, preheader=subject)
        return subject, text, html

    # CUSTOMER_STATUS_UPDATE
    subject_prefix, headline = _STATUS_COPY.get(
        intent.status, ("Order update", "Order update")
    )
    subject = f"{subject_prefix} ({intent.reference})"
    status_label = intent.status.value if intent.status else "—"
    text = (
        f"Hi {greeting_name},\n\n"
        f"{headline} for your {BUSINESS_NAME} order.\n\n"
        f"Order reference: {intent.reference}\n"
        f"Postcode: {intent.postcode or '—'}\n"
        f"Status: {status_label}\n\n"
        "If you have any questions, reply to this email.\n\n"
        f"{BUSINESS_NAME}\n"
    )
    body = (
        f"<p>Hi {escape(greeting_name)},</p>"
        f"<p><b>{escape(headline)}</b> for your order.</p>"
        '<table width="100%" cellpadding="0" cellspacing="0">'
        + _kv_row("Order ref", intent.reference)
        + _kv_row("Postcode", intent.postcode)
        + _kv_row("Status", status_label)
        + "</table>"
    )
    html = _email_shell(headline, body, preheader=subject)
    return subject, text, html


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------

EmailSender = Callable[[str, str, str, str | None], None]


class OrderNotifier:
    """
    Consumes notification intents and sends them by email.

    Failures are logged and swallowed: by the time a notifier runs, the
    order change it describes is already committed.
    """

    def __init__(
        self,
        sender: EmailSender = send_email,
        settings: Settings | None = None,
    ):
        self.sender = sender
        self.settings = settings or get_settings()

    def deliver(self, intent: NotificationIntent) -> bool:
        try:
            subject, text, html = render(intent, self.settings.app_base_url)
            self.sender(intent.to, subject, text, html)
        except Exception:
            logger.exception(
                "Email %s for order %s to %s failed",
                intent.kind.value,
                intent.reference,
                intent.to,
            )
            return False

        logger.info(
            "Email %s for order %s sent to %s",
            intent.kind.value,
            intent.reference,
            intent.to,
        )
        return True

    def deliver_all(self, intents: list[NotificationIntent]) -> None:
        for intent in intents:
            self.deliver(intent)


@lru_cache
def get_notifier() -> OrderNotifier:
    """
    FastAPI dependency for the process-wide notifier.
    """
    return OrderNotifier()
