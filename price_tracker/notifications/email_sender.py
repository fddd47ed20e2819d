# price_tracker/notifications/email_sender.py

"""Render notification intents as e-mails and deliver them via Resend."""

import html
import logging
from dataclasses import dataclass

from curl_cffi import requests as curl_requests

from price_tracker.config.settings import Settings
from price_tracker.errors import DeliveryFailure
from price_tracker.models.events import NotificationIntent, NotificationKind

logger = logging.getLogger("price_tracker.email")


@dataclass(frozen=True)
class RenderedEmail:
    """Subject plus text and HTML bodies for one recipient."""

    to: str
    subject: str
    text: str
    html: str


def format_rupees(amount: int | None) -> str:
    """Format an amount the Indian way, e.g. ``₹1,23,456``."""
    if amount is None:
        return "₹-"
    digits = str(abs(amount))
    head, tail = digits[:-3], digits[-3:]
    groups: list[str] = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    body = ",".join([*groups, tail]) if groups else tail
    return f"{'-' if amount < 0 else ''}₹{body}"


def render_email(intent: NotificationIntent) -> RenderedEmail:
    """Build the subject and bodies for *intent*."""
    item = intent.item
    lines: list[str] = []

    if intent.kind is NotificationKind.PRICE_TARGET_REACHED:
        target = intent.alert.target_price if intent.alert else None
        subject = (
            f"Price Alert Triggered: {item.title} - "
            f"Now {format_rupees(intent.new_price)}!"
        )
        savings = (
            target - intent.new_price
            if target is not None and intent.new_price is not None
            else 0
        )
        lines.append(
            f"The price is now {format_rupees(intent.new_price)}, "
            "which meets your target price!"
        )
        if savings > 0:
            lines.append(
                f"That is {format_rupees(savings)} below your target."
            )
        lines.append(f"Target price: {format_rupees(target)}")
        lines.append(f"New price: {format_rupees(intent.new_price)}")
        lines.append(
            "This price alert has been deactivated. Set up a new "
            "alert to keep monitoring this product."
        )
    elif intent.kind is NotificationKind.BACK_IN_STOCK:
        subject = f"Back in Stock: {item.title}"
        lines.append("Good news! The product you track is back in stock.")
        lines.append(f"Price: {format_rupees(item.sale_price)}")
    else:
        target = intent.alert.target_price if intent.alert else None
        subject = f"Price Alert Set: {item.title}"
        lines.append(
            "We will e-mail you once the price drops to your target."
        )
        lines.append(f"Current price: {format_rupees(item.sale_price)}")
        lines.append(f"Target price: {format_rupees(target)}")

    if item.capacity:
        lines.append(f"Storage: {item.capacity}")
    if item.condition:
        lines.append(f"Condition: {item.condition}")
    lines.append(f"Buy now on Cashify: {item.url}")

    text = "\n".join(lines)
    html_body = "".join(
        f"<p>{html.escape(line)}</p>" for line in lines
    )
    return RenderedEmail(
        to=intent.recipient,
        subject=subject,
        text=text,
        html=(
            '<div style="font-family: Arial, sans-serif;">'
            f"<h2>{html.escape(subject)}</h2>{html_body}</div>"
        ),
    )


class ResendEmailSender:
    """Deliver rendered e-mails through the Resend HTTP API."""

    def __init__(
        self,
        settings: Settings | None = None,
        session: curl_requests.Session | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.session = session or curl_requests.Session()

    def send(self, intent: NotificationIntent) -> None:
        """POST one e-mail; raises :class:`DeliveryFailure` on rejection."""
        email = render_email(intent)
        payload = {
            "from": self.settings.EMAIL_FROM,
            "to": [email.to],
            "subject": email.subject,
            "html": email.html,
            "text": email.text,
        }
        resp = self.session.post(
            self.settings.RESEND_API_URL,
            headers={
                "Authorization": f"Bearer {self.settings.RESEND_API_KEY}",
                "Content-Type": "application/json",
            },
            json=payload,
            timeout=self.settings.REQUEST_TIMEOUT,
        )
        if resp.status_code >= 400:
            raise DeliveryFailure(
                f"Resend API error: {resp.status_code} - {resp.text}"
            )
        logger.info(
            "Sent %s e-mail to %s", intent.kind.value, email.to,
        )


class LogEmailSender:
    """Log e-mails instead of sending them (no API key configured)."""

    def __init__(self) -> None:
        self.sent: list[RenderedEmail] = []

    def send(self, intent: NotificationIntent) -> None:
        email = render_email(intent)
        self.sent.append(email)
        logger.warning(
            "EMAIL SIMULATION to %s: %s", email.to, email.subject,
        )


def build_sender(
    settings: Settings | None = None,
) -> ResendEmailSender | LogEmailSender:
    """Pick the Resend sender when an API key is configured."""
    active = settings or Settings()
    if active.RESEND_API_KEY:
        return ResendEmailSender(active)
    logger.warning(
        "RESEND_API_KEY not set, e-mails will only be logged"
    )
    return LogEmailSender()
