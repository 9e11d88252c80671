"""
Quote notification email via the Resend API.

This is the primary delivery channel for a quote request: if the email
cannot be sent, the whole submission fails. The body is rendered with
Jinja2 (autoescaped, since every value comes from the public widget).
"""

import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from jinja2 import Template

from ..core.config import settings


logger = logging.getLogger(__name__)


REQUEST_TIMEOUT_SECONDS = 15.0
QUOTE_EMAIL_SUBJECT = "New moving quote request"
CURRENCY_SYMBOL = "$"

QUOTE_EMAIL_TEMPLATE = Template(
    """<h2>New moving quote request</h2>
{% if widget_key %}<p><strong>Widget:</strong> {{ widget_key }}</p>
{% endif %}{% if items %}<h3>Cost Summary</h3>
<ul>
{% for item in items %}<li><strong>{{ item.label }}:</strong> {{ currency }}{{ item.amount }}{% if item.meta %} <small>({{ item.meta }})</small>{% endif %}</li>
{% endfor %}</ul>
{% endif %}{% if subtotal is not none %}<p><strong>Subtotal:</strong> {{ currency }}{{ subtotal }}</p>
{% endif %}{% if minimum_job_price is not none %}<p><strong>Minimum job price applied:</strong> {{ currency }}{{ minimum_job_price }}</p>
{% endif %}{% if total is not none %}<p><strong>Estimated total:</strong> {{ currency }}{{ total }}</p>
{% endif %}<h3>Submitted Data</h3>
<pre style="background:#f6f6f6;padding:12px;border-radius:8px;border:1px solid #e5e7eb;">{{ submitted_data }}</pre>""",
    autoescape=True,
)


class QuoteEmailError(Exception):
    """The quote notification email could not be sent."""


class QuoteEmailNotConfiguredError(QuoteEmailError):
    """No Resend API key is configured."""


def format_amount(value: Any) -> str:
    """Format a money amount as ``1,234.50`` (junk renders as ``0.00``)."""
    try:
        return f"{float(value):,.2f}"
    except (TypeError, ValueError):
        return "0.00"


def render_quote_email(
    data: Dict[str, Any],
    summary: Optional[Dict[str, Any]] = None,
    widget_key: Optional[str] = None,
) -> str:
    """
    Render the HTML body of a quote request email.

    Args:
        data: Captured wizard answers
        summary: Optional cost summary (items, subtotal, total,
            minimumJobPrice, appliedMinimum)
        widget_key: Public key of the submitting widget

    Returns:
        HTML string
    """
    summary = summary or {}
    items: List[Dict[str, Any]] = []
    for item in summary.get("items") or []:
        if not isinstance(item, dict):
            continue
        items.append({
            "label": item.get("label") or "Item",
            "amount": format_amount(item.get("amount")) if item.get("amount") is not None else "0.00",
            "meta": item.get("meta"),
        })

    minimum_job_price = None
    if summary.get("appliedMinimum") and summary.get("minimumJobPrice") is not None:
        minimum_job_price = format_amount(summary.get("minimumJobPrice"))

    return QUOTE_EMAIL_TEMPLATE.render(
        widget_key=widget_key,
        items=items,
        currency=CURRENCY_SYMBOL,
        subtotal=format_amount(summary["subtotal"]) if summary.get("subtotal") is not None else None,
        minimum_job_price=minimum_job_price,
        total=format_amount(summary["total"]) if summary.get("total") is not None else None,
        submitted_data=json.dumps(data, indent=4, default=str),
    )


class QuoteEmailService:
    """Sends quote request emails through Resend."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        from_address: Optional[str] = None,
        from_name: Optional[str] = None,
        recipient: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize from settings; explicit arguments take precedence."""
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.api_url = api_url if api_url is not None else settings.resend_api_url
        self.from_address = from_address if from_address is not None else settings.mail_from_address
        self.from_name = from_name if from_name is not None else settings.mail_from_name
        self.recipient = recipient if recipient is not None else settings.quote_recipient_email
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def send_quote_email(
        self,
        data: Dict[str, Any],
        summary: Optional[Dict[str, Any]] = None,
        widget_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send the quote request email.

        Returns:
            Decoded Resend response (``{"id": ...}``), or {} for an empty body

        Raises:
            QuoteEmailNotConfiguredError: If no Resend key is set
            QuoteEmailError: If Resend is unreachable or answers with a
                non-2xx status
        """
        if not self.is_configured:
            raise QuoteEmailNotConfiguredError("Resend key not configured")

        html_body = render_quote_email(data, summary, widget_key)
        items = (summary or {}).get("items") or []

        logger.info(
            "Resend email request started: widget_key=%s summary_items=%d timestamp=%s",
            widget_key, len(items), datetime.now(timezone.utc).isoformat(),
        )

        start = time.monotonic()
        try:
            with httpx.Client(timeout=REQUEST_TIMEOUT_SECONDS, transport=self.transport) as client:
                response = client.post(
                    self.api_url,
                    json={
                        "from": f"{self.from_name} <{self.from_address}>",
                        "to": [self.recipient],
                        "subject": QUOTE_EMAIL_SUBJECT,
                        "html": html_body,
                    },
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Accept": "application/json",
                    },
                )
        except httpx.HTTPError as e:
            logger.error("Resend email request error: %s", e)
            raise QuoteEmailError(f"Resend request failed: {e}") from e

        duration_ms = round((time.monotonic() - start) * 1000)
        logger.info(
            "Resend email response: status=%s duration_ms=%s successful=%s",
            response.status_code, duration_ms, response.is_success,
        )

        if not response.is_success:
            logger.error(
                "Resend email failed: status=%s body=%s",
                response.status_code, response.text,
            )
            raise QuoteEmailError(f"Resend API returned {response.status_code}")

        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}
