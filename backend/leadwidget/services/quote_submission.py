"""
Quote submission flow.

1. Email the quote to the company (primary channel; failure aborts).
2. Forward the lead to exactly one intake API: SmartMoving when the
   submitting page's host is a configured trigger host, Gravity Forms
   otherwise (best effort; failures are reported, not raised).
3. Record the lead against its widget when the widget key resolves.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlparse

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.widget import LeadStatus, Widget, WidgetLead
from .field_normalizer import extract_form_data, first_present
from .gravity_forms_service import EMAIL_KEYS, NAME_KEYS, PHONE_KEYS, GravityFormsService
from .lead_forwarding import ForwardingOutcome, forward_best_effort
from .quote_email_service import QuoteEmailService
from .smart_moving_service import SmartMovingService


logger = logging.getLogger(__name__)


def detect_source_host(
    payload: Dict[str, Any],
    origin: Optional[str] = None,
    referer: Optional[str] = None,
) -> Optional[str]:
    """
    Work out which site the widget was embedded on.

    Candidates, in order: payload ``source_host``, the Origin header, the
    Referer header (or payload ``referrer``). URLs are reduced to their
    host; bare values are used as-is. The result is lowercased.
    """
    candidates = [payload.get("source_host"), origin, referer or payload.get("referrer")]
    for value in candidates:
        if not value or not isinstance(value, str):
            continue
        host = urlparse(value).hostname or value
        if host:
            return host.lower()
    return None


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        return None


class QuoteSubmissionService:
    """Coordinates the email, the lead forwarding and the lead record."""

    def __init__(
        self,
        email_service: Optional[QuoteEmailService] = None,
        gravity_forms_service: Optional[GravityFormsService] = None,
        smart_moving_service: Optional[SmartMovingService] = None,
        smart_moving_hosts: Optional[Iterable[str]] = None,
    ):
        self.email_service = email_service or QuoteEmailService()
        self.gravity_forms_service = gravity_forms_service or GravityFormsService()
        self.smart_moving_service = smart_moving_service or SmartMovingService()
        if smart_moving_hosts is None:
            smart_moving_hosts = settings.smart_moving_trigger_hosts_list
        self.smart_moving_hosts = {host.strip().lower() for host in smart_moving_hosts if host.strip()}

    def uses_smart_moving(self, source_host: Optional[str]) -> bool:
        return bool(source_host) and source_host in self.smart_moving_hosts

    def submit(
        self,
        db: Session,
        payload: Dict[str, Any],
        origin: Optional[str] = None,
        referer: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Process a quote request from the widget.

        Args:
            db: Database session (for the lead record)
            payload: Validated submission (widget_key, data, summary, ...)
            origin: Origin request header
            referer: Referer request header
            ip_address: Client IP for the lead record
            user_agent: Client user agent for the lead record

        Returns:
            Response document with one outcome per adapter

        Raises:
            QuoteEmailError: If the quote email could not be sent
        """
        widget_key = payload.get("widget_key")

        # Primary channel: let QuoteEmailError propagate
        self.email_service.send_quote_email(
            payload.get("data") or {},
            payload.get("summary"),
            widget_key,
        )

        source_host = detect_source_host(payload, origin, referer)
        gravity_forms = ForwardingOutcome()
        smart_moving = ForwardingOutcome()

        if self.uses_smart_moving(source_host):
            logger.info("Routing lead to SmartMoving (source_host=%s)", source_host)
            smart_moving = forward_best_effort(
                "SmartMoving", self.smart_moving_service.submit_lead, payload,
            )
        else:
            gravity_forms = forward_best_effort(
                "Gravity Forms", self.gravity_forms_service.submit_form, payload,
            )

        lead = self.record_lead(db, payload, ip_address=ip_address, user_agent=user_agent)

        return {
            "message": "Quote sent successfully",
            "gravity_forms": gravity_forms.to_dict(),
            "smart_moving": smart_moving.to_dict(),
            "lead_id": lead.id if lead is not None else None,
        }

    def record_lead(
        self,
        db: Session,
        payload: Dict[str, Any],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[WidgetLead]:
        """Store the submission as a lead of its widget (skipped for unknown keys)."""
        widget_key = payload.get("widget_key")
        if not widget_key:
            return None

        try:
            widget = db.query(Widget).filter(Widget.widget_key == widget_key).first()
            if widget is None:
                logger.info("Lead not recorded: unknown widget key %s", widget_key)
                return None

            data = extract_form_data(payload)
            summary = payload.get("summary") or {}
            lead = WidgetLead(
                widget_id=widget.id,
                lead_data=data,
                contact_info={
                    "name": first_present(data, NAME_KEYS),
                    "email": first_present(data, EMAIL_KEYS),
                    "phone": first_present(data, PHONE_KEYS),
                },
                estimated_value=_to_decimal(summary.get("total")),
                status=LeadStatus.NEW,
                source_url=(payload.get("referrer") or "")[:500] or None,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            db.add(lead)
            db.commit()
            db.refresh(lead)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to record lead for widget %s", widget_key)
            return None

        logger.info("Recorded lead %s for widget %s", lead.id, widget_key)
        return lead
