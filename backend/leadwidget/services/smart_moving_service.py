"""
SmartMoving lead forwarding.

Posts captured quote answers to the SmartMoving lead intake API with a
bearer token. The full answer document is attached to the lead notes so
nothing the customer entered is lost in the flat schema.
"""

import json
import logging
import time
from typing import Any, Dict, Optional

import httpx

from ..core.config import settings
from .field_normalizer import (
    extract_form_data,
    extract_zip,
    first_present,
    is_blank,
    normalize_date,
    normalize_phone,
    split_name,
)
from .lead_forwarding import LeadForwardingError


logger = logging.getLogger(__name__)


REQUEST_TIMEOUT_SECONDS = 20.0
DATE_FORMAT = "%Y-%m-%d"
NOTE_AFFILIATE_NAME = "discount web form"

NAME_KEYS = ["contact-name", "name", "full_name", "fullName"]
EMAIL_KEYS = ["contact-email", "email", "customer-email", "customer_email"]
PHONE_KEYS = ["contact-phone", "phone", "phone-number", "phone_number"]
FROM_ADDRESS_KEYS = ["origin-location", "origin", "from-address", "pickup-address"]
TO_ADDRESS_KEYS = ["target-location", "destination", "to-address", "dropoff-address"]
FROM_ZIP_KEYS = ["fromZip", "from-zip", "origin-zip", "pickup-zip"]
TO_ZIP_KEYS = ["toZip", "to-zip", "target-zip", "dropoff-zip"]
MOVE_DATE_KEYS = [
    "moveDate", "move-date", "move_date",
    "date-selection", "date_selection",
    "pickup-date", "pickup_date",
    "service-date", "service_date",
    "preferred-date", "preferred_date",
]
MOVE_SIZE_KEYS = ["moveSize", "project-scope", "service-selection", "service-type", "location-type"]


class SmartMovingError(LeadForwardingError):
    """SmartMoving rejected the lead, could not be reached, or is not configured."""


class SmartMovingService:
    """Client for the SmartMoving lead intake endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        company_id: Optional[str] = None,
        lead_source: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize from settings; explicit arguments take precedence."""
        self.base_url = (base_url if base_url is not None else settings.smart_moving_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.smart_moving_api_key
        self.company_id = company_id if company_id is not None else settings.smart_moving_company_id
        self.lead_source = lead_source if lead_source is not None else settings.smart_moving_lead_source
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    def build_notes(self, form_data: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Build the notes text and affiliate tag.

        Notes are the explicit note (if any) followed by the pretty-printed
        answer document; an explicit note also tags the lead's affiliate.
        """
        explicit_note = form_data.get("smart_moving_note")
        if explicit_note is None:
            explicit_note = data.get("smart_moving_note")

        sections = []
        affiliate_name = None
        if not is_blank(explicit_note):
            if isinstance(explicit_note, str):
                sections.append(explicit_note.strip())
            else:
                sections.append(json.dumps(explicit_note, indent=4))
            affiliate_name = NOTE_AFFILIATE_NAME
        sections.append(json.dumps(data, indent=4, default=str))

        notes = "\n\n".join(section for section in sections if section.strip()).strip()
        return {"notes": notes, "affiliateName": affiliate_name}

    def map_payload(self, form_data: Dict[str, Any]) -> Dict[str, Any]:
        """Map captured quote answers onto SmartMoving's flat lead schema."""
        data = extract_form_data(form_data)

        full_name = first_present(data, NAME_KEYS) or ""
        first_name, last_name = split_name(full_name)

        email_raw = first_present(data, EMAIL_KEYS)
        email = str(email_raw).strip() if email_raw else None

        distance = first_present(data, ["distance-calculation", "distance_calculation"])
        miles = distance.get("miles") if isinstance(distance, dict) else None

        payload = {
            "lead_source": self.lead_source,
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
            "phone": normalize_phone(first_present(data, PHONE_KEYS)),
            "from_address": first_present(data, FROM_ADDRESS_KEYS),
            "to_address": first_present(data, TO_ADDRESS_KEYS),
            "from_zip": extract_zip(first_present(data, FROM_ZIP_KEYS)),
            "to_zip": extract_zip(first_present(data, TO_ZIP_KEYS)),
            "move_date": normalize_date(first_present(data, MOVE_DATE_KEYS), DATE_FORMAT),
            "move_size": first_present(data, MOVE_SIZE_KEYS),
            "estimated_miles": miles,
            "widget_key": form_data.get("widget_key") if isinstance(form_data, dict) else None,
            **self.build_notes(form_data if isinstance(form_data, dict) else {}, data),
        }
        if self.company_id:
            payload["company_id"] = self.company_id

        return {key: value for key, value in payload.items() if not is_blank(value)}

    def submit_lead(self, form_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Submit a lead to SmartMoving.

        Args:
            form_data: Quote submission (``{widget_key?, data: {...}, smart_moving_note?}``)

        Returns:
            Decoded SmartMoving response object

        Raises:
            SmartMovingError: If unconfigured, unreachable, non-2xx, or the
                body is not a JSON object
        """
        if not self.is_configured:
            raise SmartMovingError("SmartMoving API not configured.")

        payload = self.map_payload(form_data)
        logger.info(
            "SmartMoving request payload prepared: base_url=%s has_company_id=%s "
            "lead_source=%s payload_keys=%s",
            self.base_url, bool(self.company_id), self.lead_source, list(payload.keys()),
        )

        start = time.monotonic()
        try:
            with httpx.Client(timeout=REQUEST_TIMEOUT_SECONDS, transport=self.transport) as client:
                response = client.post(
                    self.base_url,
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Accept": "application/json",
                    },
                )
        except httpx.HTTPError as e:
            logger.error(
                "SmartMoving submission error: %s (form_data_keys=%s)",
                e, list(extract_form_data(form_data).keys()),
            )
            raise SmartMovingError(f"SmartMoving API request failed: {e}") from e

        duration_ms = round((time.monotonic() - start) * 1000)
        try:
            body = response.json()
        except ValueError:
            body = None

        logger.info(
            "SmartMoving API response: status=%s duration_ms=%s successful=%s response_keys=%s",
            response.status_code, duration_ms, response.is_success,
            list(body.keys()) if isinstance(body, dict) else [],
        )

        if not response.is_success:
            logger.error(
                "SmartMoving submission failed: status=%s body=%s payload=%s",
                response.status_code, response.text, payload,
            )
            raise SmartMovingError(
                f"SmartMoving API request failed: {response.status_code} - {response.text}"
            )

        if not isinstance(body, dict):
            logger.error(
                "SmartMoving submission failed - invalid response payload: body=%s",
                response.text,
            )
            raise SmartMovingError("SmartMoving API request failed: invalid response payload")

        return body
