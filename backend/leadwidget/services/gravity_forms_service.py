"""
Gravity Forms lead forwarding.

Submits captured quote answers to a Gravity Forms form through the Web API
v1, which authenticates each request with an expiring HMAC-SHA1 signature
carried in the query string.

Gravity Forms answers HTTP 200 even when the submission failed field
validation, so the decoded body is inspected: an embedded ``status`` of
400+ or ``response.is_valid == False`` is treated as a failure.
"""

import base64
import hashlib
import hmac
import json
import logging
import time
from datetime import date
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

import httpx

from ..core.config import settings
from .field_normalizer import (
    collect_all_zips,
    extract_form_data,
    extract_zip,
    extract_zip_from_keys,
    first_present,
    is_blank,
    normalize_date,
    normalize_phone,
    search_zip_by_keywords,
    split_name,
)
from .lead_forwarding import LeadForwardingError


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

SIGNATURE_TTL_SECONDS = 3600
REQUEST_TIMEOUT_SECONDS = 15.0
CONNECTION_TEST_TIMEOUT_SECONDS = 10.0
DATE_FORMAT = "%m/%d/%Y"

NAME_KEYS = ["contact-name", "name", "full_name", "fullName"]
EMAIL_KEYS = ["contact-email", "email", "customer-email", "customer_email"]
PHONE_KEYS = ["contact-phone", "phone", "phone-number", "phone_number"]

ORIGIN_ADDRESS_KEYS = [
    "fromZip", "from-zip", "origin-zip", "origin-location", "origin-location-field", "origin",
]
TARGET_ADDRESS_KEYS = [
    "toZip", "to-zip", "target-zip", "target-location", "target-location-field", "destination",
]

FROM_ZIP_KEYS = [
    "fromZip", "from-zip", "from_zip", "from_zip_code", "fromZipCode",
    "origin-zip", "origin_zip", "origin_zip_code", "origin-zip-code", "originZip",
    "zip-from", "moving-from-zip", "moving_from_zip", "moving-from-zip-code",
    "moving_from_zip_code", "pickup-zip", "pickup_zip", "pickup_zip_code", "pickup_postal",
    "postal_from", "origin-postal", "origin_postal", "from-postal", "fromPostal",
    "pickupPostalCode",
]
TO_ZIP_KEYS = [
    "toZip", "to-zip", "to_zip", "to_zip_code", "toZipCode",
    "target-zip", "target_zip", "target_zip_code", "target-zip-code", "target_postal",
    "destination-zip", "destination_zip", "destination_zip_code", "destination-zip-code",
    "destination_postal", "zip-to", "moving-to-zip", "moving_to_zip", "moving-to-zip-code",
    "moving_to_zip_code", "dropoff-zip", "dropoff_zip", "dropoff_zip_code", "delivery-zip",
    "delivery_zip", "delivery_zip_code", "postal_to", "destination-postal", "dropoffPostalCode",
]
FROM_ZIP_KEYWORDS = ["from", "origin", "pickup"]
TO_ZIP_KEYWORDS = ["to", "target", "destination", "dropoff", "delivery"]

MOVE_DATE_KEYS = [
    "moveDate", "move-date", "move_date",
    "date-selection", "date_selection",
    "pickup-date", "pickup_date",
    "service-date", "service_date",
    "preferred-date", "preferred_date",
]
MOVE_SIZE_KEYS = ["moveSize", "project-scope", "service-selection", "service-type", "location-type"]

# Substring (lowercase) -> canonical move size label; first match wins
MOVE_SIZE_LABELS = {
    "studio": "Studio Apartment",
    "1 bedroom": "1 Bedroom Apartment",
    "2 bedroom": "2 Bedroom House",
    "3 bedroom": "3 Bedroom House",
    "4 bedroom": "4 Bedroom House",
    "5 bedroom": "5 Bedroom House",
}


class GravityFormsError(LeadForwardingError):
    """Gravity Forms rejected the submission or could not be reached."""


def normalize_move_size(value: Any) -> Any:
    """Map free-text move sizes onto the form's choice labels."""
    if not value or not isinstance(value, str):
        return value
    lower = value.lower()
    for needle, label in MOVE_SIZE_LABELS.items():
        if needle in lower:
            return label
    return value


def _distance_endpoint(data: Dict[str, Any], *keys: str) -> Any:
    distance = first_present(data, ["distance-calculation", "distance_calculation"])
    if not isinstance(distance, dict):
        return None
    return first_present(distance, keys)


class GravityFormsService:
    """
    Client for the Gravity Forms Web API (v1, signature authentication).

    Field mapping for the quote form:
        input_1 / input_1.3 / input_1.6: full / first / last name
        input_3: email, input_4: phone
        input_8 / input_9: origin / destination ZIP
        input_5: move date (MM/DD/YYYY), input_6: move size
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        public_key: Optional[str] = None,
        private_key: Optional[str] = None,
        form_id: Optional[str] = None,
        source_url: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize from settings; explicit arguments take precedence."""
        self.base_url = (base_url if base_url is not None else settings.gravity_forms_base_url).rstrip("/")
        self.public_key = public_key if public_key is not None else settings.gravity_forms_public_key
        self.private_key = private_key if private_key is not None else settings.gravity_forms_private_key
        self.form_id = form_id if form_id is not None else settings.gravity_forms_form_id
        self.source_url = source_url if source_url is not None else settings.app_url
        self.transport = transport
        self.clock = clock

    # =========================================================================
    # Authentication
    # =========================================================================

    def sign(self, method: str, full_url: str, expires: int) -> str:
        """Base64 HMAC-SHA1 of ``{public_key}:{method}:{url}:{expires}``."""
        string_to_sign = f"{self.public_key}:{method}:{full_url}:{expires}"
        digest = hmac.new(
            self.private_key.encode("utf-8"),
            string_to_sign.encode("utf-8"),
            hashlib.sha1,
        ).digest()
        return base64.b64encode(digest).decode("ascii")

    def build_authenticated_url(self, endpoint: str, method: str = "GET") -> Dict[str, Any]:
        """
        Build a signed URL valid for one hour.

        Args:
            endpoint: API path, e.g. ``/forms/3/submissions``
            method: HTTP method the signature is issued for

        Returns:
            Dict with ``url`` and ``expires`` (epoch seconds)
        """
        expires = int(self.clock()) + SIGNATURE_TTL_SECONDS
        full_url = f"{self.base_url}{endpoint}"
        signature = quote(self.sign(method, full_url, expires), safe="")
        return {
            "url": f"{full_url}?api_key={self.public_key}&signature={signature}&expires={expires}",
            "expires": expires,
        }

    # =========================================================================
    # Field Mapping
    # =========================================================================

    def map_form_data(self, form_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Map captured quote answers onto Gravity Forms input fields.

        Returns:
            ``{"input_values": {...}, "source_url": ...}``
        """
        data = extract_form_data(form_data)

        full_name = first_present(data, NAME_KEYS) or ""
        first_name, last_name = split_name(full_name)

        email_raw = first_present(data, EMAIL_KEYS)
        email = str(email_raw).strip() if email_raw else None
        phone = normalize_phone(first_present(data, PHONE_KEYS))

        origin_address = first_present(data, ORIGIN_ADDRESS_KEYS)
        target_address = first_present(data, TARGET_ADDRESS_KEYS)

        from_zip = (
            extract_zip_from_keys(data, FROM_ZIP_KEYS)
            or extract_zip(origin_address)
            or extract_zip(_distance_endpoint(data, "origin", "from"))
            or search_zip_by_keywords(data, FROM_ZIP_KEYWORDS)
        )
        to_zip = (
            extract_zip_from_keys(data, TO_ZIP_KEYS)
            or extract_zip(target_address)
            or extract_zip(_distance_endpoint(data, "destination", "to"))
            or search_zip_by_keywords(data, TO_ZIP_KEYWORDS)
        )

        # Both ZIP fields are required on the form; reuse whatever ZIPs exist
        all_zips = collect_all_zips(data)
        if not from_zip and all_zips:
            from_zip = all_zips[0]
        if not to_zip and len(all_zips) > 1:
            to_zip = all_zips[1]
        elif not to_zip and from_zip and all_zips:
            to_zip = from_zip

        # The date field is required; fall back to today
        move_date = (
            normalize_date(first_present(data, MOVE_DATE_KEYS), DATE_FORMAT)
            or date.today().strftime(DATE_FORMAT)
        )
        move_size = normalize_move_size(first_present(data, MOVE_SIZE_KEYS))

        fields = {
            "input_1": full_name,
            "input_1.3": first_name,
            "input_1.6": last_name,
            "input_3": email,
            "input_4": phone,
            "input_8": from_zip,
            "input_9": to_zip,
            "input_5": move_date,
            "input_6": move_size,
        }

        input_values: Dict[str, Any] = {}
        for key, value in fields.items():
            if isinstance(value, bool):
                value = "Yes" if value else "No"
            if is_blank(value):
                continue
            input_values[key] = value
            # Some API versions expect bare field ids ("1", "1.3")
            if key.startswith("input_"):
                numeric_key = key[len("input_"):]
                if numeric_key and numeric_key not in input_values:
                    input_values[numeric_key] = value

        if not input_values:
            logger.warning(
                "Gravity Forms submission has no mapped fields (data keys: %s)",
                list(data.keys()),
            )

        return {
            "input_values": input_values,
            "source_url": self.source_url,
        }

    # =========================================================================
    # Submission
    # =========================================================================

    def submit_form(self, form_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Submit quote answers to the configured form.

        Args:
            form_data: Quote submission (``{widget_key?, data: {...}}``)

        Returns:
            Decoded Gravity Forms response

        Raises:
            GravityFormsError: On transport errors, non-object bodies,
                an API status of 400+ or a failed field validation
        """
        auth = self.build_authenticated_url(f"/forms/{self.form_id}/submissions", "POST")
        payload = self.map_form_data(form_data)

        logger.info(
            "Gravity Forms submission request: form_id=%s field_keys=%s",
            self.form_id, list(payload["input_values"].keys()),
        )

        start = time.monotonic()
        try:
            with httpx.Client(timeout=REQUEST_TIMEOUT_SECONDS, transport=self.transport) as client:
                response = client.post(auth["url"], json=payload)
        except httpx.HTTPError as e:
            logger.error(
                "Gravity Forms submission error: %s (form_data=%s)",
                e, form_data,
            )
            raise GravityFormsError(f"Gravity Forms API request failed: {e}") from e

        duration_ms = round((time.monotonic() - start) * 1000)
        try:
            result = response.json()
        except ValueError:
            result = None

        inner = result.get("response") if isinstance(result, dict) else None
        is_valid = inner.get("is_valid") if isinstance(inner, dict) else None
        logger.info(
            "Gravity Forms API response: form_id=%s status=%s duration_ms=%s is_valid=%s",
            self.form_id, response.status_code, duration_ms, is_valid,
        )

        if not isinstance(result, dict) or not result:
            logger.error(
                "Gravity Forms submission failed - empty or invalid JSON response: "
                "status=%s body=%s form_data=%s mapped_fields=%s",
                response.status_code, response.text, form_data, payload,
            )
            raise GravityFormsError(
                f"Gravity Forms API request failed: invalid response payload - {response.text}"
            )

        api_status = result.get("status")
        if api_status is None:
            api_status = response.status_code
        try:
            api_status = int(api_status)
        except (TypeError, ValueError, OverflowError):
            api_status = response.status_code

        validation_messages = inner.get("validation_messages") if isinstance(inner, dict) else None
        if api_status >= 400 or is_valid is False:
            error_body = inner if inner is not None else response.text
            logger.error(
                "Gravity Forms submission failed: status=%s body=%s validation=%s "
                "form_data=%s mapped_fields=%s",
                api_status, error_body, validation_messages, form_data, payload,
            )
            message = error_body if isinstance(error_body, str) else json.dumps(error_body)
            if validation_messages:
                message += f" | Validation: {json.dumps(validation_messages)}"
            raise GravityFormsError(f"Gravity Forms API request failed: {api_status} - {message}")

        logger.info("Gravity Forms submission successful: response=%s", result)
        return result

    def test_connection(self) -> bool:
        """Check that the signed credentials can read the configured form."""
        auth = self.build_authenticated_url(f"/forms/{self.form_id}", "GET")
        try:
            with httpx.Client(timeout=CONNECTION_TEST_TIMEOUT_SECONDS, transport=self.transport) as client:
                response = client.get(auth["url"])
        except httpx.HTTPError as e:
            logger.error("Gravity Forms connection test failed: %s", e)
            return False
        return response.is_success
