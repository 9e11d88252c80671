"""
Google Places proxy.

Keeps the Maps API key on the server: the widget's address fields call our
endpoints, which forward to Places autocomplete / details and relay the
JSON answer unchanged.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ..core.config import settings


logger = logging.getLogger(__name__)


PLACES_AUTOCOMPLETE_URL = "https://maps.googleapis.com/maps/api/place/autocomplete/json"
PLACES_DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"
REQUEST_TIMEOUT_SECONDS = 10.0
DETAILS_FIELDS = "formatted_address,address_components"


class PlacesError(Exception):
    """Places request failed (transport error or non-2xx answer)."""


class PlacesNotConfiguredError(PlacesError):
    """No Google Maps API key is configured."""


class PlacesService:
    """Thin client for the Places autocomplete and details endpoints."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.google_maps_api_key
        self.transport = transport

    def autocomplete(
        self,
        input_text: str,
        sessiontoken: Optional[str] = None,
        components: Optional[str] = None,
        location: Optional[str] = None,
        radius: Optional[str] = None,
    ) -> Any:
        """
        Address predictions for partial input.

        Raises:
            PlacesNotConfiguredError: If no API key is set
            PlacesError: If Google is unreachable or answers non-2xx
        """
        params = {
            "input": input_text,
            "sessiontoken": sessiontoken or "",
            "types": "address",
        }
        # Optional biasing only when supplied
        for name, value in (("components", components), ("location", location), ("radius", radius)):
            if value is not None:
                params[name] = value
        return self._get(PLACES_AUTOCOMPLETE_URL, params, "Failed to fetch predictions")

    def details(self, place_id: str) -> Any:
        """
        Formatted address and components for one place.

        Raises:
            PlacesNotConfiguredError: If no API key is set
            PlacesError: If Google is unreachable or answers non-2xx
        """
        params = {"place_id": place_id, "fields": DETAILS_FIELDS}
        return self._get(PLACES_DETAILS_URL, params, "Failed to fetch place details")

    def _get(self, url: str, params: Dict[str, Any], failure_message: str) -> Any:
        if not self.api_key:
            raise PlacesNotConfiguredError("Google Maps API key not configured")

        try:
            with httpx.Client(timeout=REQUEST_TIMEOUT_SECONDS, transport=self.transport) as client:
                response = client.get(url, params={**params, "key": self.api_key})
        except httpx.HTTPError as e:
            logger.error("Places request failed: %s", type(e).__name__)
            raise PlacesError(str(e)) from e

        if not response.is_success:
            logger.error("Places request returned status %s", response.status_code)
            raise PlacesError(failure_message)

        try:
            return response.json()
        except ValueError as e:
            raise PlacesError(failure_message) from e
