"""
Google Places proxy endpoints used by the widget's address inputs.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from ..services.places_service import PlacesError, PlacesNotConfiguredError, PlacesService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/places", tags=["Places"])


def get_places_service() -> PlacesService:
    """Dependency returning the Places client (overridden in tests)."""
    return PlacesService()


def _error_response(exc: PlacesError) -> JSONResponse:
    if isinstance(exc, PlacesNotConfiguredError):
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Google Maps API key not configured"},
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"status": "REQUEST_DENIED", "error_message": str(exc)},
    )


@router.get(
    "/autocomplete",
    summary="Address autocomplete",
    description="Proxy Google Places autocomplete restricted to addresses.",
)
def autocomplete(
    input: str = Query(..., min_length=3),
    sessiontoken: Optional[str] = Query(default=None),
    components: Optional[str] = Query(default=None),
    location: Optional[str] = Query(default=None),
    radius: Optional[str] = Query(default=None),
    places: PlacesService = Depends(get_places_service),
):
    try:
        return places.autocomplete(
            input,
            sessiontoken=sessiontoken,
            components=components,
            location=location,
            radius=radius,
        )
    except PlacesError as e:
        return _error_response(e)


@router.get(
    "/details",
    summary="Place details",
    description="Proxy Google Places details (formatted address and components).",
)
def details(
    place_id: str = Query(..., min_length=1),
    places: PlacesService = Depends(get_places_service),
):
    try:
        return places.details(place_id)
    except PlacesError as e:
        return _error_response(e)
