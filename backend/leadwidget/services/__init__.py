"""
Business logic services for the Chalk Leads widget backend.

Contains all business logic separated from API layer.
Services assemble widget configurations and talk to the external
intake, email and Places APIs.
"""

from .widget_config import WidgetNotFoundError, assemble_configuration, get_published_configuration
from .gravity_forms_service import GravityFormsService, GravityFormsError
from .smart_moving_service import SmartMovingService, SmartMovingError
from .quote_email_service import QuoteEmailService, QuoteEmailError
from .quote_submission import QuoteSubmissionService
from .places_service import PlacesService, PlacesError

__all__ = [
    "WidgetNotFoundError",
    "assemble_configuration",
    "get_published_configuration",
    "GravityFormsService",
    "GravityFormsError",
    "SmartMovingService",
    "SmartMovingError",
    "QuoteEmailService",
    "QuoteEmailError",
    "QuoteSubmissionService",
    "PlacesService",
    "PlacesError",
]
