"""
API route controllers for the Chalk Leads widget backend.

Contains FastAPI routers for different endpoints.
Routes handle HTTP requests and delegate to services for business logic.
"""

from .health import router as health_router
from .widget_config import router as widget_config_router
from .quotes import router as quotes_router
from .places import router as places_router
from .widgets import router as widgets_router

__all__ = [
    "health_router",
    "widget_config_router",
    "quotes_router",
    "places_router",
    "widgets_router",
]
