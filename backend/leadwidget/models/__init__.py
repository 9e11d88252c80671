"""
SQLAlchemy ORM models for the Chalk Leads widget backend.

Contains database table definitions and relationships.
"""

from .widget import (
    Company,
    Widget,
    WidgetStep,
    WidgetPricing,
    WidgetLead,
    WidgetStatus,
    LeadStatus,
    generate_widget_key,
)

__all__ = [
    "Company",
    "Widget",
    "WidgetStep",
    "WidgetPricing",
    "WidgetLead",
    "WidgetStatus",
    "LeadStatus",
    "generate_widget_key",
]
