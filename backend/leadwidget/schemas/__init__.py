"""
Pydantic validation schemas for the Chalk Leads widget backend.

Contains request/response DTOs with validation rules.
These schemas enforce data integrity at API boundaries.
"""

from .common import HealthResponse
from .quote import (
    QuoteSubmission,
    QuoteSummary,
    QuoteSubmitResponse,
    ForwardingResult,
)
from .widget import (
    WidgetCreate,
    WidgetUpdate,
    WidgetResponse,
    StepInput,
    StepsReplace,
    PricingRuleInput,
    PricingRuleResponse,
    LeadResponse,
    LeadStatusUpdate,
)

__all__ = [
    # Common schemas
    "HealthResponse",
    # Quote schemas
    "QuoteSubmission",
    "QuoteSummary",
    "QuoteSubmitResponse",
    "ForwardingResult",
    # Widget schemas
    "WidgetCreate",
    "WidgetUpdate",
    "WidgetResponse",
    "StepInput",
    "StepsReplace",
    "PricingRuleInput",
    "PricingRuleResponse",
    "LeadResponse",
    "LeadStatusUpdate",
]
