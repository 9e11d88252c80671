"""
Quote submission schemas.

Validates the payload the widget posts when a visitor requests a quote.
The wizard answers themselves (``data``) are free-form.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SummaryItem(BaseModel):
    """One line of the cost summary shown to the visitor."""

    label: Optional[str] = Field(default=None, description="Line label")
    amount: Optional[float] = Field(default=None, description="Line amount")
    meta: Optional[str] = Field(default=None, description="Extra detail, e.g. '12 miles'")

    model_config = {"extra": "allow"}


class QuoteSummary(BaseModel):
    """Cost summary computed by the renderer."""

    items: Optional[List[SummaryItem]] = None
    total: Optional[float] = None
    subtotal: Optional[float] = None
    minimumJobPrice: Optional[float] = None
    appliedMinimum: Optional[bool] = None


class QuoteSubmission(BaseModel):
    """
    Quote request posted by the widget.

    ``data`` holds the raw wizard answers keyed by module / field name.
    """

    widget_key: Optional[str] = Field(default=None, description="Public widget key")
    data: Dict[str, Any] = Field(..., description="Captured wizard answers")
    summary: Optional[QuoteSummary] = Field(default=None, description="Cost summary")
    source_host: Optional[str] = Field(default=None, description="Host of the embedding page")
    referrer: Optional[str] = Field(default=None, description="Referrer URL of the embedding page")
    smart_moving_note: Optional[str] = Field(default=None, description="Note attached to SmartMoving leads")

    model_config = {
        "json_schema_extra": {
            "example": {
                "widget_key": "Xk3l9QpTz0aBcDeFgHiJkLmNoPqRsTuV",
                "data": {
                    "contact-name": "Jane Doe",
                    "contact-email": "jane@example.com",
                    "contact-phone": "(404) 555-0100",
                    "origin-location": "123 Main St, Atlanta, GA 30301",
                    "target-location": "9 Elm St, Decatur, GA 30030",
                    "date-selection": "2025-09-15",
                    "project-scope": "2 Bedroom",
                },
                "summary": {"total": 850.0, "subtotal": 850.0},
            }
        }
    }


class ForwardingResult(BaseModel):
    """Outcome of forwarding the lead to one intake API."""

    submitted: bool = False
    data: Optional[Any] = None
    error: Optional[str] = None


class QuoteSubmitResponse(BaseModel):
    """Response to a successful quote submission."""

    message: str
    gravity_forms: ForwardingResult
    smart_moving: ForwardingResult
    lead_id: Optional[int] = None
