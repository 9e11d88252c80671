"""
Widget management schemas.

Request/response DTOs for widgets, explicit steps, pricing rules and
captured leads.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.widget import LeadStatus, WidgetStatus


# =============================================================================
# Widget Schemas
# =============================================================================

class WidgetCreate(BaseModel):
    """Create a widget. New widgets start as drafts with a generated key."""

    name: str = Field(..., min_length=1, max_length=255)
    company_id: Optional[int] = None
    company_name: str = Field(default="", max_length=255)
    service_category: str = Field(default="moving", max_length=100)
    service_subcategory: Optional[str] = Field(default=None, max_length=100)
    domain: Optional[str] = Field(default=None, max_length=255)
    embed_domain: Optional[str] = Field(default=None, max_length=255)
    enabled_modules: List[str] = Field(default_factory=list)
    module_configs: Dict[str, Any] = Field(default_factory=dict)
    branding: Dict[str, Any] = Field(default_factory=dict)
    settings: Dict[str, Any] = Field(default_factory=dict)


class WidgetUpdate(BaseModel):
    """Partial widget update. The widget key cannot be changed."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    company_name: Optional[str] = Field(default=None, max_length=255)
    service_category: Optional[str] = Field(default=None, max_length=100)
    service_subcategory: Optional[str] = Field(default=None, max_length=100)
    domain: Optional[str] = Field(default=None, max_length=255)
    embed_domain: Optional[str] = Field(default=None, max_length=255)
    status: Optional[WidgetStatus] = None
    enabled_modules: Optional[List[str]] = None
    module_configs: Optional[Dict[str, Any]] = None
    branding: Optional[Dict[str, Any]] = None
    settings: Optional[Dict[str, Any]] = None


class WidgetResponse(BaseModel):
    """Widget as returned by the management endpoints."""

    id: int
    widget_key: str
    name: str
    company_id: Optional[int] = None
    company_name: Optional[str] = None
    service_category: Optional[str] = None
    service_subcategory: Optional[str] = None
    domain: Optional[str] = None
    embed_domain: Optional[str] = None
    status: WidgetStatus
    enabled_modules: Optional[List[Any]] = None
    module_configs: Optional[Dict[str, Any]] = None
    branding: Optional[Dict[str, Any]] = None
    settings: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("enabled_modules", mode="before")
    @classmethod
    def coerce_modules(cls, v: Any) -> Optional[List[Any]]:
        """Stored JSON may be malformed; show it as an empty list."""
        return v if v is None or isinstance(v, list) else []

    @field_validator("module_configs", "branding", "settings", mode="before")
    @classmethod
    def coerce_mappings(cls, v: Any) -> Optional[Dict[str, Any]]:
        """Stored JSON may be malformed; show it as an empty object."""
        return v if v is None or isinstance(v, dict) else {}


# =============================================================================
# Step & Pricing Schemas
# =============================================================================

class StepInput(BaseModel):
    """A fully pre-formatted step, stored verbatim."""

    step_key: str = Field(..., min_length=1, max_length=50)
    title: str = Field(..., min_length=1, max_length=255)
    subtitle: Optional[str] = Field(default=None, max_length=255)
    prompt: Optional[Dict[str, Any]] = None
    options: Optional[List[Any]] = None
    buttons: Optional[Dict[str, Any]] = None
    layout: Optional[Dict[str, Any]] = None
    validation: Optional[Dict[str, Any]] = None
    order_index: int
    is_enabled: bool = True


class StepsReplace(BaseModel):
    """Replace all explicit steps; an empty list re-enables module synthesis."""

    steps: List[StepInput] = Field(default_factory=list)

    @field_validator("steps")
    @classmethod
    def unique_step_keys(cls, v: List[StepInput]) -> List[StepInput]:
        keys = [step.step_key for step in v]
        if len(keys) != len(set(keys)):
            raise ValueError("step_key values must be unique per widget")
        return v


class PricingRuleInput(BaseModel):
    """Opaque pricing rules for one category."""

    pricing_rules: Dict[str, Any]


class PricingRuleResponse(BaseModel):
    category: str
    pricing_rules: Dict[str, Any]

    model_config = {"from_attributes": True}


# =============================================================================
# Lead Schemas
# =============================================================================

class LeadResponse(BaseModel):
    """Captured lead."""

    id: int
    widget_id: int
    lead_data: Dict[str, Any]
    contact_info: Dict[str, Any]
    estimated_value: Optional[Decimal] = None
    status: LeadStatus
    source_url: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class LeadStatusUpdate(BaseModel):
    """Set a lead's status (any transition is allowed)."""

    status: LeadStatus
