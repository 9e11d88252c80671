"""
Widget database models.

A company configures widgets; each widget carries its enabled modules,
per-module configuration blobs, branding and estimation settings, plus
optional explicit steps, per-category pricing rules and captured leads.
"""

import enum
import secrets
import string

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.database import Base


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

WIDGET_KEY_LENGTH = 32
_WIDGET_KEY_ALPHABET = string.ascii_letters + string.digits


def generate_widget_key() -> str:
    """Generate an opaque 32-character public widget key."""
    return "".join(secrets.choice(_WIDGET_KEY_ALPHABET) for _ in range(WIDGET_KEY_LENGTH))


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# =============================================================================
# Enum Definitions
# =============================================================================

class WidgetStatus(str, enum.Enum):
    """Publishing state. Only PUBLISHED widgets are served publicly."""
    DRAFT = "draft"
    PUBLISHED = "published"
    PAUSED = "paused"


class LeadStatus(str, enum.Enum):
    """Lead follow-up status. Any status may be set from any other."""
    NEW = "new"
    CONTACTED = "contacted"
    CONVERTED = "converted"
    LOST = "lost"


# =============================================================================
# Company Model
# =============================================================================

class Company(Base):
    """Tenant owning one or more widgets."""

    __tablename__ = "companies"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    domain = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    widgets = relationship("Widget", back_populates="company", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, name={self.name!r})>"


# =============================================================================
# Widget Model
# =============================================================================

class Widget(Base):
    """
    Embeddable quote wizard.

    Attributes:
        widget_key: Opaque public identifier used in all external URLs.
            Generated on insert when empty and never changed afterwards.
        status: draft | published | paused
        enabled_modules: Ordered module keys; order defines synthesized step order
        module_configs: Mapping of module key to raw module configuration
        branding: Display properties passed through to the renderer
        settings: Estimation settings (tax_rate, service_area_miles,
            minimum_job_price, show_price_ranges)
    """

    __tablename__ = "widgets"
    __table_args__ = (
        Index("ix_widgets_company_status", "company_id", "status"),
    )

    id = Column(Integer, primary_key=True)
    company_id = Column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=True,
    )
    name = Column(String(255), nullable=False)
    service_category = Column(String(100), nullable=False, default="moving")
    service_subcategory = Column(String(100), nullable=True)
    domain = Column(String(255), nullable=True)
    company_name = Column(String(255), nullable=False, default="")
    embed_domain = Column(String(255), nullable=True)

    status = Column(
        SQLEnum(WidgetStatus, name="widget_status", values_callable=_enum_values),
        nullable=False,
        default=WidgetStatus.DRAFT,
    )
    widget_key = Column(
        String(WIDGET_KEY_LENGTH),
        unique=True,
        nullable=False,
        index=True,
        default=generate_widget_key,
    )

    enabled_modules = Column(JSONType, nullable=True)
    module_configs = Column(JSONType, nullable=True)
    branding = Column(JSONType, nullable=True)
    settings = Column(JSONType, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    company = relationship("Company", back_populates="widgets")
    steps = relationship(
        "WidgetStep",
        back_populates="widget",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="[WidgetStep.order_index, WidgetStep.id]",
    )
    pricing = relationship(
        "WidgetPricing",
        back_populates="widget",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="WidgetPricing.id",
    )
    leads = relationship(
        "WidgetLead",
        back_populates="widget",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def is_published(self) -> bool:
        """Whether the widget may be served on its public config endpoint."""
        return self.status == WidgetStatus.PUBLISHED

    def __repr__(self) -> str:
        return f"<Widget(id={self.id}, key={self.widget_key}, status={self.status})>"


# =============================================================================
# Explicit Step Model
# =============================================================================

class WidgetStep(Base):
    """
    Fully pre-formatted wizard step.

    When a widget has any step rows they replace module synthesis entirely.
    """

    __tablename__ = "widget_steps"
    __table_args__ = (
        UniqueConstraint("widget_id", "step_key", name="uq_widget_steps_widget_step_key"),
        Index("ix_widget_steps_widget_order", "widget_id", "order_index"),
    )

    id = Column(Integer, primary_key=True)
    widget_id = Column(
        Integer,
        ForeignKey("widgets.id", ondelete="CASCADE"),
        nullable=False,
    )
    step_key = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    subtitle = Column(String(255), nullable=True)
    prompt = Column(JSONType, nullable=True)
    options = Column(JSONType, nullable=True)
    buttons = Column(JSONType, nullable=True)
    layout = Column(JSONType, nullable=True)
    validation = Column(JSONType, nullable=True)
    order_index = Column(Integer, nullable=False)
    is_enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    widget = relationship("Widget", back_populates="steps")


# =============================================================================
# Pricing Rule Model
# =============================================================================

class WidgetPricing(Base):
    """Opaque pricing rules object for one category of a widget."""

    __tablename__ = "widget_pricing"
    __table_args__ = (
        UniqueConstraint("widget_id", "category", name="uq_widget_pricing_widget_category"),
    )

    id = Column(Integer, primary_key=True)
    widget_id = Column(
        Integer,
        ForeignKey("widgets.id", ondelete="CASCADE"),
        nullable=False,
    )
    category = Column(String(50), nullable=False)
    pricing_rules = Column(JSONType, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    widget = relationship("Widget", back_populates="pricing")


# =============================================================================
# Lead Model
# =============================================================================

class WidgetLead(Base):
    """Captured end-user submission through a widget."""

    __tablename__ = "widget_leads"
    __table_args__ = (
        Index("ix_widget_leads_widget_status_created", "widget_id", "status", "created_at"),
    )

    id = Column(Integer, primary_key=True)
    widget_id = Column(
        Integer,
        ForeignKey("widgets.id", ondelete="CASCADE"),
        nullable=False,
    )
    lead_data = Column(JSONType, nullable=False)
    contact_info = Column(JSONType, nullable=False)
    estimated_value = Column(Numeric(10, 2), nullable=True)
    status = Column(
        SQLEnum(LeadStatus, name="widget_lead_status", values_callable=_enum_values),
        nullable=False,
        default=LeadStatus.NEW,
    )
    source_url = Column(String(500), nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    widget = relationship("Widget", back_populates="leads")

    @property
    def contact_name(self) -> str:
        return (self.contact_info or {}).get("name") or "Unknown"

    @property
    def contact_email(self) -> str:
        return (self.contact_info or {}).get("email") or ""
