"""
Widget management endpoints.

Minimal JSON endpoints for creating and editing widgets, publishing them,
replacing their explicit steps and pricing rules, previewing their
configuration and following up on captured leads.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, Response, status
from sqlalchemy.orm import Session, selectinload

from ..core.database import get_db
from ..models.widget import Widget, WidgetLead, WidgetPricing, WidgetStatus, WidgetStep
from ..schemas.widget import (
    LeadResponse,
    LeadStatusUpdate,
    PricingRuleInput,
    PricingRuleResponse,
    StepsReplace,
    WidgetCreate,
    WidgetResponse,
    WidgetUpdate,
)
from ..services.widget_config import build_configuration


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Widget Management"])


def _get_widget_or_404(db: Session, widget_id: int) -> Widget:
    widget = db.query(Widget).filter(Widget.id == widget_id).first()
    if widget is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Widget not found",
        )
    return widget


def _set_status(db: Session, widget_id: int, new_status: WidgetStatus) -> Widget:
    widget = _get_widget_or_404(db, widget_id)
    widget.status = new_status
    db.commit()
    db.refresh(widget)
    logger.info("Widget %s status set to %s", widget.widget_key, new_status.value)
    return widget


# =============================================================================
# Widgets
# =============================================================================

@router.post(
    "/widgets",
    response_model=WidgetResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create widget",
)
def create_widget(body: WidgetCreate, db: Session = Depends(get_db)):
    """Create a draft widget with a freshly generated public key."""
    widget = Widget(**body.model_dump(), status=WidgetStatus.DRAFT)
    db.add(widget)
    db.commit()
    db.refresh(widget)
    logger.info("Created widget %s (id=%s)", widget.widget_key, widget.id)
    return widget


@router.get("/widgets", response_model=List[WidgetResponse], summary="List widgets")
def list_widgets(db: Session = Depends(get_db)):
    return db.query(Widget).order_by(Widget.id).all()


@router.get("/widgets/{widget_id}", response_model=WidgetResponse, summary="Get widget")
def get_widget(widget_id: int, db: Session = Depends(get_db)):
    return _get_widget_or_404(db, widget_id)


@router.patch("/widgets/{widget_id}", response_model=WidgetResponse, summary="Update widget")
def update_widget(widget_id: int, body: WidgetUpdate, db: Session = Depends(get_db)):
    """Apply the supplied fields; omitted fields are left unchanged."""
    widget = _get_widget_or_404(db, widget_id)
    changes = body.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(widget, field, value)
    db.commit()
    db.refresh(widget)
    logger.info("Updated widget %s fields=%s", widget.widget_key, sorted(changes))
    return widget


@router.delete(
    "/widgets/{widget_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete widget",
)
def delete_widget(widget_id: int, db: Session = Depends(get_db)):
    """Delete a widget together with its steps, pricing rules and leads."""
    widget = _get_widget_or_404(db, widget_id)
    db.delete(widget)
    db.commit()
    logger.info("Deleted widget %s", widget_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/widgets/{widget_id}/publish", response_model=WidgetResponse, summary="Publish widget")
def publish_widget(widget_id: int, db: Session = Depends(get_db)):
    return _set_status(db, widget_id, WidgetStatus.PUBLISHED)


@router.post("/widgets/{widget_id}/pause", response_model=WidgetResponse, summary="Pause widget")
def pause_widget(widget_id: int, db: Session = Depends(get_db)):
    return _set_status(db, widget_id, WidgetStatus.PAUSED)


@router.get("/widgets/{widget_id}/preview", summary="Preview configuration")
def preview_widget(widget_id: int, db: Session = Depends(get_db)):
    """Configuration document for any widget, whatever its status."""
    widget = (
        db.query(Widget)
        .options(selectinload(Widget.steps), selectinload(Widget.pricing))
        .filter(Widget.id == widget_id)
        .first()
    )
    if widget is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Widget not found",
        )
    return build_configuration(widget)


# =============================================================================
# Steps & Pricing
# =============================================================================

@router.put("/widgets/{widget_id}/steps", summary="Replace explicit steps")
def replace_steps(widget_id: int, body: StepsReplace, db: Session = Depends(get_db)):
    """
    Replace every explicit step of a widget.

    An empty list removes all steps, so the configuration goes back to
    being synthesized from the enabled modules.
    """
    widget = _get_widget_or_404(db, widget_id)

    db.query(WidgetStep).filter(WidgetStep.widget_id == widget.id).delete(
        synchronize_session=False
    )
    db.flush()
    for step in body.steps:
        db.add(WidgetStep(widget_id=widget.id, **step.model_dump()))
    db.commit()

    logger.info("Replaced steps for widget %s: %d step(s)", widget.widget_key, len(body.steps))
    return {"widget_id": widget.id, "steps": len(body.steps)}


@router.put(
    "/widgets/{widget_id}/pricing/{category}",
    response_model=PricingRuleResponse,
    summary="Upsert pricing rules",
)
def upsert_pricing(
    widget_id: int,
    body: PricingRuleInput,
    category: str = Path(..., min_length=1, max_length=50),
    db: Session = Depends(get_db),
):
    """Create or replace the pricing rules of one category."""
    widget = _get_widget_or_404(db, widget_id)

    rule = (
        db.query(WidgetPricing)
        .filter(WidgetPricing.widget_id == widget.id, WidgetPricing.category == category)
        .first()
    )
    if rule is None:
        rule = WidgetPricing(widget_id=widget.id, category=category)
        db.add(rule)
    rule.pricing_rules = body.pricing_rules
    db.commit()
    db.refresh(rule)

    logger.info("Saved pricing category %s for widget %s", category, widget.widget_key)
    return rule


# =============================================================================
# Leads
# =============================================================================

@router.get(
    "/widgets/{widget_id}/leads",
    response_model=List[LeadResponse],
    summary="List widget leads",
)
def list_widget_leads(widget_id: int, db: Session = Depends(get_db)):
    """Leads captured by a widget, newest first."""
    widget = _get_widget_or_404(db, widget_id)
    return (
        db.query(WidgetLead)
        .filter(WidgetLead.widget_id == widget.id)
        .order_by(WidgetLead.created_at.desc(), WidgetLead.id.desc())
        .all()
    )


@router.patch("/leads/{lead_id}/status", response_model=LeadResponse, summary="Update lead status")
def update_lead_status(lead_id: int, body: LeadStatusUpdate, db: Session = Depends(get_db)):
    lead = db.query(WidgetLead).filter(WidgetLead.id == lead_id).first()
    if lead is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Lead not found",
        )
    lead.status = body.status
    db.commit()
    db.refresh(lead)
    logger.info("Lead %s status set to %s", lead.id, body.status.value)
    return lead
