"""
Public widget configuration endpoint.

The embed script fetches its configuration document by public widget key:

    GET /api/widget/{widget_key}/config

Only published widgets are served; everything else (unknown key, draft,
paused) is indistinguishable from a missing widget.
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..services.widget_config import WidgetNotFoundError, get_published_configuration


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/widget", tags=["Widget"])


@router.get(
    "/{widget_key}/config",
    summary="Widget configuration",
    description="Configuration document for a published widget.",
    responses={404: {"description": "Widget not found"}},
)
def get_widget_config(widget_key: str, db: Session = Depends(get_db)):
    try:
        return get_published_configuration(db, widget_key)
    except WidgetNotFoundError:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "Widget not found"},
        )
